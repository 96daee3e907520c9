"""Tests for the run.py command line entry point"""

import json

import pytest
from unittest.mock import Mock, patch

import run
from src.shared.pipeline import RunSummary


@pytest.fixture
def cli_args(tmp_path):
    """Arguments that keep every path inside tmp_path"""
    return [
        '--config', str(tmp_path / 'missing.yaml'),
        '--output', str(tmp_path / 'charter.geojson'),
        '--cache', str(tmp_path / 'cache-icons.json'),
        '--log-file', str(tmp_path / 'logs' / 'charter.log'),
    ]


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch('run.setup_logging') as mock_setup:
        yield mock_setup


@pytest.fixture
def source_module():
    module = Mock()
    module.run.return_value = RunSummary(ids_seen=2, accepted=1, written=True)
    with patch('run.get_source_module', return_value=module):
        yield module


class TestArgumentTypes:

    def test_positive_int(self):
        assert run.positive_int('3') == 3
        with pytest.raises(Exception):
            run.positive_int('0')

    def test_non_negative_float(self):
        assert run.non_negative_float('0') == 0.0
        with pytest.raises(Exception):
            run.non_negative_float('-1')

    def test_rejects_zero_workers(self, cli_args):
        with pytest.raises(SystemExit):
            run.main(cli_args + ['--workers', '0'])


class TestMain:

    def test_successful_run(self, cli_args, source_module, capsys):
        assert run.main(cli_args) == 0

        config = source_module.run.call_args.args[0]
        kwargs = source_module.run.call_args.kwargs
        assert config['output_path'].endswith('charter.geojson')
        assert kwargs == {'source': 'consum', 'refresh': False, 'limit': None}
        assert "TOTAL consum: 1 stores" in capsys.readouterr().out

    def test_cli_flags_reach_source(self, cli_args, source_module):
        run.main(cli_args + ['--refresh', '--limit', '5', '--workers', '2', '--max-runtime', '60'])

        config = source_module.run.call_args.args[0]
        kwargs = source_module.run.call_args.kwargs
        assert config['parallel_workers'] == 2
        assert config['max_runtime'] == 60.0
        assert kwargs['refresh'] is True
        assert kwargs['limit'] == 5

    def test_guarded_write_still_exits_zero(self, cli_args, source_module, capsys):
        source_module.run.return_value = RunSummary(ids_seen=0, written=False)

        assert run.main(cli_args) == 0
        assert "kept previous snapshot" in capsys.readouterr().out

    def test_unhandled_failure_exits_one(self, cli_args, source_module, capsys):
        source_module.run.side_effect = OSError("disk full")

        assert run.main(cli_args) == 1
        assert "disk full" in capsys.readouterr().err

    def test_keyboard_interrupt_exits_130(self, cli_args, source_module):
        source_module.run.side_effect = KeyboardInterrupt()
        assert run.main(cli_args) == 130

    def test_invalid_config_exits_one(self, cli_args, source_module, tmp_path, capsys):
        bad = tmp_path / 'bad.yaml'
        bad.write_text("ttl_confirmed_days: 1\nttl_other_days: 5\n", encoding='utf-8')

        assert run.main(cli_args + ['--config', str(bad)]) == 1
        assert "Configuration errors" in capsys.readouterr().err
        source_module.run.assert_not_called()

    def test_unknown_source_in_config_exits_one(self, cli_args, tmp_path):
        settings = tmp_path / 'other.yaml'
        settings.write_text("source: mercadona\n", encoding='utf-8')

        assert run.main(cli_args + ['--config', str(settings)]) == 1

    def test_verbose_sets_debug_level(self, cli_args, source_module, no_logging_setup):
        run.main(cli_args + ['--verbose'])
        assert no_logging_setup.call_args.kwargs['level'] == 10


class TestStatus:

    def test_status_reports_snapshot_and_cache(self, cli_args, tmp_path, capsys):
        (tmp_path / 'charter.geojson').write_text(json.dumps({
            "type": "FeatureCollection",
            "features": [{"type": "Feature"}, {"type": "Feature"}],
            "metadata": {"generated_at": "2025-06-01T12:00:00+00:00"},
        }), encoding='utf-8')
        (tmp_path / 'cache-icons.json').write_text(json.dumps({"1": {"icon": "charter"}}), encoding='utf-8')

        with patch('run.get_source_module') as mock_get:
            assert run.main(cli_args + ['--status']) == 0
            mock_get.assert_not_called()

        out = capsys.readouterr().out
        assert "Snapshot: 2 features" in out
        assert "2025-06-01T12:00:00+00:00" in out
        assert "Cache: 1 entries" in out

    def test_status_without_files(self, cli_args, capsys):
        assert run.main(cli_args + ['--status']) == 0
        out = capsys.readouterr().out
        assert "not found" in out
        assert "Cache: 0 entries" in out
