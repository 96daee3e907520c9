"""Tests for GeoJSON building and the snapshot guard"""

import json

import pytest

from src.shared.collector import ResolvedRecord
from src.shared.export_service import ExportService, SnapshotWriter, count_features


def feature(store_id, lon=-0.5, lat=39.4):
    record = ResolvedRecord(
        id=store_id, icon="charter", name=f"Store {store_id}", description="Calle Mayor 1",
        geometry={"type": "Point", "coordinates": [lon, lat]},
    )
    return ExportService.build_feature(record, "Charter")


def write_prior(path, count):
    path.write_text(json.dumps({
        "type": "FeatureCollection",
        "features": [feature(str(i)) for i in range(count)],
    }), encoding="utf-8")


class TestExportService:

    def test_feature_shape(self):
        result = feature("1")
        assert result == {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [-0.5, 39.4]},
            "properties": {
                "id": "1",
                "name": "Store 1",
                "address": "Calle Mayor 1",
                "brand": "Charter",
                "icon": "charter",
            },
        }

    def test_feature_collection_with_metadata(self):
        metadata = ExportService.build_metadata("consum", ids_seen=5, accepted=1, resolved=2)
        collection = ExportService.generate_feature_collection([feature("1")], metadata)

        assert collection["type"] == "FeatureCollection"
        assert len(collection["features"]) == 1
        assert collection["metadata"]["source"] == "consum"
        assert collection["metadata"]["ids"] == 5
        assert collection["metadata"]["accepted"] == 1
        assert collection["metadata"]["resolved"] == 2
        assert "generated_at" in collection["metadata"]

    def test_collection_without_metadata(self):
        assert "metadata" not in ExportService.generate_feature_collection([])


class TestCountFeatures:

    def test_counts_existing(self, tmp_path):
        path = tmp_path / "out.geojson"
        write_prior(path, 3)
        assert count_features(path) == 3

    def test_missing_or_invalid(self, tmp_path):
        assert count_features(tmp_path / "nope.geojson") is None
        bad = tmp_path / "bad.geojson"
        bad.write_text("{not json", encoding="utf-8")
        assert count_features(bad) is None


class TestSnapshotWriter:

    def test_empty_result_keeps_prior_snapshot(self, tmp_path, caplog):
        path = tmp_path / "charter.geojson"
        write_prior(path, 3)
        before = path.read_text(encoding="utf-8")

        written = SnapshotWriter(path).write([], {"source": "consum"})

        assert written is False
        assert path.read_text(encoding="utf-8") == before
        assert any("keeping previous snapshot" in r.message for r in caplog.records)

    def test_empty_result_on_first_run_writes_empty_collection(self, tmp_path):
        path = tmp_path / "docs" / "charter.geojson"

        assert SnapshotWriter(path).write([]) is True

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {"type": "FeatureCollection", "features": []}

    def test_empty_result_replaces_empty_prior(self, tmp_path):
        path = tmp_path / "charter.geojson"
        write_prior(path, 0)
        assert SnapshotWriter(path).write([], {"ids": 0}) is True
        assert json.loads(path.read_text(encoding="utf-8"))["metadata"] == {"ids": 0}

    def test_empty_result_keeps_unreadable_prior(self, tmp_path):
        path = tmp_path / "charter.geojson"
        path.write_text("garbage", encoding="utf-8")
        assert SnapshotWriter(path).write([]) is False
        assert path.read_text(encoding="utf-8") == "garbage"

    def test_non_empty_result_replaces_prior(self, tmp_path):
        path = tmp_path / "charter.geojson"
        write_prior(path, 5)

        assert SnapshotWriter(path).write([feature("9")]) is True

        data = json.loads(path.read_text(encoding="utf-8"))
        assert [f["properties"]["id"] for f in data["features"]] == ["9"]

    def test_write_failure_propagates(self, tmp_path):
        target = tmp_path / "charter.geojson"
        target.mkdir()
        with pytest.raises(OSError):
            SnapshotWriter(target).write([feature("1")])
