"""Tests for the bounded-concurrency task pool"""

import threading
import time

import pytest
from unittest.mock import patch

from src.shared.concurrency import TaskPool, run_pool


class TestTaskPoolBounds:
    """Concurrency ceiling and completeness"""

    def test_never_exceeds_concurrency(self):
        """At most N resolvers are in flight at any moment"""
        lock = threading.Lock()
        state = {'active': 0, 'peak': 0}

        def resolver(item):
            with lock:
                state['active'] += 1
                state['peak'] = max(state['peak'], state['active'])
            time.sleep(0.01)
            with lock:
                state['active'] -= 1
            return item

        pool = TaskPool(concurrency=3, item_pause=0)
        results = pool.run(list(range(20)), resolver)

        assert sorted(results) == list(range(20))
        assert state['peak'] <= 3

    def test_each_item_resolved_once(self):
        calls = []
        lock = threading.Lock()

        def resolver(item):
            with lock:
                calls.append(item)
            return item * 2

        results = TaskPool(concurrency=4, item_pause=0).run(range(10), resolver)

        assert sorted(calls) == list(range(10))
        assert sorted(results) == [i * 2 for i in range(10)]

    def test_none_results_are_dropped(self):
        results = TaskPool(concurrency=2, item_pause=0).run(
            [1, 2, 3, 4], lambda x: x if x % 2 else None
        )
        assert sorted(results) == [1, 3]

    def test_empty_input(self):
        pool = TaskPool(concurrency=2, item_pause=0)
        assert pool.run([], lambda x: x) == []
        assert pool.errors == []

    def test_zero_concurrency_rejected(self):
        with pytest.raises(ValueError):
            TaskPool(concurrency=0)


class TestTaskPoolFailures:
    """Per-item failures stay inside the pool"""

    def test_failure_does_not_stop_other_items(self):
        def resolver(item):
            if item == 'bad':
                raise RuntimeError("upstream broke")
            return item

        pool = TaskPool(concurrency=2, item_pause=0)
        results = pool.run(['a', 'bad', 'b', 'c'], resolver)

        assert sorted(results) == ['a', 'b', 'c']
        assert len(pool.errors) == 1
        item, error = pool.errors[0]
        assert item == 'bad'
        assert isinstance(error, RuntimeError)

    def test_failure_is_logged(self, caplog):
        def resolver(item):
            raise ValueError("nope")

        TaskPool(concurrency=1, item_pause=0, name='consum').run(['42'], resolver)

        assert any("'42'" in r.message and "[consum]" in r.message for r in caplog.records)

    def test_errors_reset_between_runs(self):
        pool = TaskPool(concurrency=1, item_pause=0)

        def failing(item):
            raise RuntimeError("x")

        pool.run([1], failing)
        assert len(pool.errors) == 1
        pool.run([1], lambda x: x)
        assert pool.errors == []


class TestTaskPoolPacing:
    """Item pause and deadline"""

    def test_item_pause_after_each_item(self):
        with patch('src.shared.concurrency.time.sleep') as mock_sleep:
            TaskPool(concurrency=1, item_pause=0.04).run([1, 2, 3], lambda x: x)

        assert mock_sleep.call_count == 3
        mock_sleep.assert_called_with(0.04)

    def test_past_deadline_dispatches_nothing(self):
        called = []
        pool = TaskPool(concurrency=2, item_pause=0, deadline=time.monotonic() - 1)
        results = pool.run([1, 2, 3], lambda x: called.append(x) or x)

        assert results == []
        assert called == []
        assert pool.skipped == 3

    def test_deadline_stops_dispatch_mid_run(self):
        """Items claimed before the deadline finish; the rest are skipped"""
        pool = TaskPool(concurrency=1, item_pause=0)
        pool.deadline = time.monotonic() + 60

        def resolver(item):
            if item == 2:
                pool.deadline = time.monotonic() - 1
            return item

        results = pool.run([1, 2, 3, 4], resolver)

        assert results == [1, 2]
        assert pool.skipped == 2


def test_run_pool_shortcut():
    assert sorted(run_pool(['x', 'y'], str.upper, concurrency=2, item_pause=0)) == ['X', 'Y']
