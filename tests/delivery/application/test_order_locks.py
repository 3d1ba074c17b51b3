"""Tests for the per-order lock registry."""

import threading

import pytest

from delivery import locks
from delivery.locks import order_lock


class TestOrderLock:
    def test_is_reentrant(self):
        with order_lock("ord-001"):
            with order_lock("ord-001"):
                assert "order:ord-001" in locks._locks
        assert "order:ord-001" not in locks._locks

    def test_released_locks_are_dropped(self):
        for i in range(50):
            with order_lock(f"ord-{i}"):
                pass
        assert locks._locks == {}

    def test_released_after_an_error(self):
        with pytest.raises(RuntimeError):
            with order_lock("ord-001"):
                raise RuntimeError("handler failed")
        assert locks._locks == {}

    def test_serializes_writers_of_one_order(self):
        inside = threading.Event()
        release = threading.Event()
        entered = []

        def first():
            with order_lock("ord-001"):
                inside.set()
                release.wait(timeout=5)
                entered.append("first")

        def second():
            inside.wait(timeout=5)
            with order_lock("ord-001"):
                entered.append("second")

        threads = [threading.Thread(target=first), threading.Thread(target=second)]
        for thread in threads:
            thread.start()
        inside.wait(timeout=5)
        assert entered == []
        release.set()
        for thread in threads:
            thread.join(timeout=5)

        assert entered == ["first", "second"]
        assert locks._locks == {}
