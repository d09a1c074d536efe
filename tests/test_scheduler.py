import threading
import time
import pytest
from unittest.mock import Mock

from chainstats.refresh import RefreshResult
from chainstats.scheduler import RefreshScheduler


def test_tick_runs_refresh():
    orchestrator = Mock()
    orchestrator.refresh.return_value = RefreshResult(snapshot=[])
    scheduler = RefreshScheduler(orchestrator, interval=1)

    assert scheduler.tick() is orchestrator.refresh.return_value


def test_tick_is_single_flight():
    """A tick that fires during a running cycle is skipped."""
    entered = threading.Event()
    release = threading.Event()
    orchestrator = Mock()

    def slow_refresh():
        entered.set()
        release.wait(5)
        return RefreshResult(snapshot=[])

    orchestrator.refresh.side_effect = slow_refresh
    scheduler = RefreshScheduler(orchestrator, interval=1)

    worker = threading.Thread(target=scheduler.tick)
    worker.start()
    assert entered.wait(5)

    assert scheduler.tick() is None

    release.set()
    worker.join(5)
    assert orchestrator.refresh.call_count == 1
    # The lock is released once the cycle finishes
    assert scheduler.tick() is not None


def test_start_and_stop():
    orchestrator = Mock()
    orchestrator.refresh.return_value = RefreshResult(snapshot=[])
    scheduler = RefreshScheduler(orchestrator, interval=0.01)

    scheduler.start()
    deadline = time.time() + 5
    while orchestrator.refresh.call_count < 3 and time.time() < deadline:
        time.sleep(0.01)
    scheduler.stop(timeout=5)

    assert orchestrator.refresh.call_count >= 3
    assert not scheduler.running


def test_loop_survives_unexpected_errors():
    orchestrator = Mock()
    calls = []

    def flaky_refresh():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("unexpected")
        scheduler.stop()
        return RefreshResult(snapshot=[])

    orchestrator.refresh.side_effect = flaky_refresh
    scheduler = RefreshScheduler(orchestrator, interval=0.01)

    scheduler.run_forever()

    assert len(calls) == 2


def test_invalid_interval():
    with pytest.raises(ValueError):
        RefreshScheduler(Mock(), interval=0)
