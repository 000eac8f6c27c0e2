import threading
from pathlib import Path

import pytest

from livedocs.errors import RenderError
from livedocs.scheduler import DebouncedCall, Debouncer


def test_burst_is_flushed_once_with_union_of_items() -> None:
    debouncer: Debouncer[str] = Debouncer(wait=1.0)

    debouncer.add(["a.md"], now=0.0)
    debouncer.add(["b.md", "a.md"], now=0.5)
    assert debouncer.poll(now=1.2) is None

    debouncer.add(["c.md"], now=1.4)
    assert debouncer.poll(now=2.3) is None

    assert debouncer.poll(now=2.5) == ["a.md", "b.md", "c.md"]
    assert debouncer.poll(now=10.0) is None
    assert not debouncer.pending


def test_items_after_a_flush_start_a_new_window() -> None:
    debouncer: Debouncer[str] = Debouncer(wait=1.0)
    debouncer.add(["a.md"], now=0.0)
    assert debouncer.poll(now=1.01) == ["a.md"]

    debouncer.add(["b.md"], now=1.1)

    assert debouncer.remaining(now=1.6) == pytest.approx(0.5)
    assert debouncer.poll(now=2.2) == ["b.md"]


def test_negative_wait_is_rejected() -> None:
    with pytest.raises(ValueError):
        Debouncer(wait=-1)


def test_debounced_call_flush_runs_pending_batch() -> None:
    calls: list[list[Path]] = []
    debounced: DebouncedCall[Path] = DebouncedCall(calls.append, wait=60.0)

    debounced(Path("a.md"))
    debounced([Path("b.md"), Path("a.md")])
    assert debounced.pending

    debounced.flush()
    debounced.flush()

    assert calls == [[Path("a.md"), Path("b.md")]]
    assert not debounced.pending


def test_debounced_call_fires_after_quiet_window() -> None:
    done = threading.Event()
    calls: list[list[str]] = []

    def record(batch: list[str]) -> None:
        calls.append(batch)
        done.set()

    debounced: DebouncedCall[str] = DebouncedCall(record, wait=0.05)
    debounced("a.md")
    debounced("b.md")

    assert done.wait(timeout=5.0)
    assert calls == [["a.md", "b.md"]]


def test_failing_run_is_logged_and_does_not_raise(caplog: pytest.LogCaptureFixture) -> None:
    def fail(batch: list[str]) -> None:
        raise RenderError("broken.md")

    debounced: DebouncedCall[str] = DebouncedCall(fail, wait=60.0, name="rebuild")
    debounced("broken.md")

    debounced.flush()

    assert any("broken.md" in record.getMessage() for record in caplog.records)


def test_shared_run_lock_serializes_operations() -> None:
    lock = threading.Lock()
    active = 0
    overlaps: list[int] = []

    def work(batch: list[str]) -> None:
        nonlocal active
        active += 1
        overlaps.append(active)
        active -= 1

    first: DebouncedCall[str] = DebouncedCall(work, wait=60.0, run_lock=lock)
    second: DebouncedCall[str] = DebouncedCall(work, wait=60.0, run_lock=lock)
    first("a")
    second("b")

    with lock:
        runner = threading.Thread(target=first.flush)
        runner.start()
        runner.join(timeout=0.1)
        assert runner.is_alive()

    runner.join(timeout=5.0)
    second.flush()
    assert overlaps == [1, 1]
