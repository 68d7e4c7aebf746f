"""
Unit tests for conversion run tracking.
"""
from core.schema import ConversionResult, ConversionStatus
from services.runs import ConversionTracker


def result(count=3):
    return ConversionResult(document="OFXHEADER:100", transaction_count=count)


def test_initial_state_is_idle():
    tracker = ConversionTracker()
    snapshot = tracker.snapshot()

    assert tracker.status == ConversionStatus.IDLE
    assert snapshot["status"] == "idle"
    assert snapshot["message"] == "Ready to convert your file."


def test_run_lifecycle_success():
    tracker = ConversionTracker()
    run_id = tracker.begin("march.pdf")

    assert tracker.status == ConversionStatus.PROCESSING
    assert tracker.report(run_id, "Processing part 1 of 2...")
    assert tracker.message == "Processing part 1 of 2..."

    assert tracker.succeed(run_id, result())
    snapshot = tracker.snapshot()
    assert snapshot["status"] == "success"
    assert snapshot["message"] == "Success! 3 transactions converted."
    assert snapshot["transaction_count"] == 3
    assert "document" not in snapshot


def test_run_lifecycle_error():
    tracker = ConversionTracker()
    run_id = tracker.begin("march.pdf")

    assert tracker.fail(run_id, "No transactions could be found in the document.")
    snapshot = tracker.snapshot()
    assert snapshot["status"] == "error"
    assert snapshot["error"] == "No transactions could be found in the document."


def test_new_run_supersedes_old_one():
    """Progress and results of a superseded run are discarded."""
    tracker = ConversionTracker()
    first = tracker.begin("old.pdf")
    second = tracker.begin("new.pdf")

    assert second > first
    assert not tracker.report(first, "stale progress")
    assert not tracker.succeed(first, result(1))
    assert not tracker.fail(first, "stale failure")
    assert tracker.status == ConversionStatus.PROCESSING
    assert tracker.file_name == "new.pdf"

    assert tracker.succeed(second, result(2))
    assert tracker.result.transaction_count == 2


def test_new_run_after_terminal_state_goes_straight_to_processing():
    tracker = ConversionTracker()
    run_id = tracker.begin("a.pdf")
    tracker.fail(run_id, "boom")

    tracker.begin("b.pdf")

    assert tracker.status == ConversionStatus.PROCESSING
    assert tracker.error is None


def test_progress_after_completion_is_ignored():
    tracker = ConversionTracker()
    run_id = tracker.begin("a.pdf")
    tracker.succeed(run_id, result())

    assert not tracker.report(run_id, "late message")
    assert tracker.message == "Success! 3 transactions converted."


def test_reset_returns_to_idle_and_invalidates_run():
    tracker = ConversionTracker()
    run_id = tracker.begin("a.pdf")

    tracker.reset()

    assert tracker.status == ConversionStatus.IDLE
    assert not tracker.succeed(run_id, result())
    assert tracker.status == ConversionStatus.IDLE
