import logging

from rich.console import Console

from ttalign.progress import (
    ConsoleTrackProgress,
    LoggingTrackProgress,
    NullTrackProgress,
    TrackProgress,
    progress_or_null,
)


def test_null_track_progress():
    progress = progress_or_null(None)
    assert isinstance(progress, NullTrackProgress)
    assert isinstance(progress, TrackProgress)
    progress.log("ignored %d", 1)
    assert not progress.is_cancelled()


def test_logging_track_progress(caplog):
    progress = LoggingTrackProgress()
    assert progress_or_null(progress) is progress
    with caplog.at_level(logging.INFO, logger="ttalign.progress"):
        progress.log("Best Slice %d  x %g  y %g = %g%s", 1, 2.0, -1.0, 0.5, "")
    assert "Best Slice 1  x 2  y -1 = 0.5" in caplog.text


def test_logging_track_progress_cancel():
    progress = LoggingTrackProgress(logging.getLogger("test"))
    assert not progress.is_cancelled()
    progress.cancel()
    assert progress.is_cancelled()
    progress.reset()
    assert not progress.is_cancelled()


def test_console_track_progress():
    console = Console(record=True, width=120)
    progress = ConsoleTrackProgress(console)
    progress.log("Best Slice %d  x 0  y 0 = 0", 3)
    progress.log("[not markup]")
    text = console.export_text()
    assert "Best Slice 3  x 0  y 0 = 0" in text
    assert "[not markup]" in text
