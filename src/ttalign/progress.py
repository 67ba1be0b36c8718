"""Progress tracking and logging of alignment results."""

import logging
import threading
from typing import Protocol, runtime_checkable

from rich.console import Console

log = logging.getLogger(__name__)


@runtime_checkable
class TrackProgress(Protocol):
    """Sink for progress messages with a cancellation check."""

    def log(self, format: str, *args: object) -> None:
        ...

    def is_cancelled(self) -> bool:
        ...


class NullTrackProgress:
    """Ignores all messages and is never cancelled."""

    def log(self, format: str, *args: object) -> None:
        pass

    def is_cancelled(self) -> bool:
        return False


class _CancellableProgress:
    def __init__(self) -> None:
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Request that a running batch stops after the current slice."""
        self._cancelled.set()

    def reset(self) -> None:
        self._cancelled.clear()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()


class LoggingTrackProgress(_CancellableProgress):
    """Send messages to a `logging.Logger`."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO):
        super().__init__()
        self.logger = logger or log
        self.level = level

    def log(self, format: str, *args: object) -> None:
        self.logger.log(self.level, format, *args)


class ConsoleTrackProgress(_CancellableProgress):
    """Print messages to a rich console."""

    def __init__(self, console: Console | None = None, style: str | None = None):
        super().__init__()
        self.console = console or Console()
        self.style = style

    def log(self, format: str, *args: object) -> None:
        self.console.print(
            format % args if args else format, style=self.style, markup=False
        )


def progress_or_null(progress: TrackProgress | None) -> TrackProgress:
    """Return the progress sink, or a no-op sink if None."""
    return NullTrackProgress() if progress is None else progress
