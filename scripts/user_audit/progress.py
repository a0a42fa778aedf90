"""Progress reporters fed by the worker pool."""

from __future__ import annotations

import logging
import sys
from typing import Protocol, TextIO

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
)

logger = logging.getLogger("user_audit.progress")

BAR_WIDTH = 50


class ProgressReporter(Protocol):
    def report(self, completed: int, total: int) -> None: ...


def _fraction(completed: int, total: int) -> float:
    if total <= 0:
        return 1.0
    return min(max(completed / total, 0.0), 1.0)


class NullProgress:
    """Reporter for contexts where nobody is watching."""

    def report(self, completed: int, total: int) -> None:
        return None


class ProgressBar:
    """Terminal bar drawn with rich; stops itself once every item is done."""

    def __init__(
        self,
        console: Console | None = None,
        description: str = "Retrieving user groups",
    ) -> None:
        self._progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=BAR_WIDTH),
            TaskProgressColumn(),
            MofNCompleteColumn(),
            console=console or Console(stderr=True),
        )
        self._description = description
        self._task: TaskID | None = None
        self._shown = -1.0
        self._closed = False

    @property
    def finished(self) -> bool:
        return self._closed

    @property
    def task(self) -> Task | None:
        if self._task is None:
            return None
        return self._progress.tasks[0]

    def report(self, completed: int, total: int) -> None:
        fraction = _fraction(completed, total)
        if fraction < self._shown or self._closed:
            return
        self._shown = fraction
        total = max(total, 0)
        completed = min(max(completed, 0), total)
        if self._task is None:
            self._progress.start()
            self._task = self._progress.add_task(self._description, total=total)
        self._progress.update(self._task, completed=completed, total=total)
        if fraction >= 1.0:
            self._progress.stop()
            self._closed = True


class LogProgress:
    """Logs one line each time another ``step`` percent of the items is done."""

    def __init__(self, step: int = 10) -> None:
        self._step = max(1, step)
        self._next = self._step
        self._done = False

    def report(self, completed: int, total: int) -> None:
        if self._done:
            return
        percent = _fraction(completed, total) * 100
        if percent >= 100:
            self._done = True
            logger.info("Progress: %d/%d (100%%)", completed, total,
                        extra={"completed": completed, "total": total})
            return
        if percent >= self._next:
            logger.info("Progress: %d/%d (%.0f%%)", completed, total, percent,
                        extra={"completed": completed, "total": total})
            while self._next <= percent:
                self._next += self._step


def make_progress(enabled: bool = True, stream: TextIO | None = None) -> ProgressReporter:
    """Pick a bar for terminals, log lines otherwise."""
    if not enabled:
        return NullProgress()
    stream = stream or sys.stderr
    isatty = getattr(stream, "isatty", None)
    if isatty is not None and isatty():
        return ProgressBar(Console(file=stream))
    return LogProgress()
