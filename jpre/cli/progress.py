"""Download progress rendering."""

from __future__ import annotations

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)


class DownloadProgress:
    """``(downloaded, total)`` callback that draws a rich progress bar on stderr."""

    def __init__(self, console: Console, *, label: str = "Downloading JDK", enabled: bool | None = None) -> None:
        self.console = console
        self.label = label
        self.enabled = console.is_terminal if enabled is None else enabled
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def __call__(self, downloaded: int, total: int | None) -> None:
        if not self.enabled:
            return
        if self._progress is None or downloaded == 0:
            self._start(total)
        assert self._progress is not None and self._task is not None
        self._progress.update(self._task, completed=downloaded, total=total)
        if total is not None and downloaded >= total:
            self.stop()

    def _start(self, total: int | None) -> None:
        self.stop()
        self._progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=self.console,
            transient=True,
        )
        self._progress.start()
        self._task = self._progress.add_task(self.label, total=total)

    def stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None
