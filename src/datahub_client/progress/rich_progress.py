"""Rich-based progress reporter for rawstore uploads."""

from __future__ import annotations

from typing import TYPE_CHECKING

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


if TYPE_CHECKING:
    from types import TracebackType

    from datahub_client.core.ports import ProgressCallback


class RichProgressReporter:
    """Progress reporter drawing one Rich bar per uploaded file.

    A bar fills as the multipart body is sent and is relabelled once the
    object store has answered. Accepted files read ``Uploaded``; failed
    uploads read ``Failed`` and their bar stays where it stopped.

    Example:
        with RichProgressReporter() as reporter:
            await datahub.push(dataset, options, progress=reporter)
    """

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the progress display.

        Args:
            console: Console to render to. Defaults to Rich's stdout console.
        """
        self._progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=console,
        )
        self._uploads: dict[str, TaskID] = {}
        self._failed: list[str] = []
        self._started = False

    def __enter__(self) -> RichProgressReporter:
        self._progress.start()
        self._started = True
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self._progress.stop()
        self._started = False

    def start_task(self, name: str, total: int) -> ProgressCallback:
        """Add a bar for an upload.

        Args:
            name: Resource path being uploaded.
            total: Size of the multipart body in bytes.

        Returns:
            A callback taking (bytes_sent, total_bytes).
        """
        if not self._started:
            self._progress.start()
            self._started = True

        task_id = self._progress.add_task(f"Uploading {name}", total=total)
        self._uploads[name] = task_id

        def callback(sent: int, _total: int) -> None:
            self._progress.update(task_id, completed=sent)

        return callback

    def finish_task(self, name: str) -> None:
        """Fill the bar of an upload the object store accepted."""
        task_id = self._uploads.pop(name, None)
        if task_id is None:
            return
        total = self._progress.tasks[task_id].total
        self._progress.update(
            task_id, completed=total, description=f"Uploaded {name}"
        )

    def fail_task(self, name: str) -> None:
        """Stop the bar of a failed upload without filling it."""
        task_id = self._uploads.pop(name, None)
        if task_id is None:
            return
        self._progress.update(task_id, description=f"Failed {name}")
        self._progress.stop_task(task_id)
        self._failed.append(name)

    @property
    def failed_uploads(self) -> list[str]:
        """Names of the uploads marked failed, in failure order."""
        return list(self._failed)
