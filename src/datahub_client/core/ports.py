"""Port interfaces for hexagonal architecture.

Ports define contracts that adapters must implement. The core domain
depends only on these protocols, never on concrete implementations.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable


if TYPE_CHECKING:
    from datahub_client.core.models import Resource

ProgressCallback = Callable[[int, int], None]

ResourceFetcher = Callable[["Resource"], Awaitable[bytes]]


@runtime_checkable
class ProgressReporter(Protocol):
    """Reports upload progress to the user.

    This protocol defines the contract for progress display adapters.
    The core domain uses this to report progress without depending
    on any specific UI library.
    """

    def start_task(self, name: str, total: int) -> ProgressCallback:
        """Start tracking an upload task.

        Args:
            name: Human-readable name for the task (resource path).
            total: Total bytes to send.

        Returns:
            A ProgressCallback to call with (bytes_sent, total_bytes).
        """
        ...

    def finish_task(self, name: str) -> None:
        """Mark a task as complete once all its bytes were accepted.

        Args:
            name: The task name passed to start_task().
        """
        ...

    def fail_task(self, name: str) -> None:
        """Mark a task as failed. finish_task() is not called for it.

        Args:
            name: The task name passed to start_task().
        """
        ...


class NullProgressReporter:
    """A ProgressReporter that produces no output.

    Used as the default when no progress reporting is desired.
    """

    def start_task(self, name: str, total: int) -> ProgressCallback:  # noqa: ARG002
        """Return a no-op callback."""
        return lambda _sent, _total: None

    def finish_task(self, name: str) -> None:
        """Do nothing."""
        _ = name  # Unused but required by protocol

    def fail_task(self, name: str) -> None:
        """Do nothing."""
        _ = name


@runtime_checkable
class SheetReader(Protocol):
    """Reads sheets out of spreadsheet workbooks (xls, xlsx)."""

    def sheet_names(self, content: bytes) -> list[str]:
        """Return the workbook's sheet names in order."""
        ...

    def read_rows(self, content: bytes, sheet_index: int) -> list[list[Any]]:
        """Return all rows of a sheet, header row first.

        Args:
            content: Raw workbook bytes.
            sheet_index: 1-based sheet position.

        Returns:
            Rows as lists of cell values. Empty list for an empty sheet.
        """
        ...
