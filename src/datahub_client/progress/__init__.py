"""Progress reporters for upload feedback."""

from datahub_client.progress.rich_progress import RichProgressReporter


__all__ = ["RichProgressReporter"]
