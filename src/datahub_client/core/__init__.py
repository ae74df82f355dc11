"""Core domain module for datahub_client.

Domain models, port definitions and the pure parts of a push: sheet
selection, schema inference, flow handling and source spec assembly.
Network I/O lives in the adapters.
"""

from datahub_client.core.models import (
    Dataset,
    Findability,
    PushOptions,
    Resource,
    UploadCredential,
)
from datahub_client.core.ports import ProgressCallback, ProgressReporter, SheetReader


__all__ = [
    "Dataset",
    "Findability",
    "ProgressCallback",
    "ProgressReporter",
    "PushOptions",
    "Resource",
    "SheetReader",
    "UploadCredential",
]
