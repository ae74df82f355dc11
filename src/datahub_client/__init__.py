"""datahub_client - Push data packages to DataHub.

This library uploads a data package's files to the DataHub rawstore and
submits a source spec asking the processing API to build the dataset.

Logging uses loguru and is disabled by default; call
``logger.enable("datahub_client")`` (or set ``DATAHUB_DEBUG=1``) to see it.

Example:
    >>> from datahub_client import DataHub, PushOptions, load_config, load_dataset
    >>> async with DataHub.from_config(load_config()) as datahub:
    ...     result = await datahub.push(
    ...         load_dataset("./my-dataset"),
    ...         PushOptions(findability="published", sheets="all"),
    ...     )
"""

from loguru import logger

from datahub_client.adapters.http import ApiClient, ServiceAuthorizer
from datahub_client.adapters.rawstore import RawstoreClient
from datahub_client.adapters.readers import PandasSheetReader
from datahub_client.config import ClientConfig, find_project_root, load_config
from datahub_client.core.exceptions import (
    ApiError,
    AuthorizationError,
    ConfigurationError,
    DatahubError,
    DatasetLoadError,
    EmptyResourceError,
    EmptySheetError,
    FlowLoadError,
    NetworkError,
    ProcessingError,
    RemoteResourceUnreachableError,
    ResponseError,
    SheetSelectionError,
    SubmissionError,
    TransferError,
    UploadError,
)
from datahub_client.core.flow import generate_descriptor_for_flow, load_flow
from datahub_client.core.models import (
    Dataset,
    DialectStep,
    Findability,
    OutputOptions,
    PushOptions,
    Resource,
    SheetStep,
    UploadCredential,
    normalize_findability,
)
from datahub_client.core.ports import (
    NullProgressReporter,
    ProgressCallback,
    ProgressReporter,
    SheetReader,
)
from datahub_client.core.processing import derive_processing_steps, handle_outputs
from datahub_client.core.spec import build_source_spec
from datahub_client.datahub import DataHub, PushState
from datahub_client.loading import load_dataset, load_resource
from datahub_client.progress import RichProgressReporter


logger.disable("datahub_client")

__version__ = "0.1.0"

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthorizationError",
    "ClientConfig",
    "ConfigurationError",
    "DataHub",
    "DatahubError",
    "Dataset",
    "DatasetLoadError",
    "DialectStep",
    "EmptyResourceError",
    "EmptySheetError",
    "Findability",
    "FlowLoadError",
    "NetworkError",
    "NullProgressReporter",
    "OutputOptions",
    "PandasSheetReader",
    "ProcessingError",
    "ProgressCallback",
    "ProgressReporter",
    "PushOptions",
    "PushState",
    "RawstoreClient",
    "RemoteResourceUnreachableError",
    "Resource",
    "ResponseError",
    "RichProgressReporter",
    "ServiceAuthorizer",
    "SheetReader",
    "SheetSelectionError",
    "SheetStep",
    "SubmissionError",
    "TransferError",
    "UploadCredential",
    "UploadError",
    "__version__",
    "build_source_spec",
    "derive_processing_steps",
    "find_project_root",
    "generate_descriptor_for_flow",
    "handle_outputs",
    "load_config",
    "load_dataset",
    "load_flow",
    "load_resource",
    "normalize_findability",
]
