"""Domain exceptions for datahub_client.

All library errors inherit from DatahubError, allowing users to catch
any library exception with a single except clause. Each exception provides
a recovery_hint property with guidance on resolving the error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from pathlib import Path


class DatahubError(Exception):
    """Base class for all datahub_client exceptions.

    Catch this to handle any error from the library.
    """

    @property
    def recovery_hint(self) -> str | None:
        """Optional guidance on how to resolve this error."""
        return None


class ApiError(DatahubError):
    """Base class for errors talking to the DataHub API or its object store."""

    @property
    def retryable(self) -> bool:
        """Whether retrying the whole push may succeed."""
        return False


class AuthorizationError(ApiError):
    """Raised when the auth service refuses a service token.

    Attributes:
        service: The service the token was requested for (rawstore, source).
        status: HTTP status code returned by /auth/authorize.
        reason: HTTP reason phrase.
    """

    def __init__(self, service: str, status: int, reason: str) -> None:
        self.service = service
        self.status = status
        self.reason = reason
        super().__init__(f"Authz server: {reason}")

    @property
    def recovery_hint(self) -> str:
        """Suggest logging in again."""
        return "Check that your token is valid or log in again"


class ResponseError(ApiError):
    """Raised when an API endpoint answers with an unexpected status.

    Attributes:
        status: HTTP status code.
        reason: HTTP reason phrase.
        user_error: True for 4xx responses (the request itself was rejected).
        detail: Message extracted from the response body, if any.
    """

    def __init__(
        self,
        status: int,
        reason: str = "",
        detail: str | None = None,
        *,
        user_error: bool = False,
    ) -> None:
        self.status = status
        self.reason = reason
        self.detail = detail
        self.user_error = user_error
        super().__init__(
            detail
            or f"Response error - no information. Status code: {status} - {reason}"
        )

    @property
    def retryable(self) -> bool:
        """Server-side failures may succeed on a later push."""
        return not self.user_error


class SubmissionError(ApiError):
    """Raised when the source API accepts the request but rejects the spec.

    Attributes:
        errors: Error messages reported by the processing API.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("\n".join(self.errors))


class NetworkError(ApiError):
    """Raised when a request gets no response, e.g. on a refused connection.

    No response was received, so pushing again may succeed.

    Attributes:
        url: The URL that was being requested.
        cause: The underlying httpx exception.
    """

    def __init__(self, url: str, cause: Exception) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Request to {url} failed: {cause}")

    @property
    def retryable(self) -> bool:
        """Transport failures are transient."""
        return True

    @property
    def recovery_hint(self) -> str:
        """Suggest checking connectivity."""
        return "Check your network connection and push again"


class TransferError(DatahubError):
    """Base class for errors moving resource bytes.

    Attributes:
        path: The resource path (or URL) that caused the error.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        path: str,
        cause: Exception | None = None,
    ) -> None:
        self.path = path
        self.cause = cause
        super().__init__(message)


class UploadError(TransferError):
    """Raised when the object store rejects an upload.

    Attributes:
        status: HTTP status code returned by the object store.
        body: Response body text.
    """

    def __init__(self, path: str, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(
            f"Error uploading to rawstore for {path} with code {status} reason {body}",
            path=path,
        )

    @property
    def recovery_hint(self) -> str:
        """Uploads are content addressed so pushing again is safe."""
        return "Push again; files already stored will be skipped"


class EmptyResourceError(TransferError):
    """Raised when a resource has no bytes to upload."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"You can not push empty files, please add some data and try again: {path}",
            path=path,
        )

    @property
    def recovery_hint(self) -> str:
        """Suggest adding data."""
        return f"Add some data to {self.path} or remove it from the resources"


class RemoteResourceUnreachableError(TransferError):
    """Raised when a remote resource URL fails the reachability check.

    Attributes:
        status: HTTP status code, or None when the request itself failed.
    """

    def __init__(
        self, url: str, status: int | None = None, cause: Exception | None = None
    ) -> None:
        self.status = status
        reason = f"status {status}" if status is not None else str(cause)
        super().__init__(
            f"Remote resource is not reachable: {url} ({reason})",
            path=url,
            cause=cause,
        )

    @property
    def recovery_hint(self) -> str:
        """Suggest verifying the URL."""
        return f"Verify the resource URL is publicly accessible: {self.path}"


class ProcessingError(DatahubError):
    """Base class for errors deriving processing steps."""

    pass


class SheetSelectionError(ProcessingError):
    """Raised when a requested sheet index or name does not exist.

    Attributes:
        token: The selector token that could not be resolved.
        available: Sheet names found in the workbook.
    """

    def __init__(
        self, token: int | str, available: list[str] | None = None
    ) -> None:
        self.token = token
        self.available = available if available is not None else []
        if isinstance(token, int):
            message = (
                f"sheet index {token} is out of range: please, provide existing "
                "sheet index or use sheet name."
            )
        else:
            message = f"sheet name {token} does not exist in the given file."
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """List available sheets."""
        if self.available:
            return f"Available sheets: {', '.join(self.available)}"
        return "Sheet indexes start from 1"


class EmptySheetError(ProcessingError):
    """Raised when a selected sheet has no rows.

    Attributes:
        resource: Name of the spreadsheet resource.
        sheet: 1-based sheet index.
    """

    def __init__(self, resource: str, sheet: int) -> None:
        self.resource = resource
        self.sheet = sheet
        super().__init__(
            "You cannot push an empty sheet. Please, add some data and try again. "
            f"({resource}, sheet {sheet})"
        )


class ConfigurationError(DatahubError):
    """Raised for configuration problems (missing or unreadable settings)."""

    pass


class FlowLoadError(DatahubError):
    """Raised when a processing flow file cannot be loaded.

    Attributes:
        flow_path: Path to the flow file that failed to load.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        flow_path: Path,
        cause: Exception | None = None,
    ) -> None:
        self.flow_path = flow_path
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Suggest checking the YAML."""
        return f"Check that {self.flow_path.name} is correctly formatted"


class DatasetLoadError(DatahubError):
    """Raised when a dataset descriptor or resource cannot be loaded.

    Attributes:
        source: The path or identifier that failed to load.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        source: str,
        cause: Exception | None = None,
    ) -> None:
        self.source = source
        self.cause = cause
        super().__init__(message)
