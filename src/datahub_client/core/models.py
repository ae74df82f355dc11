"""Core domain models for datahub_client.

These models are pure Python dataclasses. They describe the dataset being
pushed, the upload credentials handed out by the rawstore, and the
processing steps sent along with the source spec.
"""

from __future__ import annotations

import base64
import copy
import hashlib
import io
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO, ClassVar, Self

from loguru import logger


DATAPACKAGE_JSON = "datapackage.json"

_PUBLIC_ALIASES = re.compile(r"\bpublic\b|\bpublish\b")


class Findability(StrEnum):
    """Visibility tier of a pushed dataset."""

    PUBLISHED = "published"
    UNLISTED = "unlisted"
    PRIVATE = "private"


def normalize_findability(value: str | None) -> Findability:
    """Normalize user input to a Findability.

    ``public`` and ``publish`` are legacy spellings of ``published``. Any
    other unknown value falls back to ``unlisted``.

    Example:
        >>> normalize_findability("public")
        <Findability.PUBLISHED: 'published'>
    """
    if value is None:
        return Findability.UNLISTED
    normalized = _PUBLIC_ALIASES.sub("published", str(value))
    try:
        return Findability(normalized)
    except ValueError:
        logger.warning(
            "Findability: '{}' option is unknown (should be one of: "
            "'published', 'unlisted', 'private'). Using 'unlisted'",
            value,
        )
        return Findability.UNLISTED


def content_hash(chunks: Iterable[bytes]) -> str:
    """Compute the rawstore content address: base64 encoded MD5 digest."""
    digest = hashlib.md5()  # noqa: S324
    for chunk in chunks:
        digest.update(chunk)
    return base64.b64encode(digest.digest()).decode("ascii")


@dataclass(frozen=True, slots=True)
class LocalSource:
    """Resource bytes stored in a local file."""

    path: Path
    kind: ClassVar[str] = "local"

    def open(self) -> BinaryIO:
        return self.path.open("rb")


@dataclass(frozen=True, slots=True)
class InlineSource:
    """Resource bytes held in memory (e.g. a serialized descriptor)."""

    data: bytes
    kind: ClassVar[str] = "inline"

    def open(self) -> BinaryIO:
        return io.BytesIO(self.data)


@dataclass(frozen=True, slots=True)
class RemoteSource:
    """Resource living at a remote URL. Never uploaded."""

    url: str
    kind: ClassVar[str] = "remote"


ResourceSource = LocalSource | InlineSource | RemoteSource


@dataclass(frozen=True, slots=True)
class Resource:
    """One data file belonging to a dataset.

    Attributes:
        descriptor: The resource descriptor (name, path, format, dialect...).
            A private copy is kept so callers cannot change it mid-push.
        source: Where the bytes live.
        size: Size in bytes (0 for remote resources).
        hash: Base64 MD5 of the content (empty for remote resources).
    """

    descriptor: dict[str, Any]
    source: ResourceSource
    size: int = 0
    hash: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "descriptor", copy.deepcopy(dict(self.descriptor)))

    @classmethod
    def from_inline(cls, name: str, path: str, data: bytes) -> Self:
        """Build an in-memory resource, computing its size and hash."""
        return cls(
            descriptor={"name": name, "path": path, "pathType": "local"},
            source=InlineSource(data),
            size=len(data),
            hash=content_hash([data]),
        )

    @property
    def path(self) -> str:
        return str(self.descriptor.get("path", ""))

    @property
    def name(self) -> str:
        name = self.descriptor.get("name")
        if name:
            return str(name)
        return PurePosixPath(self.path).stem

    @property
    def path_type(self) -> str:
        declared = self.descriptor.get("pathType")
        if declared:
            return str(declared)
        return "remote" if self.source.kind == "remote" else "local"

    @property
    def is_remote(self) -> bool:
        return self.path_type == "remote"

    @property
    def format(self) -> str:
        declared = self.descriptor.get("format")
        if declared:
            return str(declared).lower()
        return PurePosixPath(self.path).suffix.lstrip(".").lower()

    @property
    def dialect(self) -> dict[str, Any] | None:
        dialect = self.descriptor.get("dialect")
        return dict(dialect) if dialect else None


@dataclass(frozen=True, slots=True)
class Dataset:
    """A data package: a descriptor plus its resources.

    Example:
        >>> ds = Dataset(descriptor={"name": "d", "resources": []})
        >>> ds.name
        'd'
    """

    descriptor: dict[str, Any]
    resources: tuple[Resource, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "descriptor", copy.deepcopy(dict(self.descriptor)))
        object.__setattr__(self, "resources", tuple(self.resources))

    @property
    def name(self) -> str:
        return str(self.descriptor.get("name", ""))

    def with_resource(self, resource: Resource) -> Self:
        """Return a new Dataset with the resource appended."""
        descriptor = copy.deepcopy(self.descriptor)
        descriptor.setdefault("resources", []).append(resource.descriptor)
        return type(self)(descriptor=descriptor, resources=(*self.resources, resource))


@dataclass(frozen=True, slots=True)
class UploadCredential:
    """Upload permission for one resource, issued by /rawstore/authorize.

    Attributes:
        path: Resource path the credential was requested for.
        upload_url: Object store endpoint to POST the file to.
        upload_query: Form fields required by the object store's POST policy,
            including the content-addressed ``key``.
        exists: True when the object is already stored and the upload can be
            skipped.
    """

    path: str
    upload_url: str
    upload_query: Mapping[str, str]
    exists: bool = False

    @classmethod
    def from_response(cls, path: str, payload: Mapping[str, Any]) -> Self:
        return cls(
            path=path,
            upload_url=payload["upload_url"],
            upload_query=dict(payload.get("upload_query") or {}),
            exists=bool(payload.get("exists", False)),
        )

    @property
    def resource_url(self) -> str:
        """Durable location of the object inside the rawstore."""
        key = str(self.upload_query.get("key", ""))
        return f"{self.upload_url.rstrip('/')}/{key.lstrip('/')}"


@dataclass(frozen=True, slots=True)
class SheetStep:
    """Re-read one sheet of a spreadsheet resource with a known schema."""

    input: str
    output: str
    sheet_index: int
    schema: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "input": self.input,
            "output": self.output,
            "tabulator": {"sheet": self.sheet_index},
            "schema": self.schema,
        }


@dataclass(frozen=True, slots=True)
class DialectStep:
    """Re-parse a delimited text resource with a custom dialect."""

    input: str
    output: str
    delimiter: str | None = None
    quote_char: str | None = None
    escape_char: str | None = None

    def to_dict(self) -> dict[str, Any]:
        tabulator = {
            "delimiter": self.delimiter,
            "quotechar": self.quote_char,
            "escapechar": self.escape_char,
        }
        return {
            "input": self.input,
            "output": self.output,
            "tabulator": {k: v for k, v in tabulator.items() if v is not None},
        }


ProcessingStep = SheetStep | DialectStep


@dataclass(frozen=True, slots=True)
class OutputOptions:
    """Extra artifacts the processing API should produce."""

    zip: bool = False
    sqlite: bool = False


@dataclass(frozen=True, slots=True)
class PushOptions:
    """Options for a single push.

    Attributes:
        findability: Visibility of the dataset. Strings are normalized.
        sheets: Sheet selector for spreadsheet resources ("all", "1,2",
            "Sheet2"); None selects the first sheet.
        outputs: Requested output artifacts.
        schedule: Recurrence string, e.g. "every 1d".
    """

    findability: Findability = Findability.UNLISTED
    sheets: str | None = None
    outputs: OutputOptions = field(default_factory=OutputOptions)
    schedule: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "findability", normalize_findability(self.findability)
        )
