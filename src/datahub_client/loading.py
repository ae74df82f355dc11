"""Dataset loading utilities.

Builds Dataset and Resource objects from a data package directory, a
datapackage.json file, an in-memory descriptor or a single data file.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from typing import Any

from datahub_client.core.exceptions import DatasetLoadError
from datahub_client.core.models import (
    DATAPACKAGE_JSON,
    Dataset,
    InlineSource,
    LocalSource,
    RemoteSource,
    Resource,
    content_hash,
)


# Chunk size for streaming hashes (64KB)
_CHUNK_SIZE = 64 * 1024

_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_NAME_PATTERN = re.compile(r"[^a-z0-9._-]+")


def is_url(path: str) -> bool:
    return bool(_URL_PATTERN.match(path))


def has_descriptor(directory: Path | None = None) -> bool:
    """Check whether a directory holds a datapackage.json."""
    if directory is None:
        directory = Path.cwd()
    return (directory / DATAPACKAGE_JSON).is_file()


def _resource_name(path: str) -> str:
    stem = PurePosixPath(path).stem.lower()
    return _NAME_PATTERN.sub("-", stem).strip("-") or "resource"


def _hash_file(path: Path) -> str:
    with path.open("rb") as f:
        return content_hash(iter(lambda: f.read(_CHUNK_SIZE), b""))


def _load_resource(descriptor: Mapping[str, Any], base_path: Path) -> Resource:
    """Build a Resource from its descriptor, filling in derived fields."""
    descriptor = dict(descriptor)
    path = descriptor.get("path")

    if path is None and "data" in descriptor:
        data = descriptor["data"]
        raw = data.encode() if isinstance(data, str) else json.dumps(data).encode()
        name = str(descriptor.get("name") or "inline")
        descriptor.setdefault("name", name)
        return Resource(
            descriptor=descriptor,
            source=InlineSource(raw),
            size=len(raw),
            hash=content_hash([raw]),
        )
    if not isinstance(path, str) or not path:
        raise DatasetLoadError(
            f"Resource has no usable path: {descriptor.get('name', '?')}",
            source=str(base_path),
        )

    descriptor.setdefault("name", _resource_name(path))
    suffix = PurePosixPath(path.split("?", 1)[0]).suffix.lstrip(".").lower()
    if suffix:
        descriptor.setdefault("format", suffix)

    if is_url(path):
        descriptor.setdefault("pathType", "remote")
        return Resource(descriptor=descriptor, source=RemoteSource(path))

    descriptor.setdefault("pathType", "local")
    local = base_path / path
    try:
        size = local.stat().st_size
        digest = _hash_file(local)
    except OSError as e:
        raise DatasetLoadError(
            f"Resource file not found: {path}", source=str(local), cause=e
        ) from e
    return Resource(
        descriptor=descriptor, source=LocalSource(local), size=size, hash=digest
    )


def load_resource(path: Path | str, base_path: Path | None = None) -> Resource:
    """Build a Resource from a single data file.

    Args:
        path: File path, relative to ``base_path`` when given.
        base_path: Directory the resource path is relative to. Defaults to
            the file's own directory, giving a bare file name as path.

    Returns:
        A local Resource with name, format, size and hash filled in.
    """
    file_path = Path(path)
    if base_path is None:
        base_path = file_path.parent
        file_path = Path(file_path.name)
    return _load_resource({"path": file_path.as_posix()}, base_path)


def load_dataset(source: Path | str | Mapping[str, Any]) -> Dataset:
    """Load a dataset.

    Args:
        source: A data package directory, a path to its datapackage.json, or
            an in-memory descriptor (resources relative to the current
            directory).

    Returns:
        The Dataset, with each resource descriptor normalized (name, format,
        pathType).

    Raises:
        DatasetLoadError: If the descriptor or a local resource can't be read.
    """
    if isinstance(source, Mapping):
        descriptor = dict(source)
        base_path = Path.cwd()
    else:
        path = Path(source)
        descriptor_path = path / DATAPACKAGE_JSON if path.is_dir() else path
        base_path = descriptor_path.parent
        try:
            with descriptor_path.open() as f:
                descriptor = json.load(f)
        except (OSError, ValueError) as e:
            raise DatasetLoadError(
                f"Couldn't load descriptor from {descriptor_path}",
                source=str(descriptor_path),
                cause=e,
            ) from e
        if not isinstance(descriptor, dict):
            raise DatasetLoadError(
                f"Descriptor must be a JSON object: {descriptor_path}",
                source=str(descriptor_path),
            )

    resources = tuple(
        _load_resource(item, base_path) for item in descriptor.get("resources") or []
    )
    if "resources" in descriptor:
        descriptor["resources"] = [resource.descriptor for resource in resources]
    return Dataset(descriptor=descriptor, resources=resources)
