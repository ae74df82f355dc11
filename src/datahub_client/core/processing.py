"""Processing steps for the remote pipeline.

The processing API re-reads every uploaded file. Spreadsheets need to be
told which sheets to extract and what schema they have; delimited text
files with an unusual dialect need to be told how to split them. This
module derives those instructions from a dataset's resources.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import frictionless
from loguru import logger

from datahub_client.core.exceptions import EmptySheetError, SheetSelectionError
from datahub_client.core.models import (
    DialectStep,
    OutputOptions,
    ProcessingStep,
    Resource,
    SheetStep,
)


if TYPE_CHECKING:
    from datahub_client.core.ports import ResourceFetcher, SheetReader


SPREADSHEET_FORMATS = frozenset({"xls", "xlsx"})

DEFAULT_DIALECT: Mapping[str, str | None] = {
    "delimiter": ",",
    "quoteChar": '"',
    "escapeChar": None,
}


def parse_sheet_selector(selector: str | None, sheet_names: list[str]) -> list[int]:
    """Resolve a sheet selector to 1-based sheet indexes.

    Args:
        selector: ``"all"``, a comma separated list of 1-based indexes and/or
            sheet names, or None for the first sheet only.
        sheet_names: Sheet names of the workbook, in order.

    Returns:
        List of 1-based sheet indexes, in selector order.

    Raises:
        SheetSelectionError: If an index is out of range or a name is unknown.
    """
    if selector is None or not selector.strip():
        return [1]
    if selector.strip() == "all":
        return list(range(1, len(sheet_names) + 1))

    indexes: list[int] = []
    for raw in selector.split(","):
        token = raw.strip()
        if token.isdigit() and int(token) > 0:
            index = int(token)
            if index > len(sheet_names):
                raise SheetSelectionError(index, sheet_names)
            indexes.append(index)
        elif token in sheet_names:
            indexes.append(sheet_names.index(token) + 1)
        else:
            raise SheetSelectionError(token, sheet_names)
    return indexes


def _missing_to_blank(value: Any) -> Any:
    if value is None or (isinstance(value, float) and value != value):
        return ""
    return value


def infer_schema(
    rows: list[list[Any]], *, integers_as_numbers: bool = False
) -> dict[str, Any]:
    """Infer a Table Schema from rows, the first row being the header.

    Types are guessed by frictionless from the first rows of data. Blank
    header cells get positional ``field<n>`` names and columns without any
    value are typed ``string``.

    Args:
        rows: Header row followed by data rows.
        integers_as_numbers: Report ``integer`` columns as ``number``.
            Spreadsheet numbers are floats, so whole-number columns are
            still numbers there.

    Returns:
        A Table Schema dict ``{"fields": [{"name", "type", "format"}]}``.

    Example:
        >>> infer_schema([["day"], ["2020-01-01"]])["fields"][0]["type"]
        'date'
    """
    if not rows:
        return {"fields": []}
    header = rows[0]
    width = max(len(row) for row in rows)
    names = [
        str(header[idx])
        if idx < len(header) and header[idx] not in (None, "")
        else f"field{idx + 1}"
        for idx in range(width)
    ]
    types = ["string"] * width
    formats = ["default"] * width

    data = [
        [_missing_to_blank(value) for value in row] + [""] * (width - len(row))
        for row in rows[1:]
    ]
    if data:
        table = frictionless.Resource(data=[names, *data])
        table.infer()
        for idx, field in enumerate(table.schema.fields[:width]):
            if field.type != "any":
                types[idx] = field.type
                formats[idx] = field.format or "default"

    fields = []
    for name, field_type, field_format in zip(names, types, formats):
        if integers_as_numbers and field_type == "integer":
            field_type = "number"
        fields.append({"name": name, "type": field_type, "format": field_format})
    return {"fields": fields}


def has_custom_dialect(dialect: Mapping[str, Any] | None) -> bool:
    """True when a dialect differs from plain comma separated values."""
    if not dialect:
        return False
    return any(
        dialect.get(key, default) != default for key, default in DEFAULT_DIALECT.items()
    )


def _sheet_steps(
    resource: Resource,
    content: bytes,
    sheets: str | None,
    reader: SheetReader,
) -> list[SheetStep]:
    indexes = parse_sheet_selector(sheets, reader.sheet_names(content))
    steps = []
    for index in indexes:
        rows = reader.read_rows(content, index)
        if not rows:
            raise EmptySheetError(resource.name, index)
        schema = infer_schema(rows, integers_as_numbers=True)
        steps.append(
            SheetStep(
                input=resource.name,
                output=f"{resource.name}-sheet-{index}",
                sheet_index=index,
                schema=schema,
            )
        )
    return steps


def _dialect_step(resource: Resource) -> DialectStep:
    dialect = resource.dialect or {}
    return DialectStep(
        input=resource.name,
        output=resource.name,
        delimiter=dialect.get("delimiter"),
        quote_char=dialect.get("quoteChar"),
        escape_char=dialect.get("escapeChar"),
    )


def _read_local(resource: Resource) -> bytes:
    source = resource.source
    if source.kind == "remote":
        raise ValueError(f"Cannot read remote resource without a fetcher: {resource.path}")
    with source.open() as f:
        return f.read()


async def read_resource_bytes(resource: Resource) -> bytes:
    """Read a local or inline resource fully, off the event loop."""
    return await asyncio.to_thread(_read_local, resource)


async def derive_processing_steps(
    resources: Iterable[Resource],
    sheets: str | None = None,
    *,
    reader: SheetReader | None = None,
    fetch: ResourceFetcher | None = None,
) -> list[ProcessingStep]:
    """Derive the processing steps for a set of resources.

    Resources are processed concurrently, so the order of the returned
    steps is not tied to the order of ``resources``.

    Args:
        resources: Resources of the dataset being pushed.
        sheets: Sheet selector applied to every spreadsheet resource.
        reader: Spreadsheet reader. Defaults to PandasSheetReader.
        fetch: Coroutine returning a resource's bytes. Defaults to reading
            local/inline resources.

    Returns:
        Steps for spreadsheet and custom-dialect resources; other
        resources pass through without a step.

    Raises:
        SheetSelectionError: If the selector does not match a workbook.
        EmptySheetError: If a selected sheet has no rows.
    """
    if reader is None:
        from datahub_client.adapters.readers import PandasSheetReader

        reader = PandasSheetReader()
    if fetch is None:
        fetch = read_resource_bytes

    steps: list[ProcessingStep] = []

    async def derive(resource: Resource) -> None:
        if resource.format in SPREADSHEET_FORMATS:
            content = await fetch(resource)
            sheet_steps = await asyncio.to_thread(
                _sheet_steps, resource, content, sheets, reader
            )
            logger.debug(
                "Derived {} sheet step(s) for {}", len(sheet_steps), resource.name
            )
            steps.extend(sheet_steps)
        elif has_custom_dialect(resource.dialect):
            steps.append(_dialect_step(resource))

    await asyncio.gather(*(derive(resource) for resource in resources))
    return steps


def handle_outputs(outputs: OutputOptions | Mapping[str, Any] | None) -> list[dict[str, Any]]:
    """Translate output options into processing API output declarations.

    Example:
        >>> handle_outputs(OutputOptions(sqlite=True))
        [{'kind': 'sqlite'}]
    """
    if outputs is None:
        return []
    if isinstance(outputs, Mapping):
        outputs = OutputOptions(
            zip=bool(outputs.get("zip")), sqlite=bool(outputs.get("sqlite"))
        )
    declared: list[dict[str, Any]] = []
    if outputs.zip:
        declared.append({"kind": "zip", "parameters": {"out-file": "dataset.zip"}})
    if outputs.sqlite:
        declared.append({"kind": "sqlite"})
    return declared
