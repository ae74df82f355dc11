"""Unit tests for processing step derivation."""

from __future__ import annotations

import datetime as dt
from typing import Any

import pytest

from datahub_client.core.models import InlineSource, Resource


class FakeSheetReader:
    """SheetReader serving canned sheets; ignores the workbook bytes."""

    def __init__(self, sheets: dict[str, list[list[Any]]]) -> None:
        self._sheets = sheets
        self.reads: list[int] = []

    def sheet_names(self, content: bytes) -> list[str]:
        return list(self._sheets)

    def read_rows(self, content: bytes, sheet_index: int) -> list[list[Any]]:
        self.reads.append(sheet_index)
        return list(self._sheets.values())[sheet_index - 1]


def _workbook(name: str = "budget") -> Resource:
    return Resource(
        descriptor={"name": name, "path": f"data/{name}.xlsx", "format": "xlsx"},
        source=InlineSource(b"workbook"),
        size=8,
    )


def _csv(name: str = "sample", dialect: dict[str, Any] | None = None) -> Resource:
    descriptor: dict[str, Any] = {"name": name, "path": f"data/{name}.csv"}
    if dialect is not None:
        descriptor["dialect"] = dialect
    return Resource(descriptor=descriptor, source=InlineSource(b"a;b\n1;2\n"), size=8)


SHEETS = {
    "Income": [["month", "amount"], ["jan", 10], ["feb", 12]],
    "Costs": [["month", "amount"], ["jan", 3.5]],
    "Notes": [["note"], ["draft"]],
}


@pytest.mark.core
class TestParseSheetSelector:
    """Tests for parse_sheet_selector()."""

    def test_none_selects_first_sheet(self) -> None:
        """No selector means the first sheet only."""
        from datahub_client.core.processing import parse_sheet_selector

        assert parse_sheet_selector(None, ["a", "b"]) == [1]

    def test_all_selects_every_sheet(self) -> None:
        """"all" selects every sheet in order."""
        from datahub_client.core.processing import parse_sheet_selector

        assert parse_sheet_selector("all", ["a", "b", "c"]) == [1, 2, 3]

    def test_mixed_indexes_and_names(self) -> None:
        """Indexes and names can be mixed in one comma list."""
        from datahub_client.core.processing import parse_sheet_selector

        assert parse_sheet_selector("3, Income", list(SHEETS)) == [3, 1]

    def test_index_out_of_range(self) -> None:
        """An index past the last sheet should raise."""
        from datahub_client.core.exceptions import SheetSelectionError
        from datahub_client.core.processing import parse_sheet_selector

        with pytest.raises(SheetSelectionError, match="sheet index 4 is out of range"):
            parse_sheet_selector("4", list(SHEETS))

    def test_unknown_name(self) -> None:
        """An unknown sheet name should raise."""
        from datahub_client.core.exceptions import SheetSelectionError
        from datahub_client.core.processing import parse_sheet_selector

        with pytest.raises(SheetSelectionError, match="sheet name Totals does not exist"):
            parse_sheet_selector("Totals", list(SHEETS))

    def test_zero_is_not_an_index(self) -> None:
        """Sheet indexes start from 1."""
        from datahub_client.core.exceptions import SheetSelectionError
        from datahub_client.core.processing import parse_sheet_selector

        with pytest.raises(SheetSelectionError):
            parse_sheet_selector("0", list(SHEETS))


@pytest.mark.core
class TestInferSchema:
    """Tests for infer_schema()."""

    def test_types_per_column(self) -> None:
        """Each column gets a type guessed from its values."""
        from datahub_client.core.processing import infer_schema

        rows = [
            ["id", "name", "score", "joined", "active"],
            [1, "Alice", 1.5, dt.date(2020, 1, 1), True],
            [2, "Bob", None, dt.date(2021, 6, 1), False],
        ]
        schema = infer_schema(rows)
        assert [(f["name"], f["type"]) for f in schema["fields"]] == [
            ("id", "integer"),
            ("name", "string"),
            ("score", "number"),
            ("joined", "date"),
            ("active", "boolean"),
        ]
        assert all(f["format"] == "default" for f in schema["fields"])

    def test_integers_as_numbers(self) -> None:
        """Integer columns can be reported as number."""
        from datahub_client.core.processing import infer_schema

        schema = infer_schema([["n"], [1], [2]], integers_as_numbers=True)
        assert schema["fields"][0]["type"] == "number"

    def test_mixed_numeric_column_is_number(self) -> None:
        """Integers and floats together make a number column."""
        from datahub_client.core.processing import infer_schema

        schema = infer_schema([["n"], [1], [2.5]])
        assert schema["fields"][0]["type"] == "number"

    def test_missing_header_gets_field_name(self) -> None:
        """Blank header cells get positional names."""
        from datahub_client.core.processing import infer_schema

        schema = infer_schema([["a", None], ["x", "y"]])
        assert schema["fields"][1]["name"] == "field2"

    def test_text_dates_and_booleans(self) -> None:
        """Dates and booleans written as text are recognised."""
        from datahub_client.core.processing import infer_schema

        schema = infer_schema(
            [["day", "flag"], ["2020-01-01", "true"], ["2020-02-01", "false"]]
        )
        assert [(f["name"], f["type"]) for f in schema["fields"]] == [
            ("day", "date"),
            ("flag", "boolean"),
        ]

    def test_blank_column_is_string(self) -> None:
        """A column without any value falls back to string."""
        from datahub_client.core.processing import infer_schema

        schema = infer_schema([["a", "b"], [1, None], [2]])
        assert [f["type"] for f in schema["fields"]] == ["integer", "string"]

    def test_header_only(self) -> None:
        """A sheet with only a header row has string fields."""
        from datahub_client.core.processing import infer_schema

        schema = infer_schema([["a", "b"]])
        assert schema == {
            "fields": [
                {"name": "a", "type": "string", "format": "default"},
                {"name": "b", "type": "string", "format": "default"},
            ]
        }


@pytest.mark.core
class TestDialect:
    """Tests for has_custom_dialect()."""

    @pytest.mark.parametrize(
        ("dialect", "expected"),
        [
            (None, False),
            ({}, False),
            ({"delimiter": ","}, False),
            ({"delimiter": ",", "quoteChar": '"'}, False),
            ({"delimiter": ";"}, True),
            ({"quoteChar": "'"}, True),
            ({"escapeChar": "\\"}, True),
        ],
    )
    def test_has_custom_dialect(self, dialect: dict | None, expected: bool) -> None:
        """Only dialects differing from plain CSV are custom."""
        from datahub_client.core.processing import has_custom_dialect

        assert has_custom_dialect(dialect) is expected


@pytest.mark.core
@pytest.mark.tra("UseCase.DeriveProcessing")
class TestDeriveProcessingSteps:
    """Tests for derive_processing_steps()."""

    @pytest.mark.asyncio
    async def test_first_sheet_by_default(self) -> None:
        """Without a selector only sheet 1 gets a step."""
        from datahub_client.core.models import SheetStep
        from datahub_client.core.processing import derive_processing_steps

        steps = await derive_processing_steps([_workbook()], reader=FakeSheetReader(SHEETS))

        assert len(steps) == 1
        step = steps[0]
        assert isinstance(step, SheetStep)
        assert step.input == "budget"
        assert step.output == "budget-sheet-1"
        assert step.sheet_index == 1
        assert step.schema["fields"] == [
            {"name": "month", "type": "string", "format": "default"},
            {"name": "amount", "type": "number", "format": "default"},
        ]

    @pytest.mark.asyncio
    async def test_all_sheets(self) -> None:
        """"all" produces one step per sheet."""
        from datahub_client.core.processing import derive_processing_steps

        steps = await derive_processing_steps(
            [_workbook()], "all", reader=FakeSheetReader(SHEETS)
        )
        assert sorted(s.sheet_index for s in steps) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_sheet_by_name(self) -> None:
        """A sheet name selects that sheet."""
        from datahub_client.core.processing import derive_processing_steps

        steps = await derive_processing_steps(
            [_workbook()], "Notes", reader=FakeSheetReader(SHEETS)
        )
        assert [s.output for s in steps] == ["budget-sheet-3"]

    @pytest.mark.asyncio
    async def test_empty_sheet_raises(self) -> None:
        """A selected sheet with no rows should be refused."""
        from datahub_client.core.exceptions import EmptySheetError
        from datahub_client.core.processing import derive_processing_steps

        reader = FakeSheetReader({"Data": [["a"], [1]], "Empty": []})
        with pytest.raises(EmptySheetError):
            await derive_processing_steps([_workbook()], "all", reader=reader)

    @pytest.mark.asyncio
    async def test_bad_selector_raises(self) -> None:
        """Selector errors propagate."""
        from datahub_client.core.exceptions import SheetSelectionError
        from datahub_client.core.processing import derive_processing_steps

        with pytest.raises(SheetSelectionError):
            await derive_processing_steps(
                [_workbook()], "7", reader=FakeSheetReader(SHEETS)
            )

    @pytest.mark.asyncio
    async def test_custom_dialect_step(self) -> None:
        """A semicolon CSV gets a dialect step."""
        from datahub_client.core.models import DialectStep
        from datahub_client.core.processing import derive_processing_steps

        steps = await derive_processing_steps(
            [_csv(dialect={"delimiter": ";"})], reader=FakeSheetReader({})
        )
        assert steps == [DialectStep(input="sample", output="sample", delimiter=";")]

    @pytest.mark.asyncio
    async def test_dialect_step_keeps_quote_char(self) -> None:
        """A semicolon CSV quoting with '"' keeps its quote char, no escape char."""
        from datahub_client.core.processing import derive_processing_steps

        steps = await derive_processing_steps(
            [_csv(dialect={"delimiter": ";", "quoteChar": '"'})], reader=FakeSheetReader({})
        )

        assert len(steps) == 1
        assert steps[0].quote_char == '"'
        assert steps[0].escape_char is None
        assert steps[0].to_dict()["tabulator"] == {"delimiter": ";", "quotechar": '"'}

    @pytest.mark.asyncio
    async def test_plain_resources_have_no_steps(self) -> None:
        """Plain CSVs need no processing."""
        from datahub_client.core.processing import derive_processing_steps

        reader = FakeSheetReader(SHEETS)
        steps = await derive_processing_steps(
            [_csv(), _csv("other", dialect={"delimiter": ","})], reader=reader
        )
        assert steps == []
        assert reader.reads == []

    @pytest.mark.asyncio
    async def test_uses_fetcher(self) -> None:
        """Workbook bytes come from the supplied fetcher."""
        from datahub_client.core.processing import derive_processing_steps

        fetched: list[str] = []

        async def fetch(resource: Resource) -> bytes:
            fetched.append(resource.path)
            return b"remote workbook"

        await derive_processing_steps(
            [_workbook("a"), _workbook("b")],
            reader=FakeSheetReader(SHEETS),
            fetch=fetch,
        )
        assert sorted(fetched) == ["data/a.xlsx", "data/b.xlsx"]


@pytest.mark.core
class TestHandleOutputs:
    """Tests for handle_outputs()."""

    def test_none(self) -> None:
        """No options means no outputs."""
        from datahub_client.core.processing import handle_outputs

        assert handle_outputs(None) == []

    def test_zip_and_sqlite(self) -> None:
        """Both flags produce both declarations, zip first."""
        from datahub_client.core.models import OutputOptions
        from datahub_client.core.processing import handle_outputs

        assert handle_outputs(OutputOptions(zip=True, sqlite=True)) == [
            {"kind": "zip", "parameters": {"out-file": "dataset.zip"}},
            {"kind": "sqlite"},
        ]

    def test_mapping(self) -> None:
        """Plain mappings are accepted."""
        from datahub_client.core.processing import handle_outputs

        assert handle_outputs({"sqlite": True}) == [{"kind": "sqlite"}]
