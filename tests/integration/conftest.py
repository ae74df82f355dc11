"""Shared fixtures for integration tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


@pytest.fixture
def spreadsheet_dir(tmp_path: Path, make_workbook) -> Path:
    """A data package with a two-sheet workbook and a semicolon CSV."""
    root = tmp_path / "budget"
    (root / "data").mkdir(parents=True)
    make_workbook(
        root / "data" / "budget.xlsx",
        {
            "Income": [["month", "amount"], ["jan", 10], ["feb", 12]],
            "Costs": [["month", "amount"], ["jan", 3.5]],
        },
    )
    (root / "data" / "rates.csv").write_text("a;b\n1;2\n")
    descriptor = {
        "name": "budget",
        "resources": [
            {"name": "budget", "path": "data/budget.xlsx"},
            {"name": "rates", "path": "data/rates.csv", "dialect": {"delimiter": ";"}},
        ],
    }
    (root / "datapackage.json").write_text(json.dumps(descriptor))
    return root


@pytest.fixture
def flow_dir(tmp_path: Path) -> Path:
    """A project with a .datahub/flow.yaml."""
    root = tmp_path / "flow-project"
    (root / ".datahub").mkdir(parents=True)
    (root / ".datahub" / "flow.yaml").write_text(
        "meta:\n"
        "  dataset: prices\n"
        "  owner: owner\n"
        "  ownerid: owner-id\n"
        "  findability: public\n"
        "inputs:\n"
        "  - kind: datapackage\n"
        "    url: https://example.com/old.json\n"
        "    parameters:\n"
        "      resource-mapping:\n"
        "        gold: https://remote.test/gold.csv\n"
        "processing:\n"
        "  - input: gold\n"
        "    output: gold\n"
        "    tabulator:\n"
        "      delimiter: ';'\n"
    )
    return root
