"""Pytest configuration and shared fixtures.

This module registers custom markers for CI job separation and provides
shared fixtures for the test suite: an in-process fake of the DataHub API
(auth, rawstore, object store, source) served through httpx.MockTransport,
and helpers to write spreadsheet workbooks.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pandas as pd
import pytest

from datahub_client.adapters.http import ApiClient
from datahub_client.datahub import DataHub


API_URL = "https://api.test"
STORE_URL = "https://store.test/bucket/"
REMOTE_URL = "https://remote.test"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "core: Core models, ports, and services")
    config.addinivalue_line(
        "markers", "http: API client, authorization and rawstore adapters"
    )
    config.addinivalue_line("markers", "progress: Rich progress integration")
    config.addinivalue_line("markers", "e2e: End-to-end tests")
    config.addinivalue_line(
        "markers", "tra: Test Responsibility Anchor (TRA) - namespace.Anchor format"
    )
    config.addinivalue_line(
        "markers",
        "tier: Test tier for CI job separation (0=instant, 1=fast, 2=standard, 3=slow, 4=manual)",
    )


class FakeDatahubApi:
    """In-memory DataHub API.

    Records every request and serves canned answers. Tests tweak the public
    attributes to simulate failures; hosts listed in ``unreachable`` refuse
    connections.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.authz_status = 200
        self.upload_status = 204
        self.rawstore_status = 200
        self.existing: set[str] = set()
        self.source_status = 200
        self.source_response: dict[str, Any] = {"success": True, "id": "owner/dataset"}
        self.remote_status: dict[str, int] = {}
        self.remote_content: dict[str, bytes] = {}
        self.submitted: list[dict[str, Any]] = []
        self.uploads: list[httpx.Request] = []
        self.unreachable: set[str] = set()

    def calls(self, path: str) -> list[httpx.Request]:
        """Requests sent to a path (any host)."""
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if host == "api.test":
            return self._api(request)
        if host == "store.test":
            self.uploads.append(request)
            return httpx.Response(self.upload_status, text="" if self.upload_status <= 204 else "denied")
        if host == "remote.test":
            path = request.url.path
            status = self.remote_status.get(path, 200)
            return httpx.Response(status, content=self.remote_content.get(path, b"a,b\n1,2\n"))
        return httpx.Response(404)

    def _api(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/auth/authorize":
            if self.authz_status != 200:
                return httpx.Response(self.authz_status)
            service = request.url.params["service"]
            return httpx.Response(200, json={"token": f"{service}-token"})
        if path == "/rawstore/authorize":
            if self.rawstore_status != 200:
                return httpx.Response(
                    self.rawstore_status, json={"error": {"message": "Max storage exceeded"}}
                )
            body = json.loads(request.content)
            filedata = {
                res_path: {
                    "md5": info["md5"],
                    "length": info["length"],
                    "name": info["name"],
                    "exists": res_path in self.existing,
                    "upload_url": STORE_URL,
                    "upload_query": {
                        "key": f"{body['metadata']['owner']}/{info['name']}",
                        "acl": "public-read",
                        "Content-Type": "text/plain",
                    },
                }
                for res_path, info in body["filedata"].items()
            }
            return httpx.Response(200, json={"filedata": filedata})
        if path == "/rawstore/presign":
            return httpx.Response(200, json={"url": request.url.params["url"] + "?signed"})
        if path == "/source/upload":
            self.submitted.append(json.loads(request.content))
            if self.source_status != 200:
                return httpx.Response(self.source_status, json={"error": {"message": "bad spec"}})
            return httpx.Response(200, json=self.source_response)
        return httpx.Response(404, json={"error": {"message": f"no route {path}"}})


@pytest.fixture
def fake_api() -> FakeDatahubApi:
    """A fresh fake DataHub API."""
    return FakeDatahubApi()


@pytest.fixture
def api_client(fake_api: FakeDatahubApi) -> ApiClient:
    """ApiClient wired to the fake API."""
    return ApiClient(API_URL, transport=httpx.MockTransport(fake_api.handler))


@pytest.fixture
def datahub(api_client: ApiClient) -> DataHub:
    """DataHub facade wired to the fake API."""
    return DataHub(api_client, "user-token", owner_id="owner-id", owner="owner")


def write_workbook(path: Path, sheets: dict[str, list[list[Any]]]) -> Path:
    """Write an xlsx workbook, one sheet per entry, rows as given."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, header=False, index=False)
    return path


@pytest.fixture
def dataset_dir(tmp_path: Path) -> Path:
    """A data package directory with one CSV resource."""
    root = tmp_path / "package"
    (root / "data").mkdir(parents=True)
    (root / "data" / "sample.csv").write_text("id,name\n1,Alice\n2,Bob\n")
    descriptor = {
        "name": "my-dataset",
        "title": "My dataset",
        "resources": [{"name": "sample", "path": "data/sample.csv"}],
    }
    (root / "datapackage.json").write_text(json.dumps(descriptor))
    return root


@pytest.fixture
def make_workbook():
    """Factory fixture for write_workbook()."""
    return write_workbook
