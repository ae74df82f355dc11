"""The DataHub push facade."""

from __future__ import annotations

import asyncio
import copy
import json
from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from datahub_client.adapters.http import (
    SOURCE,
    ApiClient,
    ServiceAuthorizer,
    response_error,
)
from datahub_client.adapters.rawstore import RawstoreClient
from datahub_client.config import find_project_root
from datahub_client.core.exceptions import SubmissionError
from datahub_client.core.flow import (
    DEFAULT_DESCRIPTOR_PATH,
    generate_descriptor_for_flow,
    load_descriptor,
    load_flow,
)
from datahub_client.core.models import (
    DATAPACKAGE_JSON,
    Dataset,
    PushOptions,
    Resource,
    UploadCredential,
    normalize_findability,
)
from datahub_client.core.processing import (
    derive_processing_steps,
    handle_outputs,
    read_resource_bytes,
)
from datahub_client.core.spec import build_source_spec


if TYPE_CHECKING:
    from types import TracebackType

    import httpx

    from datahub_client.config import ClientConfig
    from datahub_client.core.ports import ProgressReporter, SheetReader


class PushState(StrEnum):
    """Stages of a push, in order. FAILED is reachable from any stage."""

    IDLE = "idle"
    AUTHORIZING_UPLOAD = "authorizing-upload"
    UPLOADING = "uploading"
    ASSEMBLING_SPEC = "assembling-spec"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


class _PushRun:
    """State of one push call: its token cache and current stage."""

    def __init__(self, api: ApiClient, token: str, owner_id: str | None) -> None:
        self.authorizer = ServiceAuthorizer(api, token)
        self.rawstore = RawstoreClient(api, self.authorizer, owner_id)
        self.state = PushState.IDLE

    def advance(self, state: PushState) -> None:
        logger.debug("Push: {} -> {}", self.state, state)
        self.state = state


def _descriptor_resource(descriptor: Mapping[str, Any]) -> Resource:
    """Serialize a descriptor as the in-memory datapackage.json resource."""
    data = json.dumps(descriptor, indent=2, ensure_ascii=False).encode("utf-8")
    return Resource.from_inline(DATAPACKAGE_JSON, DATAPACKAGE_JSON, data)


class DataHub:
    """Pushes datasets to DataHub.

    A push uploads the dataset's local files and its descriptor to the
    rawstore, then submits a source spec telling the processing API where
    to fetch them and how to process them.

    Example:
        async with DataHub.from_config(load_config()) as datahub:
            result = await datahub.push(load_dataset("."), PushOptions())
    """

    def __init__(
        self,
        api: ApiClient,
        token: str,
        owner_id: str | None = None,
        owner: str | None = None,
        *,
        sheet_reader: SheetReader | None = None,
    ) -> None:
        """Initialize the facade.

        Args:
            api: Client for the DataHub API.
            token: The long-lived user token.
            owner_id: Id of the pushing user.
            owner: Username of the pushing user.
            sheet_reader: Spreadsheet reader. Defaults to PandasSheetReader.
        """
        self._api = api
        self._token = token
        self._owner_id = owner_id
        self._owner = owner
        self._sheet_reader = sheet_reader

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> DataHub:
        """Create a DataHub from client settings.

        Args:
            config: Resolved settings (see load_config()).
            transport: Optional httpx transport, e.g. for tests.

        Returns:
            DataHub with its own ApiClient.

        Raises:
            ConfigurationError: If no token is configured.
        """
        token = config.require_token()
        if config.debug:
            logger.enable("datahub_client")
        api = ApiClient(config.api_url, timeout=config.timeout, transport=transport)
        return cls(
            api,
            token,
            owner_id=config.owner_id,
            owner=config.owner,
        )

    @property
    def api_url(self) -> str:
        return self._api.api_url

    async def __aenter__(self) -> DataHub:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the API connection pool."""
        await self._api.close()

    def _start_run(self) -> _PushRun:
        return _PushRun(self._api, self._token, self._owner_id)

    async def push(
        self,
        dataset: Dataset,
        options: PushOptions | None = None,
        progress: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        """Push a dataset.

        Remote resources are checked for reachability and left where they
        are; local resources and the descriptor are uploaded. The dataset
        itself is never modified.

        Args:
            dataset: The dataset to push.
            options: Findability, sheet selection, outputs and schedule.
            progress: Optional progress reporter for upload feedback.

        Returns:
            The source API response (``{"success": True, "id": ...}``).

        Raises:
            RemoteResourceUnreachableError: If a remote resource URL fails.
            AuthorizationError: If a service token is refused.
            EmptyResourceError: If a local resource is empty.
            UploadError: If the object store rejects an upload.
            SheetSelectionError: If the sheet selector doesn't match.
            EmptySheetError: If a selected sheet is empty.
            ResponseError: If an API call fails.
            NetworkError: If a request gets no response.
            SubmissionError: If the processing API rejects the spec.
        """
        if options is None:
            options = PushOptions()

        run = self._start_run()
        try:
            run.advance(PushState.AUTHORIZING_UPLOAD)
            await self._check_remote_resources(dataset)
            uploads = [r for r in dataset.resources if r.path_type == "local"]
            uploads.append(_descriptor_resource(dataset.descriptor))

            logger.debug("Getting rawstore upload creds")
            credentials = await run.rawstore.authorize_uploads(
                uploads, options.findability
            )

            run.advance(PushState.UPLOADING)
            await run.rawstore.upload_all(uploads, credentials, progress)
            logger.info("Uploads to rawstore: Complete")

            run.advance(PushState.ASSEMBLING_SPEC)
            spec = await self.make_source_spec(
                credentials, dataset, options, rawstore=run.rawstore
            )

            run.advance(PushState.SUBMITTING)
            result = await self._submit(run, spec)
        except BaseException:
            run.advance(PushState.FAILED)
            raise
        run.advance(PushState.DONE)
        return result

    async def push_flow(
        self,
        flow_path: Path | str,
        descriptor_path: Path | str | None = None,
        progress: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        """Push a dataset described by a processing flow file.

        Only the descriptor is uploaded: the flow's resource-mapping already
        points at the data.

        Args:
            flow_path: Path to the YAML flow.
            descriptor_path: Existing datapackage.json to start from.
                Defaults to ``.datahub/datapackage.json`` under the project
                root.
            progress: Optional progress reporter for upload feedback.

        Returns:
            The source API response.

        Raises:
            FlowLoadError: If the flow can't be read.
            AuthorizationError: If a service token is refused.
            ResponseError: If an API call fails.
            NetworkError: If a request gets no response.
            SubmissionError: If the processing API rejects the spec.
        """
        run = self._start_run()
        try:
            flow = load_flow(flow_path)
            if descriptor_path is None:
                descriptor_path = find_project_root() / DEFAULT_DESCRIPTOR_PATH
            descriptor = generate_descriptor_for_flow(
                flow, load_descriptor(descriptor_path)
            )
            findability = normalize_findability(flow["meta"].get("findability"))

            run.advance(PushState.AUTHORIZING_UPLOAD)
            descriptor_resource = _descriptor_resource(descriptor)
            credentials = await run.rawstore.authorize_uploads(
                [descriptor_resource], findability
            )

            run.advance(PushState.UPLOADING)
            await run.rawstore.upload_all([descriptor_resource], credentials, progress)

            run.advance(PushState.ASSEMBLING_SPEC)
            signed_url = await run.rawstore.presign(
                credentials[DATAPACKAGE_JSON].resource_url
            )
            spec = copy.deepcopy(flow)
            spec["meta"]["findability"] = findability.value
            spec["inputs"][0]["url"] = signed_url
            spec["inputs"][0]["parameters"]["descriptor"] = descriptor

            run.advance(PushState.SUBMITTING)
            result = await self._submit(run, spec)
        except BaseException:
            run.advance(PushState.FAILED)
            raise
        run.advance(PushState.DONE)
        return result

    async def make_source_spec(
        self,
        credentials: Mapping[str, UploadCredential],
        dataset: Dataset,
        options: PushOptions | None = None,
        *,
        rawstore: RawstoreClient | None = None,
    ) -> dict[str, Any]:
        """Assemble the source spec for uploaded files.

        Every uploaded file is presigned concurrently; the first failure
        aborts the assembly.

        Args:
            credentials: Upload credentials keyed by resource path; must
                include datapackage.json.
            dataset: The pushed dataset.
            options: Push options.
            rawstore: Rawstore client of the running push. A fresh one (with
                its own authorization) is used when omitted.

        Returns:
            The source spec.
        """
        if options is None:
            options = PushOptions()
        if rawstore is None:
            rawstore = self._start_run().rawstore
        if DATAPACKAGE_JSON not in credentials:
            raise ValueError(f"No upload credential for {DATAPACKAGE_JSON}")

        paths = list(credentials)
        signed = await asyncio.gather(
            *(rawstore.presign(credentials[path].resource_url) for path in paths)
        )
        resource_mapping = dict(zip(paths, signed, strict=True))
        descriptor_url = resource_mapping.pop(DATAPACKAGE_JSON)

        processing = await derive_processing_steps(
            dataset.resources,
            options.sheets,
            reader=self._sheet_reader,
            fetch=self._read_resource,
        )
        return build_source_spec(
            owner_id=self._owner_id,
            owner=self._owner,
            dataset_name=dataset.name,
            findability=options.findability,
            descriptor_url=descriptor_url,
            resource_mapping=resource_mapping,
            descriptor=dataset.descriptor,
            processing=processing,
            outputs=handle_outputs(options.outputs),
            schedule=options.schedule,
        )

    async def _check_remote_resources(self, dataset: Dataset) -> None:
        await asyncio.gather(
            *(self._api.check_url(r.path) for r in dataset.resources if r.is_remote)
        )

    async def _read_resource(self, resource: Resource) -> bytes:
        if resource.is_remote:
            return await self._api.fetch_bytes(resource.path)
        return await read_resource_bytes(resource)

    async def _submit(self, run: _PushRun, spec: dict[str, Any]) -> dict[str, Any]:
        token = await run.authorizer.authorize(SOURCE)
        logger.debug("Calling source upload with spec {}", spec)
        response = await self._api.fetch(
            "/source/upload", token, method="POST", json=spec
        )
        if response.status_code != 200:
            raise await response_error(response)
        out: dict[str, Any] = response.json()
        if not out.get("success"):
            raise SubmissionError([str(e) for e in out.get("errors") or []])
        logger.debug("Source upload response {}", out)
        return out
