"""Rawstore adapter: upload authorization, object store uploads, presigning.

The rawstore is the content-addressed object store behind the DataHub API.
Uploading is a two step protocol: the API hands out one POST policy per
file (``/rawstore/authorize``), then every file is POSTed straight to the
object store as a multipart form.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable, Mapping
from typing import TYPE_CHECKING

import httpx
from loguru import logger

from datahub_client.adapters.http.auth import RAWSTORE
from datahub_client.adapters.http.client import response_error
from datahub_client.core.exceptions import EmptyResourceError, UploadError
from datahub_client.core.models import Findability, UploadCredential
from datahub_client.core.ports import NullProgressReporter


if TYPE_CHECKING:
    from datahub_client.adapters.http.auth import ServiceAuthorizer
    from datahub_client.adapters.http.client import ApiClient
    from datahub_client.core.models import Resource
    from datahub_client.core.ports import ProgressCallback, ProgressReporter


_DEFAULT_CONTENT_TYPE = "application/octet-stream"


async def _report_progress(
    body: Iterable[bytes], callback: ProgressCallback, total: int
) -> AsyncIterator[bytes]:
    """Pass body chunks through, reporting bytes sent so far.

    Multipart bodies read their files synchronously, so each chunk is
    pulled in a worker thread to let other uploads proceed meanwhile.
    """
    chunks = iter(body)
    sent = 0
    while True:
        chunk = await asyncio.to_thread(next, chunks, None)
        if chunk is None:
            break
        sent += len(chunk)
        callback(sent, total)
        yield chunk


class RawstoreClient:
    """Client for the rawstore endpoints and the object store behind it."""

    def __init__(
        self,
        api: ApiClient,
        authorizer: ServiceAuthorizer,
        owner_id: str | None,
    ) -> None:
        """Initialize the rawstore client.

        Args:
            api: Client for the DataHub API (also used for object store POSTs).
            authorizer: Per-push token cache.
            owner_id: Id of the user owning the uploads.
        """
        self._api = api
        self._authorizer = authorizer
        self._owner_id = owner_id

    async def authorize_uploads(
        self,
        resources: Iterable[Resource],
        findability: Findability = Findability.UNLISTED,
    ) -> dict[str, UploadCredential]:
        """Request upload credentials for every resource in one call.

        Args:
            resources: Resources to upload, keyed in the request by path.
            findability: Visibility recorded with the uploads.

        Returns:
            Dict mapping resource path to its UploadCredential.

        Raises:
            AuthorizationError: If the rawstore token cannot be obtained.
            ResponseError: If /rawstore/authorize does not answer 200.
            NetworkError: If the request gets no response.
        """
        filedata = {
            resource.path: {
                "length": resource.size,
                "md5": resource.hash,
                "name": resource.name,
            }
            for resource in resources
        }
        body = {
            "metadata": {
                "owner": self._owner_id,
                "findability": Findability(findability).value,
            },
            "filedata": filedata,
        }
        token = await self._authorizer.authorize(RAWSTORE)
        logger.debug("Calling rawstore authorize with {}", body)
        response = await self._api.fetch(
            "/rawstore/authorize", token, method="POST", json=body
        )
        if response.status_code != 200:
            raise await response_error(response)

        payload: Mapping[str, Mapping[str, object]] = response.json()["filedata"]
        return {
            path: UploadCredential.from_response(path, info)
            for path, info in payload.items()
        }

    async def upload_all(
        self,
        resources: Iterable[Resource],
        credentials: Mapping[str, UploadCredential],
        progress: ProgressReporter | None = None,
    ) -> None:
        """Upload resources to the object store concurrently.

        Resources whose credential says ``exists`` are skipped. Every upload
        runs to completion (or failure) before the first failure is raised;
        uploads that succeeded stay in the object store.

        Args:
            resources: Resources to upload.
            credentials: Credentials from authorize_uploads(), keyed by path.
            progress: Optional progress reporter for upload feedback.

        Raises:
            EmptyResourceError: If a resource has no bytes. Raised before any
                upload starts.
            UploadError: If the object store answers with status > 204.
            NetworkError: If an upload gets no response.
        """
        if progress is None:
            progress = NullProgressReporter()

        pending: list[tuple[Resource, UploadCredential]] = []
        for resource in resources:
            credential = credentials[resource.path]
            if credential.exists:
                logger.debug("{} already in rawstore, skipping upload", resource.path)
                continue
            if resource.size <= 0:
                raise EmptyResourceError(resource.path)
            pending.append((resource, credential))

        results = await asyncio.gather(
            *(self._upload(res, cred, progress) for res, cred in pending),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            raise failures[0]

    async def _upload(
        self,
        resource: Resource,
        credential: UploadCredential,
        progress: ProgressReporter,
    ) -> None:
        with resource.source.open() as stream:
            content_type = credential.upload_query.get(
                "Content-Type", _DEFAULT_CONTENT_TYPE
            )
            prepared = self._api.build_request(
                "POST",
                credential.upload_url,
                data=dict(credential.upload_query),
                files={"file": (resource.path, stream, content_type)},
            )
            # The object store rejects chunked bodies, so the length must be
            # known before sending.
            length = prepared.headers.get("Content-Length")
            if length is None or resource.size <= 0:
                raise EmptyResourceError(resource.path)
            total = int(length)

            callback = progress.start_task(resource.path, total)
            request = httpx.Request(
                "POST",
                prepared.url,
                headers=prepared.headers,
                content=_report_progress(prepared.stream, callback, total),
            )
            try:
                response = await self._api.send(request)
            except BaseException:
                progress.fail_task(resource.path)
                raise

        if response.status_code > 204:
            progress.fail_task(resource.path)
            raise UploadError(resource.path, response.status_code, response.text)
        progress.finish_task(resource.path)
        logger.debug("Uploaded {} ({} bytes)", resource.path, total)

    async def presign(self, url: str) -> str:
        """Exchange a rawstore URL for a signed, time-limited download URL.

        Args:
            url: Durable rawstore URL (UploadCredential.resource_url).

        Returns:
            The signed URL.

        Raises:
            ResponseError: If /rawstore/presign does not answer 200.
        """
        token = await self._authorizer.authorize(RAWSTORE)
        response = await self._api.fetch(
            "/rawstore/presign",
            token,
            params={"ownerid": self._owner_id or "", "url": url},
        )
        if response.status_code != 200:
            raise await response_error(response)
        return str(response.json()["url"])
