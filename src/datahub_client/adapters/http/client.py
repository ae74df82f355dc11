"""HTTP client adapter for the DataHub API using httpx."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from datahub_client.core.exceptions import (
    NetworkError,
    RemoteResourceUnreachableError,
    ResponseError,
)


if TYPE_CHECKING:
    from types import TracebackType


DEFAULT_TIMEOUT = 60.0


async def response_error(response: httpx.Response) -> ResponseError:
    """Translate an unexpected API response into a ResponseError.

    4xx bodies are read for a user-facing ``error.message`` (raw text when
    the body is not JSON). 5xx bodies are left unread since they may be
    streamed or non-text.

    Args:
        response: The failed response.

    Returns:
        ResponseError carrying status, reason and detail.
    """
    status = response.status_code
    reason = response.reason_phrase
    if not 400 <= status < 500:
        return ResponseError(status, reason, user_error=False)

    await response.aread()
    text = response.text
    try:
        body = json.loads(text)
    except ValueError:
        body = {"error": {"message": text}}

    detail = None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        detail = error.get("message")
    elif isinstance(error, str):
        detail = error
    return ResponseError(status, reason, detail or None, user_error=True)


class ApiClient:
    """Thin async client for the DataHub API.

    Owns one httpx.AsyncClient (and its connection pool) for the lifetime
    of the object. Relative paths are resolved against ``api_url``;
    absolute URLs (object store, remote resources) are used as given.

    Example:
        async with ApiClient("https://api.datahub.io") as api:
            response = await api.fetch("/auth/check", token)
    """

    def __init__(
        self,
        api_url: str,
        *,
        timeout: float | httpx.Timeout = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: Base URL of the API, e.g. "https://api.datahub.io".
            timeout: Request timeout in seconds (or an httpx.Timeout).
            transport: Optional transport, e.g. httpx.MockTransport in tests.
        """
        self.api_url = api_url
        self._client = httpx.AsyncClient(
            base_url=api_url,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def fetch(
        self,
        path: str,
        token: str | None = None,
        *,
        method: str = "GET",
        json: Any = None,  # noqa: A002
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send a request with the ``Auth-Token`` header.

        Args:
            path: API path (e.g. "/rawstore/authorize") or absolute URL.
            token: Token sent as ``Auth-Token``; omitted when None.
            method: HTTP method.
            json: JSON body.
            params: Query parameters.

        Returns:
            The response, whatever its status.

        Raises:
            NetworkError: If no response was received.
        """
        headers = {"Auth-Token": token} if token is not None else {}
        logger.debug("{} {}", method, path)
        try:
            return await self._client.request(
                method, path, headers=headers, json=json, params=params
            )
        except httpx.HTTPError as e:
            raise NetworkError(path, cause=e) from e

    def build_request(self, method: str, url: str, **kwargs: Any) -> httpx.Request:
        """Build a request without sending it (for streamed bodies)."""
        return self._client.build_request(method, url, **kwargs)

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send a prepared request.

        Raises:
            NetworkError: If no response was received.
        """
        try:
            return await self._client.send(request)
        except httpx.HTTPError as e:
            raise NetworkError(str(request.url), cause=e) from e

    async def check_url(self, url: str) -> None:
        """Check that a remote URL answers without an error status.

        Uses HEAD, falling back to a GET (body not read) when the server
        does not allow HEAD.

        Raises:
            RemoteResourceUnreachableError: On an error status or a failed
                connection.
        """
        try:
            response = await self._client.head(url)
            if response.status_code == 405:
                async with self._client.stream("GET", url) as streamed:
                    response = streamed
        except httpx.HTTPError as e:
            raise RemoteResourceUnreachableError(url, cause=e) from e
        if response.status_code >= 400:
            raise RemoteResourceUnreachableError(url, status=response.status_code)

    async def fetch_bytes(self, url: str) -> bytes:
        """Download a remote file fully.

        Raises:
            RemoteResourceUnreachableError: On an error status or a failed
                connection.
        """
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise RemoteResourceUnreachableError(url, cause=e) from e
        if response.status_code >= 400:
            raise RemoteResourceUnreachableError(url, status=response.status_code)
        return response.content
