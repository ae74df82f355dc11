"""Per-service authorization against the DataHub auth service."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from datahub_client.core.exceptions import AuthorizationError


if TYPE_CHECKING:
    from datahub_client.adapters.http.client import ApiClient


RAWSTORE = "rawstore"
SOURCE = "source"


class ServiceAuthorizer:
    """Exchanges the user's token for short-lived per-service tokens.

    An instance is a cache whose lifetime is owned by the caller: the
    DataHub facade creates one per push, so every push re-authorizes while
    the uploads and presigns inside a push share one token per service.
    Concurrent callers asking for the same service wait on one request.
    """

    def __init__(self, api: ApiClient, user_token: str) -> None:
        """Initialize the authorizer.

        Args:
            api: Client for the DataHub API.
            user_token: The long-lived user token.
        """
        self._api = api
        self._user_token = user_token
        self._tokens: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def authorize(self, service: str) -> str:
        """Get a token for a service, requesting it on first use.

        Args:
            service: Service name ("rawstore" or "source").

        Returns:
            The service token.

        Raises:
            AuthorizationError: If /auth/authorize does not answer 200.
        """
        async with self._lock:
            if service not in self._tokens:
                self._tokens[service] = await self._request_token(service)
            return self._tokens[service]

    async def _request_token(self, service: str) -> str:
        logger.debug("Getting authz token for {} service", service)
        response = await self._api.fetch(
            "/auth/authorize", self._user_token, params={"service": service}
        )
        if response.status_code != 200:
            raise AuthorizationError(
                service, response.status_code, response.reason_phrase
            )
        return str(response.json()["token"])
