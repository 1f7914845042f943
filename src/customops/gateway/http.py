"""HTTP gateway transport for the hosted platform's REST API.

All paths are relative to ``{base_url}/apps/{app_id}``:

- ``GET entities/{Name}?sort=&limit=`` - list records
- ``GET entities/{Name}?q=<json>&sort=&limit=`` - filter records
- ``GET|PUT|DELETE entities/{Name}/{id}`` - single record
- ``POST entities/{Name}`` - create record
- ``POST functions/{name}`` - invoke a remote function
- ``POST integration-endpoints/{package}/{endpoint}`` - integrations
- ``GET entities/User/me`` - current user
"""

from __future__ import annotations

import asyncio
import json
import logging
import ssl
from typing import Any, Dict, List

import aiohttp

from customops.config import GatewaySettings
from customops.exceptions import ConfigurationError, GatewayError

from .base import Transport

logger = logging.getLogger(__name__)


class HTTPTransport(Transport):
    """Transport that talks to the platform over HTTP with aiohttp.

    Args:
        base_url: API root, e.g. ``https://app.base44.com/api``
        app_id: Application identifier
        auth_token: Bearer token (optional)
        auth_header: Header name for the token (default: "Authorization")
        timeout: Total request timeout in seconds
        verify_ssl: Verify SSL certificates

    Example:
        ```python
        transport = HTTPTransport(
            base_url="https://app.base44.com/api",
            app_id="abc123",
            auth_token="secret-token",
        )
        await transport.initialize()
        clients = await transport.list_entities("Client", sort="-created_date", limit=50)
        await transport.close()
        ```
    """

    def __init__(
        self,
        base_url: str,
        app_id: str,
        auth_token: str | None = None,
        auth_header: str = "Authorization",
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._app_id = app_id
        self._auth_token = auth_token
        self._auth_header = auth_header
        self._timeout = timeout
        self._verify_ssl = verify_ssl

        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_settings(cls, settings: GatewaySettings) -> HTTPTransport:
        """Create a transport from gateway settings.

        Raises:
            ConfigurationError: If auth is required but no token is configured
        """
        if settings.requires_auth and not settings.auth_token:
            raise ConfigurationError(
                "gateway.auth_token is required when requires_auth is set",
                context={"section": "gateway"},
            )
        return cls(
            base_url=settings.base_url,
            app_id=settings.app_id,
            auth_token=settings.auth_token,
            timeout=settings.timeout,
            verify_ssl=settings.verify_ssl,
        )

    @property
    def app_url(self) -> str:
        return f"{self._base_url}/apps/{self._app_id}"

    async def initialize(self) -> None:
        if self._session is not None:
            return

        headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-App-Id": self._app_id,
        }
        if self._auth_token:
            headers[self._auth_header] = f"Bearer {self._auth_token}"

        ssl_context: bool | ssl.SSLContext = self._verify_ssl
        if not self._verify_ssl:
            ssl_context = ssl.create_default_context()
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE

        connector = aiohttp.TCPConnector(ssl=ssl_context)
        self._session = aiohttp.ClientSession(
            headers=headers,
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        )
        logger.info("HTTPTransport initialized: %s", self.app_url)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.info("HTTPTransport closed")

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        payload: Any = None,
        params: Dict[str, Any] | None = None,
    ) -> Any:
        if self._session is None:
            raise GatewayError(
                "HTTPTransport not initialized. Call initialize() first.",
                operation=operation,
            )

        url = f"{self.app_url}/{path}"
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}
        logger.debug("%s %s %s", method, url, query)
        try:
            async with self._session.request(
                method, url, json=payload, params=query or None
            ) as response:
                await self._check_response(response, operation)
                if response.status == 204:
                    return None
                text = await response.text()
                if not text:
                    return None
                try:
                    return json.loads(text)
                except ValueError as e:
                    logger.error("Request %s returned a non-JSON body: %.200s", operation, text)
                    raise GatewayError(
                        "Response is not valid JSON",
                        operation=operation,
                        status=response.status,
                    ) from e
        except asyncio.TimeoutError as e:
            logger.error("Request %s timed out after %ss", operation, self._timeout)
            raise GatewayError(
                f"Request timed out after {self._timeout}s", operation=operation
            ) from e
        except aiohttp.ClientError as e:
            logger.error("Request %s failed: %s", operation, e)
            raise GatewayError(str(e), operation=operation) from e

    async def _check_response(self, response: aiohttp.ClientResponse, operation: str) -> None:
        if response.status >= 400:
            text = await response.text()
            logger.error("HTTP request failed: HTTP %s: %s", response.status, text)
            message = text
            try:
                body = json.loads(text)
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("detail") or text
            raise GatewayError(
                message or f"HTTP {response.status}",
                operation=operation,
                status=response.status,
            )

    async def list_entities(
        self, entity: str, sort: str | None = None, limit: int | None = None
    ) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            f"entities/{entity}",
            f"entities.{entity}.list",
            params={"sort": sort, "limit": limit},
        )
        return _items(data)

    async def filter_entities(
        self,
        entity: str,
        query: Dict[str, Any],
        sort: str | None = None,
        limit: int | None = None,
    ) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            f"entities/{entity}",
            f"entities.{entity}.filter",
            params={"q": json.dumps(query), "sort": sort, "limit": limit},
        )
        return _items(data)

    async def get_entity(self, entity: str, entity_id: str) -> Dict[str, Any]:
        return await self._request(
            "GET", f"entities/{entity}/{entity_id}", f"entities.{entity}.get"
        )

    async def create_entity(self, entity: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "POST", f"entities/{entity}", f"entities.{entity}.create", payload=data
        )

    async def update_entity(
        self, entity: str, entity_id: str, data: Dict[str, Any]
    ) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"entities/{entity}/{entity_id}",
            f"entities.{entity}.update",
            payload=data,
        )

    async def delete_entity(self, entity: str, entity_id: str) -> None:
        await self._request(
            "DELETE", f"entities/{entity}/{entity_id}", f"entities.{entity}.delete"
        )

    async def invoke_function(self, name: str, payload: Dict[str, Any]) -> Any:
        return await self._request(
            "POST", f"functions/{name}", f"functions.invoke:{name}", payload=payload
        )

    async def call_integration(
        self, package: str, endpoint: str, payload: Dict[str, Any]
    ) -> Any:
        return await self._request(
            "POST",
            f"integration-endpoints/{package}/{endpoint}",
            f"integrations.{package}.{endpoint}",
            payload=payload,
        )

    async def current_user(self) -> Dict[str, Any]:
        return await self._request("GET", "entities/User/me", "auth.me")


def _items(data: Any) -> List[Dict[str, Any]]:
    # Accept a bare list or a dict wrapping it under "items"
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return data["items"]
    return []
