"""Remote entity gateway.

The gateway is the single handle through which the application reaches the
hosted platform. It exposes the same surface as the platform SDK:

- ``gateway.entities.<Name>.list/filter/get/create/update/delete``
- ``gateway.functions.invoke(name, payload)``
- ``gateway.integrations.core.send_email/upload_file/invoke_llm``
- ``gateway.auth.me()``

The wire work is delegated to a :class:`Transport`. Entity payloads are
validated against :mod:`customops.entities` before they are dispatched.

Example:
    ```python
    from customops.gateway import Gateway, InMemoryTransport

    async with Gateway(InMemoryTransport()) as gateway:
        client = await gateway.entities.Client.create(
            {"first_name": "Ada", "last_name": "Lovelace"}
        )
        active = await gateway.entities.Client.filter({"status": "active"}, "-created_date")
        response = await gateway.functions.invoke("aiClientSegmentation", {"segmentCriteria": {}})
        print(response.data)
    ```
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List

from customops import entities as schemas

logger = logging.getLogger(__name__)


@dataclass
class FunctionResponse:
    """Result of a remote function call.

    Attributes:
        data: Decoded response body
        status: Status code reported by the transport
    """

    data: Any
    status: int = 200


def parse_sort(sort: str | None) -> tuple[str, bool] | None:
    """Parse a sort string such as ``"-created_date"``.

    Returns:
        ``(field, descending)`` or ``None`` when no sort was requested
    """
    if not sort:
        return None
    if sort.startswith("-"):
        return sort[1:], True
    if sort.startswith("+"):
        return sort[1:], False
    return sort, False


class Transport(ABC):
    """Wire-level access to the hosted platform.

    Implementations raise :class:`~customops.exceptions.GatewayError` when the
    platform rejects a call.
    """

    async def initialize(self) -> None:
        """Acquire connections. Safe to call more than once."""

    async def close(self) -> None:
        """Release connections."""

    @abstractmethod
    async def list_entities(
        self, entity: str, sort: str | None = None, limit: int | None = None
    ) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def filter_entities(
        self,
        entity: str,
        query: Dict[str, Any],
        sort: str | None = None,
        limit: int | None = None,
    ) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def get_entity(self, entity: str, entity_id: str) -> Dict[str, Any]: ...

    @abstractmethod
    async def create_entity(self, entity: str, data: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    async def update_entity(
        self, entity: str, entity_id: str, data: Dict[str, Any]
    ) -> Dict[str, Any]: ...

    @abstractmethod
    async def delete_entity(self, entity: str, entity_id: str) -> None: ...

    @abstractmethod
    async def invoke_function(self, name: str, payload: Dict[str, Any]) -> Any: ...

    @abstractmethod
    async def call_integration(
        self, package: str, endpoint: str, payload: Dict[str, Any]
    ) -> Any: ...

    @abstractmethod
    async def current_user(self) -> Dict[str, Any]: ...


class EntityCollection:
    """CRUD access to one named collection (``gateway.entities.Client``)."""

    def __init__(self, transport: Transport, name: str, validate: bool = True) -> None:
        self._transport = transport
        self._name = name
        self._validate = validate

    @property
    def name(self) -> str:
        return self._name

    async def list(
        self, sort: str | None = None, limit: int | None = None
    ) -> List[Dict[str, Any]]:
        return await self._transport.list_entities(self._name, sort=sort, limit=limit)

    async def filter(
        self,
        query: Dict[str, Any],
        sort: str | None = None,
        limit: int | None = None,
    ) -> List[Dict[str, Any]]:
        return await self._transport.filter_entities(
            self._name, dict(query), sort=sort, limit=limit
        )

    async def get(self, entity_id: str) -> Dict[str, Any]:
        return await self._transport.get_entity(self._name, entity_id)

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if self._validate:
            schemas.validate_create(self._name, data)
        record = await self._transport.create_entity(self._name, dict(data))
        logger.debug("Created %s %s", self._name, record.get("id"))
        return record

    async def update(self, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if self._validate:
            schemas.validate_update(self._name, data)
        record = await self._transport.update_entity(self._name, entity_id, dict(data))
        logger.debug("Updated %s %s: %s", self._name, entity_id, sorted(data))
        return record

    async def delete(self, entity_id: str) -> None:
        await self._transport.delete_entity(self._name, entity_id)
        logger.debug("Deleted %s %s", self._name, entity_id)

    def __repr__(self) -> str:
        return f"EntityCollection({self._name!r})"


class EntityNamespace:
    """Attribute-style access to collections: ``entities.Client``."""

    def __init__(self, transport: Transport, validate: bool = True) -> None:
        self._transport = transport
        self._validate = validate
        self._collections: Dict[str, EntityCollection] = {}

    def __getattr__(self, name: str) -> EntityCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    def __getitem__(self, name: str) -> EntityCollection:
        if name not in self._collections:
            self._collections[name] = EntityCollection(
                self._transport, name, validate=self._validate
            )
        return self._collections[name]


class Functions:
    """Named remote procedure calls whose logic lives on the platform."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def invoke(self, name: str, payload: Dict[str, Any] | None = None) -> FunctionResponse:
        logger.debug("Invoking remote function %s", name)
        data = await self._transport.invoke_function(name, payload or {})
        return FunctionResponse(data=data)


class CoreIntegrations:
    """Side-effecting platform integrations (email, file storage, LLM)."""

    PACKAGE = "Core"

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def send_email(
        self, to: str, subject: str, body: str, **extra: Any
    ) -> Any:
        payload = {"to": to, "subject": subject, "body": body, **extra}
        result = await self._transport.call_integration(self.PACKAGE, "SendEmail", payload)
        logger.info("Email sent to %s: %s", to, subject)
        return result

    async def upload_file(self, file: Any, **extra: Any) -> Any:
        return await self._transport.call_integration(
            self.PACKAGE, "UploadFile", {"file": file, **extra}
        )

    async def invoke_llm(
        self,
        prompt: str,
        response_json_schema: Dict[str, Any] | None = None,
        add_context_from_internet: bool = False,
        **extra: Any,
    ) -> Any:
        payload: Dict[str, Any] = {"prompt": prompt, **extra}
        if response_json_schema is not None:
            payload["response_json_schema"] = response_json_schema
        if add_context_from_internet:
            payload["add_context_from_internet"] = True
        return await self._transport.call_integration(self.PACKAGE, "InvokeLLM", payload)


class Integrations:
    def __init__(self, transport: Transport) -> None:
        self.core = CoreIntegrations(transport)


class Auth:
    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def me(self) -> Dict[str, Any]:
        """Return the current user/session record."""
        return await self._transport.current_user()


class Gateway:
    """Session-scoped handle to the hosted platform.

    Construct one per session and pass it explicitly to flows and panels.

    Args:
        transport: Wire implementation (HTTP or in-memory)
        validate: Validate entity payloads against their schemas before dispatch
    """

    def __init__(self, transport: Transport, validate: bool = True) -> None:
        self._transport = transport
        self.entities = EntityNamespace(transport, validate=validate)
        self.functions = Functions(transport)
        self.integrations = Integrations(transport)
        self.auth = Auth(transport)

    @property
    def transport(self) -> Transport:
        return self._transport

    async def initialize(self) -> None:
        await self._transport.initialize()

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> Gateway:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
