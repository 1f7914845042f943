"""In-memory gateway transport.

Stands in for the hosted platform during development and in tests: entity
collections are dicts of records, remote functions are handlers registered by
name, and integrations are recorded instead of performed.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Dict, List

from customops.exceptions import GatewayError

from .base import Transport, parse_sort

logger = logging.getLogger(__name__)

FunctionHandler = Callable[[Dict[str, Any]], Any]

DEFAULT_USER = {
    "id": "user-1",
    "email": "demo@example.com",
    "full_name": "Demo User",
    "role": "admin",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _sort_key(field: str) -> Callable[[Dict[str, Any]], tuple]:
    # Records missing the field sort first, ahead of any value
    def key(record: Dict[str, Any]) -> tuple:
        value = record.get(field)
        return (value is not None, value if value is not None else 0)

    return key


class InMemoryTransport(Transport):
    """Transport that keeps everything in process memory.

    Args:
        records: Initial collections, ``{"Client": [{...}, ...]}``. Records
            without an ``id`` are assigned one.
        user: Record returned by ``auth.me()``

    Attributes:
        outbox: Payloads of every ``SendEmail`` call
        uploads: Payloads of every ``UploadFile`` call
        calls: ``(kind, name, payload)`` log of every remote call made
    """

    def __init__(
        self,
        records: Dict[str, List[Dict[str, Any]]] | None = None,
        user: Dict[str, Any] | None = None,
    ) -> None:
        self._store: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._functions: Dict[str, FunctionHandler] = {}
        self._llm_handler: FunctionHandler | None = None
        self._user = dict(user or DEFAULT_USER)
        self.outbox: List[Dict[str, Any]] = []
        self.uploads: List[Dict[str, Any]] = []
        self.calls: List[tuple[str, str, Any]] = []

        for entity, items in (records or {}).items():
            for item in items:
                self._insert(entity, dict(item))

    def register_function(self, name: str, handler: FunctionHandler) -> None:
        """Register a handler for ``functions.invoke(name, ...)``.

        The handler receives the payload and returns the response data. It may
        be a coroutine function.
        """
        self._functions[name] = handler

    def set_llm_handler(self, handler: FunctionHandler) -> None:
        self._llm_handler = handler

    def records(self, entity: str) -> List[Dict[str, Any]]:
        """Return copies of all records of a collection, in insertion order."""
        return [copy.deepcopy(r) for r in self._store.get(entity, {}).values()]

    def function_calls(self, name: str) -> List[Dict[str, Any]]:
        """Return the payloads of every invocation of a remote function."""
        return [p for kind, n, p in self.calls if kind == "function" and n == name]

    def _insert(self, entity: str, record: Dict[str, Any]) -> Dict[str, Any]:
        record.setdefault("id", uuid.uuid4().hex)
        record.setdefault("created_date", _now())
        self._store.setdefault(entity, {})[str(record["id"])] = record
        return record

    def _require(self, entity: str, entity_id: str, operation: str) -> Dict[str, Any]:
        record = self._store.get(entity, {}).get(str(entity_id))
        if record is None:
            raise GatewayError(
                f"{entity} {entity_id} not found",
                operation=operation,
                status=404,
                context={"entity": entity, "id": entity_id},
            )
        return record

    def _select(
        self,
        entity: str,
        query: Dict[str, Any] | None,
        sort: str | None,
        limit: int | None,
    ) -> List[Dict[str, Any]]:
        items = list(self._store.get(entity, {}).values())
        if query:
            items = [r for r in items if all(r.get(k) == v for k, v in query.items())]
        parsed = parse_sort(sort)
        if parsed:
            field, descending = parsed
            items.sort(key=_sort_key(field), reverse=descending)
        if limit is not None:
            items = items[:limit]
        return [copy.deepcopy(r) for r in items]

    async def list_entities(
        self, entity: str, sort: str | None = None, limit: int | None = None
    ) -> List[Dict[str, Any]]:
        return self._select(entity, None, sort, limit)

    async def filter_entities(
        self,
        entity: str,
        query: Dict[str, Any],
        sort: str | None = None,
        limit: int | None = None,
    ) -> List[Dict[str, Any]]:
        return self._select(entity, query, sort, limit)

    async def get_entity(self, entity: str, entity_id: str) -> Dict[str, Any]:
        return copy.deepcopy(self._require(entity, entity_id, f"entities.{entity}.get"))

    async def create_entity(self, entity: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("create", entity, copy.deepcopy(data)))
        return copy.deepcopy(self._insert(entity, copy.deepcopy(data)))

    async def update_entity(
        self, entity: str, entity_id: str, data: Dict[str, Any]
    ) -> Dict[str, Any]:
        record = self._require(entity, entity_id, f"entities.{entity}.update")
        self.calls.append(("update", entity, {"id": entity_id, **copy.deepcopy(data)}))
        record.update(copy.deepcopy(data))
        record["updated_date"] = _now()
        return copy.deepcopy(record)

    async def delete_entity(self, entity: str, entity_id: str) -> None:
        self._require(entity, entity_id, f"entities.{entity}.delete")
        self.calls.append(("delete", entity, {"id": entity_id}))
        del self._store[entity][str(entity_id)]

    async def _run_handler(self, handler: FunctionHandler, payload: Dict[str, Any], operation: str) -> Any:
        try:
            result = handler(copy.deepcopy(payload))
            if asyncio.iscoroutine(result):
                result = await result
        except GatewayError:
            raise
        except Exception as e:
            logger.error("Handler for %s failed: %s", operation, e)
            raise GatewayError(str(e), operation=operation, status=500) from e
        return result

    async def invoke_function(self, name: str, payload: Dict[str, Any]) -> Any:
        self.calls.append(("function", name, copy.deepcopy(payload)))
        handler = self._functions.get(name)
        if handler is None:
            raise GatewayError(
                f"Function '{name}' is not deployed",
                operation=f"functions.invoke:{name}",
                status=404,
            )
        return await self._run_handler(handler, payload, f"functions.invoke:{name}")

    async def call_integration(
        self, package: str, endpoint: str, payload: Dict[str, Any]
    ) -> Any:
        self.calls.append(("integration", f"{package}.{endpoint}", copy.deepcopy(payload)))
        operation = f"integrations.{package}.{endpoint}"
        if package != "Core":
            raise GatewayError(f"Unknown integration package {package}", operation=operation, status=404)

        if endpoint == "SendEmail":
            if not payload.get("to"):
                raise GatewayError("Email recipient is required", operation=operation, status=400)
            self.outbox.append(copy.deepcopy(payload))
            return {"status": "sent"}
        if endpoint == "UploadFile":
            self.uploads.append(payload)
            return {"file_url": f"memory://uploads/{len(self.uploads)}"}
        if endpoint == "InvokeLLM":
            if self._llm_handler is None:
                raise GatewayError("No LLM handler configured", operation=operation, status=503)
            return await self._run_handler(self._llm_handler, payload, operation)

        raise GatewayError(f"Unknown integration {endpoint}", operation=operation, status=404)

    async def current_user(self) -> Dict[str, Any]:
        return dict(self._user)
