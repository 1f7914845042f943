"""Remote entity gateway: entities, functions, integrations and auth."""

from customops.config import GatewaySettings

from .base import (
    Auth,
    CoreIntegrations,
    EntityCollection,
    EntityNamespace,
    FunctionResponse,
    Functions,
    Gateway,
    Integrations,
    Transport,
    parse_sort,
)
from .http import HTTPTransport
from .memory import InMemoryTransport


def create_gateway(settings: GatewaySettings | None = None) -> Gateway:
    """Build a gateway for the configured transport."""
    settings = settings or GatewaySettings()
    settings.validate()
    if settings.transport == "http":
        return Gateway(HTTPTransport.from_settings(settings))
    return Gateway(InMemoryTransport())


__all__ = [
    "Auth",
    "CoreIntegrations",
    "EntityCollection",
    "EntityNamespace",
    "FunctionResponse",
    "Functions",
    "Gateway",
    "HTTPTransport",
    "InMemoryTransport",
    "Integrations",
    "Transport",
    "create_gateway",
    "parse_sort",
]
