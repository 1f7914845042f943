"""Exception hierarchy for the customops package.

Every error raised by this package derives from :class:`CustomOpsError`, which
carries an optional context dictionary with structured details about the
failure (entity names, field names, remote function names, HTTP status).

The hierarchy mirrors the two failure kinds the platform distinguishes:

- client-side validation failures (:class:`ValidationError` and subclasses),
  detected before any remote call is attempted
- rejected remote calls (:class:`GatewayError`), raised by the gateway when
  the hosted backend or the network refuses a request

Example:
    ```python
    from customops.exceptions import CustomOpsError, GatewayError

    try:
        await gateway.functions.invoke("aiClientSegmentation", payload)
    except GatewayError as e:
        logger.error("Segmentation failed: %s", e)
        if e.context:
            logger.error("Context: %s", e.context)
    ```
"""

from typing import Any, Dict, Iterable


class CustomOpsError(Exception):
    """Base exception for the customops package.

    Attributes:
        context: Dictionary containing contextual information about the error

    Args:
        message: Human-readable error message
        context: Optional dictionary with error context (field names, IDs, etc.)

    Example:
        ```python
        error = CustomOpsError(
            "Operation failed",
            context={"operation": "update", "entity": "Client"}
        )
        str(error)
        # 'Operation failed'
        error.context
        # {'operation': 'update', 'entity': 'Client'}
        ```
    """

    def __init__(self, message: str, context: Dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ValidationError(CustomOpsError):
    """Raised when client-side validation fails.

    Use this exception when data fails validation before it is sent to the
    gateway: missing required wizard fields, entity payloads that do not
    match their schema, edits to read-only result fields.
    """

    pass


class RequiredFieldsError(ValidationError):
    """Raised when a wizard step is left with required fields unfilled.

    Attributes:
        step: Name of the step whose requirements were not met
        missing: Sorted list of the unfilled field names
    """

    def __init__(self, step: str, missing: Iterable[str]):
        self.step = step
        self.missing = sorted(missing)
        super().__init__(
            "Please fill in required fields: " + ", ".join(self.missing),
            context={"step": step, "missing": self.missing},
        )


class SchemaValidationError(ValidationError):
    """Raised when an entity payload does not match its schema.

    Attributes:
        entity: Entity type name (e.g. ``"Client"``)
        errors: List of error dicts reported by the schema validator
    """

    def __init__(self, entity: str, errors: list[dict[str, Any]]):
        self.entity = entity
        self.errors = errors
        fields = ", ".join(
            ".".join(str(part) for part in err.get("loc", ())) or "<root>"
            for err in errors
        )
        super().__init__(
            f"Invalid {entity} payload: {fields}",
            context={"entity": entity, "errors": errors},
        )


class ConfigurationError(CustomOpsError):
    """Raised when configuration is invalid or missing.

    Example:
        ```python
        raise ConfigurationError(
            "Gateway base_url missing",
            context={"section": "gateway", "available_keys": ["app_id"]}
        )
        ```
    """

    pass


class NotFoundError(CustomOpsError):
    """Raised when a requested entity or registered item is not found."""

    pass


class OperationError(CustomOpsError):
    """Raised when an operation fails.

    Covers general failures that are not validation problems, such as
    disallowed status transitions or calls made in the wrong wizard step.
    """

    pass


class GatewayError(OperationError):
    """Raised when the remote platform rejects a call.

    Attributes:
        status: HTTP status code if the failure came from an HTTP response,
            otherwise ``None`` (connection errors, handler exceptions)
        operation: Short description of the attempted call
            (e.g. ``"functions.invoke:aiOnboardingWizard"``)
    """

    def __init__(
        self,
        message: str,
        operation: str = "",
        status: int | None = None,
        context: Dict[str, Any] | None = None,
    ):
        self.operation = operation
        self.status = status
        ctx = {"operation": operation, "status": status}
        if context:
            ctx.update(context)
        super().__init__(message, context=ctx)


class ConcurrencyError(CustomOpsError):
    """Raised when concurrent operations conflict."""

    pass


class WizardBusyError(ConcurrencyError):
    """Raised when a wizard action is attempted while a remote call is pending."""

    def __init__(self, step: str, action: str):
        self.step = step
        self.action = action
        super().__init__(
            f"Cannot {action} while a remote call for step '{step}' is pending",
            context={"step": step, "action": action},
        )


__all__ = [
    "CustomOpsError",
    "ValidationError",
    "RequiredFieldsError",
    "SchemaValidationError",
    "ConfigurationError",
    "NotFoundError",
    "OperationError",
    "GatewayError",
    "ConcurrencyError",
    "WizardBusyError",
]
