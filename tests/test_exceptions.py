"""Tests for the customops exception hierarchy."""

import pytest

from customops.exceptions import (
    ConcurrencyError,
    ConfigurationError,
    CustomOpsError,
    GatewayError,
    NotFoundError,
    OperationError,
    RequiredFieldsError,
    SchemaValidationError,
    ValidationError,
    WizardBusyError,
)
from customops.transitions import InvalidTransitionError


class TestHierarchy:
    """Every error derives from CustomOpsError along the expected branches."""

    @pytest.mark.parametrize(
        "error_cls,parent",
        [
            (ValidationError, CustomOpsError),
            (RequiredFieldsError, ValidationError),
            (SchemaValidationError, ValidationError),
            (ConfigurationError, CustomOpsError),
            (NotFoundError, CustomOpsError),
            (OperationError, CustomOpsError),
            (GatewayError, OperationError),
            (InvalidTransitionError, OperationError),
            (ConcurrencyError, CustomOpsError),
            (WizardBusyError, ConcurrencyError),
        ],
    )
    def test_subclass(self, error_cls, parent):
        assert issubclass(error_cls, parent)

    def test_context_defaults_to_empty(self):
        error = CustomOpsError("boom")
        assert str(error) == "boom"
        assert error.context == {}


class TestErrorDetails:
    """Tests for the structured attributes of specific errors."""

    def test_required_fields_message_is_sorted(self):
        error = RequiredFieldsError("client_info", ["last_name", "first_name"])
        assert str(error) == "Please fill in required fields: first_name, last_name"
        assert error.missing == ["first_name", "last_name"]
        assert error.context["step"] == "client_info"

    def test_schema_error_lists_fields(self):
        error = SchemaValidationError(
            "Client", [{"loc": ("first_name",), "msg": "required"}, {"loc": (), "msg": "bad"}]
        )
        assert str(error) == "Invalid Client payload: first_name, <root>"
        assert error.entity == "Client"

    def test_gateway_error_carries_status(self):
        error = GatewayError(
            "Not found", operation="entities.Client.get", status=404, context={"id": "c1"}
        )
        assert error.status == 404
        assert error.operation == "entities.Client.get"
        assert error.context == {"operation": "entities.Client.get", "status": 404, "id": "c1"}

    def test_busy_error_message(self):
        error = WizardBusyError("client_info", "advance")
        assert "Cannot advance" in str(error)
        assert "client_info" in str(error)
