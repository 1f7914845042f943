"""Entity schemas for the platform's named collections.

Payloads sent to ``entities.<Name>.create/update`` are plain dicts. The models
below mirror the fields the application reads and writes, and are used to
validate payloads at the gateway boundary before dispatch. Validation never
rewrites a payload: the original dict is what gets sent.

Extra fields are allowed on every model, since the hosted platform owns the
authoritative schema and new fields appear there first.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Dict, List, Literal, Type

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from customops.exceptions import SchemaValidationError

logger = logging.getLogger(__name__)

Severity = Literal["low", "medium", "high", "critical"]
Priority = Literal["low", "medium", "high", "urgent"]
DateLike = date | datetime | str


class EntityModel(BaseModel):
    """Base for all entity schemas."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    created_date: DateLike | None = None
    updated_date: DateLike | None = None
    created_by: str | None = None


class Client(EntityModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str | None = None
    phone: str | None = None
    date_of_birth: DateLike | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    agent_id: str | None = None
    status: Literal["prospect", "lead", "active", "inactive", "churned"] | None = None
    lifecycle_stage: str | None = None
    plan_type: str | None = None
    current_plan: str | None = None
    premium: float | None = Field(default=None, ge=0)
    sentiment_trend: Literal["improving", "stable", "declining"] | None = None
    churn_risk_level: Literal["low", "medium", "high", "critical"] | None = None
    satisfaction_score: float | None = Field(default=None, ge=0, le=10)
    last_contact_date: DateLike | None = None
    onboarding_status: Literal["pending", "welcome_sent", "in_progress", "completed"] | None = None
    welcome_email_sent: bool | None = None
    onboarding_started_date: DateLike | None = None
    special_needs: List[str] = Field(default_factory=list)


class Agent(EntityModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str | None = None
    npn: str | None = None
    onboarding_status: str | None = None
    state: str | None = None


class Carrier(EntityModel):
    name: str = Field(min_length=1)
    code: str | None = None
    status: str | None = None


class Contract(EntityModel):
    carrier_id: str | None = None
    agent_id: str | None = None
    contract_status: str | None = None
    expiration_date: DateLike | None = None


class CarrierAppointment(EntityModel):
    agent_id: str | None = None
    carrier_name: str | None = None
    status: str | None = None


class ComplianceFlag(EntityModel):
    violation_type: str | None = None
    severity: Severity | None = None
    status: Literal[
        "pending_review", "acknowledged", "escalated", "corrected", "dismissed"
    ] | None = None
    confidence_score: float | None = Field(default=None, ge=0, le=100)
    agent_id: str | None = None
    client_id: str | None = None
    reviewed_by: str | None = None
    reviewed_date: DateLike | None = None


class AgentOffboarding(EntityModel):
    agent_id: str
    agent_name: str | None = None
    initiated_by: str | None = None
    initiated_date: DateLike | None = None
    status: Literal["initiated", "in_progress", "completed", "cancelled"] | None = None
    reason: str | None = None
    reason_notes: str | None = None
    target_termination_date: DateLike | None = None
    system_access: Dict[str, Any] = Field(default_factory=dict)
    client_reassignment: Dict[str, Any] = Field(default_factory=dict)
    completion_percentage: int | None = Field(default=None, ge=0, le=100)
    completed_by: str | None = None
    completed_date: DateLike | None = None
    admin_notes: str | None = None


class TrainingSession(EntityModel):
    agent_id: str
    simulation_id: str | None = None
    responses: List[Dict[str, Any]] = Field(default_factory=list)
    completed: bool | None = None
    completed_date: DateLike | None = None
    score: float | None = Field(default=None, ge=0, le=100)
    passed: bool | None = None
    test_result: Literal["passed", "failed"] | None = None
    feedback: Dict[str, Any] | None = None
    certificate_generated: bool | None = None
    certificate_id: str | None = None


class Campaign(EntityModel):
    name: str | None = None
    status: str | None = None
    campaign_type: str | None = None
    target_segment: Dict[str, Any] | None = None


class Conversation(EntityModel):
    participants: List[str] = Field(default_factory=list)
    subject: str | None = None
    last_message_date: DateLike | None = None


class Message(EntityModel):
    conversation_id: str
    sender_id: str | None = None
    content: str = ""
    read: bool | None = None


class FollowUpSequence(EntityModel):
    name: str | None = None
    trigger_type: str | None = None
    is_active: bool | None = None
    steps: List[Dict[str, Any]] = Field(default_factory=list)


class PortalUser(EntityModel):
    email: str
    client_id: str | None = None
    full_name: str | None = None


class ClientInteraction(EntityModel):
    client_id: str
    agent_id: str | None = None
    interaction_type: str | None = None
    direction: Literal["inbound", "outbound"] | None = None
    subject: str | None = None
    notes: str | None = None
    outcome: str | None = None
    interaction_date: DateLike | None = None


class ProactiveOutreach(EntityModel):
    client_id: str
    agent_id: str | None = None
    opportunity_type: str | None = None
    title: str | None = None
    description: str | None = None
    priority: str | None = None
    reason: str | None = None
    status: Literal["draft", "sent", "responded", "dismissed"] | None = None
    ai_generated_message: Dict[str, Any] | None = None
    sent_date: DateLike | None = None
    response_date: DateLike | None = None
    client_sentiment_at_creation: Any = None


ENTITY_SCHEMAS: Dict[str, Type[EntityModel]] = {
    model.__name__: model
    for model in (
        Client,
        Agent,
        Carrier,
        Contract,
        CarrierAppointment,
        ComplianceFlag,
        AgentOffboarding,
        TrainingSession,
        Campaign,
        Conversation,
        Message,
        FollowUpSequence,
        PortalUser,
        ClientInteraction,
        ProactiveOutreach,
    )
}


def get_schema(entity: str) -> Type[EntityModel] | None:
    """Return the schema for an entity name, or ``None`` if it has none."""
    return ENTITY_SCHEMAS.get(entity)


@lru_cache(maxsize=None)
def _field_adapter(entity: str, field_name: str) -> TypeAdapter:
    model = ENTITY_SCHEMAS[entity]
    info = model.model_fields[field_name]
    return TypeAdapter(info.rebuild_annotation())


def validate_create(entity: str, payload: Dict[str, Any]) -> None:
    """Validate a full payload for ``create``.

    Raises:
        SchemaValidationError: If the payload does not match the schema
    """
    model = get_schema(entity)
    if model is None:
        return
    try:
        model.model_validate(payload)
    except PydanticValidationError as e:
        raise SchemaValidationError(entity, _clean_errors(e)) from e


def validate_update(entity: str, payload: Dict[str, Any]) -> None:
    """Validate only the fields present in a partial ``update`` payload.

    Raises:
        SchemaValidationError: If any supplied field has an invalid value
    """
    model = get_schema(entity)
    if model is None:
        return

    errors: list[dict[str, Any]] = []
    for name, value in payload.items():
        if name not in model.model_fields:
            continue
        try:
            _field_adapter(entity, name).validate_python(value)
        except PydanticValidationError as e:
            for err in _clean_errors(e):
                err["loc"] = (name, *err["loc"])
                errors.append(err)

    if errors:
        raise SchemaValidationError(entity, errors)


def _clean_errors(error: PydanticValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": tuple(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in error.errors()
    ]
