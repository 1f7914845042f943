"""Proactive client outreach.

Opportunities are detected remotely per agent. Selecting one and a channel
and advancing drafts a message with ``aiGenerateOutreachMessage``; the draft's
subject and body stay editable until the message is sent. Sending logs a
``ClientInteraction``, emails the client on the email channel, and records a
``ProactiveOutreach``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List

from customops.exceptions import RequiredFieldsError
from customops.gateway import Gateway
from customops.transitions import OUTREACH_STATUS
from customops.wizard import RemoteResult, StepDefinition, WizardDefinition, is_satisfied

from .base import Flow, check_transition, utc_now

logger = logging.getLogger(__name__)

CHANNELS = ("email", "sms")


class OutreachStep(str, Enum):
    SELECT = "select"
    REVIEW = "review"


class ProactiveOutreachFlow(Flow):
    """Detect outreach opportunities and send one drafted message.

    Args:
        gateway: Gateway handle
        agent_id: Agent doing the outreach
    """

    steps = OutreachStep
    editable_result_fields = ("subject", "message")

    def __init__(self, gateway: Gateway, agent_id: str, **kwargs: Any) -> None:
        self.agent_id = agent_id
        self.opportunities: List[Dict[str, Any]] = []
        super().__init__(gateway, **kwargs)

    def build_definition(self) -> WizardDefinition:
        return WizardDefinition(
            "proactive_outreach",
            [
                StepDefinition(
                    OutreachStep.SELECT,
                    "Select Opportunity",
                    required_fields={"opportunity", "channel"},
                    icon="sparkles",
                    generator=self._generate_message,
                ),
                StepDefinition(OutreachStep.REVIEW, "Review & Send", icon="send"),
            ],
        )

    async def detect(self) -> List[Dict[str, Any]]:
        """Fetch the agent's current outreach opportunities."""
        ok, data = await self.controller.run_remote(
            "detect",
            self.invoke,
            "aiProactiveOutreachDetector",
            {"agent_id": self.agent_id},
            error_message="Failed to detect opportunities",
        )
        if ok:
            self.opportunities = list((data or {}).get("opportunities") or [])
            self.notifier.success("Opportunities detected")
        return self.opportunities

    def select(self, opportunity: Dict[str, Any], channel: str = "email") -> None:
        if channel not in CHANNELS:
            raise ValueError(f"Unknown outreach channel: {channel}")
        self.update(opportunity=opportunity, channel=channel)

    @property
    def draft(self) -> RemoteResult | None:
        return self.result if self.step == OutreachStep.REVIEW else None

    def edit(self, message: str | None = None, subject: str | None = None) -> None:
        """Edit the drafted message before sending.

        Raises:
            ValidationError: If there is no draft to edit
        """
        draft = self.result
        if draft is None:
            raise RequiredFieldsError(OutreachStep.REVIEW.value, ["outreach_message"])
        if message is not None:
            draft.set("message", message)
        if subject is not None:
            draft.set("subject", subject)

    async def _generate_message(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        selected = form_data["opportunity"]
        data = await self.invoke(
            "aiGenerateOutreachMessage",
            {
                "client_id": selected.get("client_id"),
                "opportunity": selected.get("opportunity"),
                "channel": form_data["channel"],
                "agent_id": self.agent_id,
            },
        )
        self.notifier.success("Message generated")
        return (data or {}).get("outreach_message") or {}

    async def finish(self, form_data: Dict[str, Any], result: RemoteResult | None) -> Dict[str, Any]:
        draft = result.to_dict() if result is not None else {}
        message = draft.get("message")
        if not is_satisfied(message):
            raise RequiredFieldsError(OutreachStep.REVIEW.value, ["message"])

        selected = form_data["opportunity"]
        opportunity = selected.get("opportunity") or {}
        client_id = selected.get("client_id")
        channel = form_data["channel"]
        subject = draft.get("subject")

        await self.gateway.entities.ClientInteraction.create(
            {
                "client_id": client_id,
                "agent_id": self.agent_id,
                "interaction_type": "text_message" if channel == "sms" else "email",
                "direction": "outbound",
                "subject": subject or "Proactive Outreach",
                "notes": message,
                "outcome": "successful",
                "interaction_date": utc_now(),
            }
        )

        if channel == "email":
            clients = await self.gateway.entities.Client.filter({"id": client_id})
            email = clients[0].get("email") if clients else None
            if email:
                await self.gateway.integrations.core.send_email(
                    to=email, subject=subject or "", body=message
                )
            else:
                logger.warning("Client %s has no email address; outreach logged only", client_id)

        record = await self.gateway.entities.ProactiveOutreach.create(
            {
                "client_id": client_id,
                "agent_id": self.agent_id,
                "opportunity_type": opportunity.get("type"),
                "title": opportunity.get("title"),
                "description": opportunity.get("description"),
                "priority": opportunity.get("priority"),
                "reason": opportunity.get("reason"),
                "status": "sent",
                "ai_generated_message": {"subject": subject, "message": message, "channel": channel},
                "sent_date": utc_now(),
                "client_sentiment_at_creation": selected.get("client_sentiment"),
            }
        )
        self.notifier.success("Outreach sent successfully")
        return record


async def update_outreach_status(gateway: Gateway, outreach_id: str, status: str) -> Dict[str, Any]:
    """Move a recorded outreach along its status graph.

    Sent outreach can be marked ``responded``; an unsent draft can be
    ``dismissed``.

    Raises:
        InvalidTransitionError: If the outreach cannot move to ``status``
    """
    outreach = await gateway.entities.ProactiveOutreach.get(outreach_id)
    check_transition(OUTREACH_STATUS, outreach.get("status") or "draft", status)
    data: Dict[str, Any] = {"status": status}
    if status == "responded":
        data["response_date"] = utc_now()
    return await gateway.entities.ProactiveOutreach.update(outreach_id, data)
