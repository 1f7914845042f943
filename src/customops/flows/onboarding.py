"""Client onboarding flows.

Two flows create or activate a client record:

- :class:`ClientOnboardingWorkflow` asks the platform to create the client
  and draft an onboarding plan, optionally sends the plan's welcome email, and
  then marks onboarding as in progress.
- :class:`ClientOnboardingWizard` collects a health profile with remote
  guidance, lets the user pick a plan, and creates the client on completion.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List

from customops.exceptions import GatewayError
from customops.gateway import Gateway
from customops.transitions import CLIENT_ONBOARDING_STATUS
from customops.wizard import RemoteResult, StepDefinition, WizardDefinition

from .base import Flow, check_transition, utc_now

logger = logging.getLogger(__name__)


class OnboardingWorkflowStep(str, Enum):
    CLIENT_INFO = "client_info"
    REVIEW_PLAN = "review_plan"
    WELCOME_EMAIL = "welcome_email"
    COMPLETE = "complete"


class ClientOnboardingWorkflow(Flow):
    """Plan-driven onboarding of a new client.

    Steps: client info, plan review, welcome email (optional), completion.
    Leaving the client info step invokes ``aiOnboardingWorkflow``, which
    creates the client and returns ``{onboarding_plan, client}``. Leaving the
    welcome email step sends the plan's welcome email; skipping it does not.

    Args:
        gateway: Gateway handle
        agent_id: Agent the client is onboarded for
    """

    steps = OnboardingWorkflowStep

    def __init__(self, gateway: Gateway, agent_id: str, **kwargs: Any) -> None:
        self.agent_id = agent_id
        self._client_status: str | None = None
        super().__init__(gateway, **kwargs)

    def build_definition(self) -> WizardDefinition:
        return WizardDefinition(
            "client_onboarding_workflow",
            [
                StepDefinition(
                    OnboardingWorkflowStep.CLIENT_INFO,
                    "Client Information",
                    required_fields={"first_name", "last_name"},
                    icon="user",
                    generator=self._generate_plan,
                    commits=True,
                ),
                StepDefinition(OnboardingWorkflowStep.REVIEW_PLAN, "Review Plan", icon="target"),
                StepDefinition(
                    OnboardingWorkflowStep.WELCOME_EMAIL,
                    "Send Welcome Email",
                    icon="mail",
                    optional=True,
                    action=self._send_welcome_email,
                ),
                StepDefinition(OnboardingWorkflowStep.COMPLETE, "Complete", icon="check-circle"),
            ],
        )

    @property
    def plan(self) -> Dict[str, Any] | None:
        result = self.result
        return result.get("onboarding_plan") if result is not None else None

    @property
    def client(self) -> Dict[str, Any] | None:
        result = self.result
        return result.get("client") if result is not None else None

    async def skip(self) -> bool:
        skipped = await super().skip()
        if skipped and self.step == OnboardingWorkflowStep.COMPLETE:
            self.notifier.info("Skipped welcome email")
        return skipped

    async def _generate_plan(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        data = await self.invoke(
            "aiOnboardingWorkflow", {"clientData": form_data, "agentId": self.agent_id}
        )
        if not isinstance(data, dict) or not data.get("client") or "onboarding_plan" not in data:
            raise GatewayError(
                "aiOnboardingWorkflow returned an incomplete response",
                operation="functions.invoke:aiOnboardingWorkflow",
            )
        self._client_status = data["client"].get("onboarding_status") or "pending"
        self.notifier.success("Onboarding plan generated! Review AI recommendations.")
        logger.info("Onboarding plan generated for client %s", data["client"].get("id"))
        return data

    async def _send_welcome_email(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        client = self.client or {}
        welcome = (self.plan or {}).get("welcome_email") or {}
        check_transition(CLIENT_ONBOARDING_STATUS, self._client_status, "welcome_sent")

        await self.gateway.integrations.core.send_email(
            to=form_data.get("email", ""),
            subject=welcome.get("subject", ""),
            body=welcome.get("body", ""),
        )
        updated = await self.gateway.entities.Client.update(
            client["id"],
            {
                "onboarding_status": "welcome_sent",
                "welcome_email_sent": True,
                "onboarding_started_date": utc_now(),
            },
        )
        self._client_status = "welcome_sent"
        self.notifier.success("Welcome email sent!")
        return updated

    async def finish(self, form_data: Dict[str, Any], result: RemoteResult | None) -> Dict[str, Any]:
        client = self.client
        if client is None:
            raise GatewayError("No client was created for this onboarding", operation="complete")
        check_transition(CLIENT_ONBOARDING_STATUS, self._client_status, "in_progress")

        await self.gateway.entities.Client.update(
            client["id"], {"onboarding_status": "in_progress", "status": "active"}
        )
        self._client_status = "in_progress"
        self.notifier.success("Client onboarding initiated successfully!")
        return client


class OnboardingWizardStep(str, Enum):
    BASIC_INFO = "basic_info"
    HEALTH_PROFILE = "health_profile"
    PLAN_SELECTION = "plan_selection"
    REVIEW = "review"


DEFAULT_PLAN_TYPE = "medicare_advantage"
DEFAULT_PLAN_PREMIUM = 150


class ClientOnboardingWizard(Flow):
    """Guided onboarding that creates the client on completion.

    Leaving the health profile and plan selection steps requests guidance from
    ``aiOnboardingWizard``. Completion needs a selected plan, creates the
    client, and requests ``generateOnboardingSummary`` for it. The outcome is
    ``{"client": ..., "summary": ...}``.
    """

    steps = OnboardingWizardStep

    def __init__(self, gateway: Gateway, agent_id: str, **kwargs: Any) -> None:
        self.agent_id = agent_id
        super().__init__(gateway, **kwargs)

    def build_definition(self) -> WizardDefinition:
        return WizardDefinition(
            "client_onboarding_wizard",
            [
                StepDefinition(
                    OnboardingWizardStep.BASIC_INFO,
                    "Basic Info",
                    required_fields={"first_name", "last_name", "email"},
                    icon="user",
                ),
                StepDefinition(
                    OnboardingWizardStep.HEALTH_PROFILE,
                    "Health Profile",
                    icon="heart",
                    generator=self._guidance_for(2),
                ),
                StepDefinition(
                    OnboardingWizardStep.PLAN_SELECTION,
                    "Plan Selection",
                    icon="file-text",
                    generator=self._guidance_for(3),
                ),
                StepDefinition(
                    OnboardingWizardStep.REVIEW,
                    "Review",
                    required_fields={"selected_plan"},
                    icon="check-circle",
                ),
            ],
        )

    def _guidance_for(self, step_number: int):
        async def generate(form_data: Dict[str, Any]) -> Dict[str, Any]:
            client_data = {k: v for k, v in form_data.items() if k != "selected_plan"}
            data = await self.invoke(
                "aiOnboardingWizard", {"client_data": client_data, "current_step": step_number}
            )
            return (data or {}).get("guidance") or {}

        return generate

    @property
    def guidance(self) -> RemoteResult | None:
        return self.result

    @property
    def recommended_plans(self) -> List[str]:
        """Plan types recommended by the latest guidance, at most two."""
        if self.result is None:
            return []
        recommendations = self.result.get("recommendations") or {}
        return list(recommendations.get("plan_types") or [])[:2]

    def select_plan(
        self,
        name: str,
        plan_type: str = DEFAULT_PLAN_TYPE,
        premium: float = DEFAULT_PLAN_PREMIUM,
    ) -> None:
        self.update(selected_plan={"name": name, "type": plan_type, "premium": premium})

    async def finish(self, form_data: Dict[str, Any], result: RemoteResult | None) -> Dict[str, Any]:
        plan = form_data.get("selected_plan") or {}
        client_data = {k: v for k, v in form_data.items() if k != "selected_plan"}

        client = await self.gateway.entities.Client.create(
            {
                **client_data,
                "agent_id": self.agent_id,
                "status": "active",
                "current_plan": plan.get("name") or "To be determined",
                "plan_type": plan.get("type") or DEFAULT_PLAN_TYPE,
                "premium": plan.get("premium") or 0,
                "onboarding_status": "completed",
            }
        )
        summary = await self.invoke("generateOnboardingSummary", {"client_id": client["id"]})
        self.notifier.success("Client onboarding completed!")
        logger.info("Client %s onboarded by agent %s", client["id"], self.agent_id)
        return {"client": client, "summary": summary}
