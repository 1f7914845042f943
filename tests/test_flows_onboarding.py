"""Tests for the client onboarding workflow and wizard."""

import pytest

from customops.flows import (
    ClientOnboardingWizard,
    ClientOnboardingWorkflow,
    OnboardingWizardStep,
    OnboardingWorkflowStep,
)
from customops.gateway import Gateway, InMemoryTransport

PLAN = {
    "welcome_email": {"subject": "Welcome aboard", "body": "Hi Ada, glad to have you."},
    "onboarding_steps": [{"step": 1, "title": "Review coverage"}],
    "risk_factors": [],
}


# ---------------------------------------------------------------------------
# ClientOnboardingWorkflow
# ---------------------------------------------------------------------------


@pytest.fixture
def workflow_transport():
    transport = InMemoryTransport(
        records={
            "Client": [
                {"id": "c1", "first_name": "Ada", "last_name": "Lovelace", "onboarding_status": "pending"}
            ]
        }
    )

    def onboarding(payload):
        return {
            "client": {"id": "c1", "first_name": payload["clientData"]["first_name"],
                       "onboarding_status": "pending"},
            "onboarding_plan": PLAN,
        }

    transport.register_function("aiOnboardingWorkflow", onboarding)
    return transport


@pytest.fixture
def workflow(workflow_transport, notifier):
    flow = ClientOnboardingWorkflow(Gateway(workflow_transport), agent_id="agent-1", notifier=notifier)
    flow.update(first_name="Ada", last_name="Lovelace", email="ada@example.com")
    return flow


class TestClientOnboardingWorkflow:

    @pytest.mark.asyncio
    async def test_plan_generated_on_first_advance(self, workflow, workflow_transport, notifier):
        assert await workflow.advance() is True

        assert workflow.step == OnboardingWorkflowStep.REVIEW_PLAN
        assert workflow.plan["welcome_email"]["subject"] == "Welcome aboard"
        assert workflow.client["id"] == "c1"
        [payload] = workflow_transport.function_calls("aiOnboardingWorkflow")
        assert payload["agentId"] == "agent-1"
        assert payload["clientData"]["email"] == "ada@example.com"
        assert notifier.successes == ["Onboarding plan generated! Review AI recommendations."]

    @pytest.mark.asyncio
    async def test_missing_last_name_blocks(self, workflow, workflow_transport, notifier):
        workflow.update(last_name="")
        assert await workflow.advance() is False
        assert workflow.step == OnboardingWorkflowStep.CLIENT_INFO
        assert workflow_transport.function_calls("aiOnboardingWorkflow") == []
        assert notifier.errors == ["Please fill in required fields: last_name"]

    @pytest.mark.asyncio
    async def test_incomplete_response_is_an_error(self, workflow, workflow_transport, notifier):
        workflow_transport.register_function("aiOnboardingWorkflow", lambda payload: {"client": None})
        assert await workflow.advance() is False
        assert workflow.step == OnboardingWorkflowStep.CLIENT_INFO
        assert "incomplete response" in notifier.errors[0]

    @pytest.mark.asyncio
    async def test_welcome_email_sent_and_completed(self, workflow, workflow_transport, notifier):
        completed = []
        workflow.controller._on_complete = completed.append

        await workflow.advance()
        await workflow.advance()
        assert workflow.step == OnboardingWorkflowStep.WELCOME_EMAIL

        assert await workflow.advance() is True
        assert workflow.step == OnboardingWorkflowStep.COMPLETE
        assert workflow_transport.outbox == [
            {"to": "ada@example.com", "subject": "Welcome aboard", "body": "Hi Ada, glad to have you."}
        ]
        [client] = workflow_transport.records("Client")
        assert client["onboarding_status"] == "welcome_sent"
        assert client["welcome_email_sent"] is True

        assert await workflow.complete() is True
        [client] = workflow_transport.records("Client")
        assert client["onboarding_status"] == "in_progress"
        assert client["status"] == "active"
        assert completed[0]["id"] == "c1"
        assert notifier.successes[-1] == "Client onboarding initiated successfully!"

    @pytest.mark.asyncio
    async def test_skip_welcome_email(self, workflow, workflow_transport, notifier):
        await workflow.advance()

        assert await workflow.skip() is True
        assert workflow.step == OnboardingWorkflowStep.COMPLETE
        assert workflow_transport.outbox == []
        assert notifier.messages("info") == ["Skipped welcome email"]

        assert await workflow.complete() is True
        [client] = workflow_transport.records("Client")
        assert client["onboarding_status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_email_failure_keeps_step(self, workflow, notifier):
        workflow.update(email="")
        await workflow.advance()
        await workflow.advance()

        assert await workflow.advance() is False
        assert workflow.step == OnboardingWorkflowStep.WELCOME_EMAIL
        assert notifier.errors == ["Email recipient is required"]

    @pytest.mark.asyncio
    async def test_plan_step_cannot_be_reentered(self, workflow, workflow_transport, notifier):
        await workflow.advance()

        assert await workflow.retreat() is False
        assert await workflow.regenerate() is False
        assert workflow.step == OnboardingWorkflowStep.REVIEW_PLAN
        assert len(workflow_transport.function_calls("aiOnboardingWorkflow")) == 1
        assert notifier.errors == []

    @pytest.mark.asyncio
    async def test_reset(self, workflow):
        await workflow.advance()
        workflow.reset()
        assert workflow.step == OnboardingWorkflowStep.CLIENT_INFO
        assert workflow.plan is None


# ---------------------------------------------------------------------------
# ClientOnboardingWizard
# ---------------------------------------------------------------------------


@pytest.fixture
def wizard_transport():
    transport = InMemoryTransport()

    def guidance(payload):
        if payload["current_step"] == 3:
            return {"guidance": {"tips": ["Compare drug formularies"],
                                 "recommendations": {"plan_types": ["medigap", "part_d", "pdp"]}}}
        return {"guidance": {"tips": ["Ask about chronic conditions"]}}

    transport.register_function("aiOnboardingWizard", guidance)
    transport.register_function(
        "generateOnboardingSummary", lambda payload: {"summary": f"Summary for {payload['client_id']}"}
    )
    return transport


@pytest.fixture
def wizard(wizard_transport, notifier):
    return ClientOnboardingWizard(Gateway(wizard_transport), agent_id="agent-7", notifier=notifier)


class TestClientOnboardingWizard:

    @pytest.mark.asyncio
    async def test_empty_first_name_cannot_advance(self, wizard, wizard_transport):
        wizard.update(first_name="", last_name="Hopper", email="grace@example.com")

        assert not wizard.can_advance
        assert await wizard.advance() is False
        assert wizard.step == OnboardingWizardStep.BASIC_INFO
        assert wizard_transport.calls == []

    @pytest.mark.asyncio
    async def test_full_run(self, wizard, wizard_transport, notifier):
        wizard.update(first_name="Grace", last_name="Hopper", email="grace@example.com")
        assert await wizard.advance() is True
        assert wizard_transport.function_calls("aiOnboardingWizard") == []

        wizard.update(health_conditions=["diabetes"], medications="metformin")
        assert await wizard.advance() is True
        assert wizard.step == OnboardingWizardStep.PLAN_SELECTION
        assert wizard.guidance.get("tips") == ["Ask about chronic conditions"]

        assert await wizard.advance() is True
        assert wizard.step == OnboardingWizardStep.REVIEW
        assert wizard.recommended_plans == ["medigap", "part_d"]
        payloads = wizard_transport.function_calls("aiOnboardingWizard")
        assert [p["current_step"] for p in payloads] == [2, 3]
        assert payloads[0]["client_data"]["medications"] == "metformin"

        assert await wizard.complete() is False
        assert notifier.errors == ["Please fill in required fields: selected_plan"]

        wizard.select_plan("Gold Advantage", premium=180)
        assert await wizard.complete() is True

        [client] = wizard_transport.records("Client")
        assert client["first_name"] == "Grace"
        assert client["agent_id"] == "agent-7"
        assert client["current_plan"] == "Gold Advantage"
        assert client["plan_type"] == "medicare_advantage"
        assert client["premium"] == 180
        assert client["onboarding_status"] == "completed"
        assert "selected_plan" not in client

        outcome = wizard.controller.outcome
        assert outcome["client"]["id"] == client["id"]
        assert outcome["summary"] == {"summary": f"Summary for {client['id']}"}
        assert notifier.successes == ["Client onboarding completed!"]

    @pytest.mark.asyncio
    async def test_progress(self, wizard):
        assert wizard.progress == 25.0
        wizard.update(first_name="Grace", last_name="Hopper", email="grace@example.com")
        await wizard.advance()
        assert wizard.progress == 50.0
