"""Interactive training simulation.

An agent answers a fixed sequence of prompts derived from a simulation
scenario. Each answer is saved to a ``TrainingSession``; after the last one
the responses are evaluated remotely, the session is scored, the training
notification is sent, and a certificate is issued when the agent passed and
the simulation grants one.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List

from customops.config import WizardSettings
from customops.exceptions import GatewayError, RequiredFieldsError
from customops.gateway import Gateway
from customops.wizard import RemoteResult, StepDefinition, WizardDefinition, is_satisfied

from .base import Flow, utc_now

logger = logging.getLogger(__name__)

DEFAULT_PASSING_SCORE = 70
CLOSING_PROMPT = "Client asks about pricing and coverage details. Explain the benefits clearly."
ANSWERED_ALL = "all_prompts_answered"


def build_prompts(scenario: Dict[str, Any]) -> List[str]:
    """Prompts for a scenario: the situation, one per client concern, then pricing."""
    concerns = scenario.get("client_concerns") or []
    return [
        scenario.get("situation", ""),
        *(f'Client says: "{c}". How do you respond?' for c in concerns),
        CLOSING_PROMPT,
    ]


class SimulationStep(str, Enum):
    BRIEFING = "briefing"
    RESPONDING = "responding"
    EVALUATION = "evaluation"


class InteractiveSimulation(Flow):
    """Run one training simulation for an agent.

    Args:
        gateway: Gateway handle
        simulation: Simulation record (``id``, ``title``, ``scenario``,
            ``passing_score``, ``generate_certificate``)
        agent_id: Agent taking the simulation
        passing_score: Passing score used when the simulation sets none
    """

    steps = SimulationStep

    def __init__(
        self,
        gateway: Gateway,
        simulation: Dict[str, Any],
        agent_id: str,
        passing_score: int = DEFAULT_PASSING_SCORE,
        **kwargs: Any,
    ) -> None:
        self.simulation = simulation
        self.agent_id = agent_id
        self.passing_score = simulation.get("passing_score") or passing_score
        self.prompts = build_prompts(simulation.get("scenario") or {})
        self.session_id: str | None = None
        super().__init__(gateway, **kwargs)
        self.controller.form_data.setdefault("responses", [])
        self.controller.form_data.setdefault("prompt_index", 0)

    @classmethod
    def from_settings(
        cls,
        gateway: Gateway,
        simulation: Dict[str, Any],
        agent_id: str,
        settings: WizardSettings,
        **kwargs: Any,
    ) -> InteractiveSimulation:
        """Create a simulation whose fallback passing score is ``settings.passing_score``."""
        return cls(gateway, simulation, agent_id, passing_score=settings.passing_score, **kwargs)

    def build_definition(self) -> WizardDefinition:
        return WizardDefinition(
            "interactive_simulation",
            [
                StepDefinition(
                    SimulationStep.BRIEFING,
                    "Scenario Briefing",
                    icon="award",
                    action=self._start_session,
                    commits=True,
                ),
                StepDefinition(
                    SimulationStep.RESPONDING,
                    "Respond",
                    required_fields={"responses", ANSWERED_ALL},
                    icon="message-square",
                    generator=self._evaluate,
                    commits=True,
                ),
                StepDefinition(SimulationStep.EVALUATION, "Results", icon="trending-up"),
            ],
        )

    @property
    def prompt_index(self) -> int:
        return self.form_data["prompt_index"]

    @property
    def current_prompt(self) -> str | None:
        if self.step != SimulationStep.RESPONDING or self.prompt_index >= len(self.prompts):
            return None
        return self.prompts[self.prompt_index]

    @property
    def responses(self) -> List[Dict[str, Any]]:
        return list(self.form_data["responses"])

    @property
    def progress(self) -> float:
        """Share of prompts reached, as the agent sees it."""
        return min(self.prompt_index + 1, len(self.prompts)) / len(self.prompts) * 100

    @property
    def evaluation(self) -> RemoteResult | None:
        return self.result if self.step == SimulationStep.EVALUATION else None

    async def start(self) -> bool:
        """Create the training session and show the first prompt."""
        return await self.advance()

    async def submit_response(self, text: str) -> bool:
        """Save the answer to the current prompt.

        After the last prompt the responses are evaluated and the flow moves
        to the results step.
        """
        if self.step != SimulationStep.RESPONDING:
            logger.warning("Simulation response refused on step %s", self.step.value)
            return False
        if self.prompt_index >= len(self.prompts):
            return await self.advance()
        if not is_satisfied(text):
            error = RequiredFieldsError(SimulationStep.RESPONDING.value, ["agent_response"])
            self.notifier.error(str(error))
            return False

        ok, responses = await self.controller.run_remote(
            "submit_response", self._save_response, text, error_message="Failed to save response"
        )
        if not ok:
            return False

        self.form_data["responses"] = responses
        self.form_data["prompt_index"] = self.prompt_index + 1
        if self.prompt_index < len(self.prompts):
            return True
        self.form_data[ANSWERED_ALL] = True
        return await self.advance()

    async def _start_session(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        if self.session_id is not None:
            return {"id": self.session_id}
        session = await self.gateway.entities.TrainingSession.create(
            {"agent_id": self.agent_id, "simulation_id": self.simulation.get("id"), "responses": []}
        )
        self.session_id = session["id"]
        logger.info("Training session %s started for agent %s", self.session_id, self.agent_id)
        return session

    async def _save_response(self, text: str) -> List[Dict[str, Any]]:
        responses = [
            *self.form_data["responses"],
            {
                "prompt": self.prompts[self.prompt_index],
                "agent_response": text,
                "timestamp": utc_now(),
            },
        ]
        await self.gateway.entities.TrainingSession.update(self.session_id, {"responses": responses})
        return responses

    async def _evaluate(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        data = await self.invoke(
            "aiSimulationEvaluator",
            {
                "session_id": self.session_id,
                "simulation_id": self.simulation.get("id"),
                "agent_responses": form_data["responses"],
            },
        )
        evaluation = data.get("evaluation")
        if not isinstance(evaluation, dict) or evaluation.get("overall_score") is None:
            raise GatewayError(
                "aiSimulationEvaluator returned no score",
                operation="functions.invoke:aiSimulationEvaluator",
            )

        score = evaluation["overall_score"]
        passed = score >= self.passing_score
        await self.gateway.entities.TrainingSession.update(
            self.session_id,
            {
                "completed": True,
                "completed_date": utc_now(),
                "score": score,
                "passed": passed,
                "test_result": "passed" if passed else "failed",
                "feedback": {
                    "strengths": evaluation.get("strengths"),
                    "improvements": evaluation.get("improvements"),
                    "missed_points": evaluation.get("missed_points"),
                    "overall_assessment": evaluation.get("overall_assessment"),
                },
            },
        )

        grants_certificate = bool(passed and self.simulation.get("generate_certificate"))
        user = await self.gateway.auth.me()
        await self.invoke(
            "trainingNotificationEngine",
            {
                "notification_type": "test_passed" if passed else "test_failed",
                "agent_id": self.agent_id,
                "agent_email": user.get("email"),
                "data": {
                    "agent_name": user.get("full_name"),
                    "training_title": self.simulation.get("title"),
                    "score": score,
                    "passing_score": self.passing_score,
                    "generate_certificate": grants_certificate,
                },
            },
        )

        certificate_id = None
        if grants_certificate:
            certificate = await self.invoke(
                "generateCertificate",
                {
                    "agent_id": self.agent_id,
                    "training_session_id": self.session_id,
                    "training_title": self.simulation.get("title"),
                    "training_type": "simulation",
                    "score": score,
                },
            )
            certificate_id = (certificate.get("certificate") or {}).get("certificate_id")
            await self.gateway.entities.TrainingSession.update(
                self.session_id,
                {"certificate_generated": True, "certificate_id": certificate_id},
            )

        logger.info(
            "Simulation %s scored %s for agent %s (passed=%s)",
            self.simulation.get("id"),
            score,
            self.agent_id,
            passed,
        )
        return {**evaluation, "passed": passed, "certificate_id": certificate_id}

    async def finish(self, form_data: Dict[str, Any], result: RemoteResult | None) -> Dict[str, Any]:
        return result.to_dict() if result is not None else {}
