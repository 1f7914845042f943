"""Concrete wizard flows built on the generic controller."""

from .base import Flow, check_transition, utc_now
from .compliance import review_actions, review_flag
from .offboarding import (
    DEPARTURE_REASONS,
    MANAGED_SYSTEMS,
    SYSTEM_KEYS,
    AgentOffboardingFlow,
    ManagedSystem,
    OffboardingStep,
)
from .onboarding import (
    ClientOnboardingWizard,
    ClientOnboardingWorkflow,
    OnboardingWizardStep,
    OnboardingWorkflowStep,
)
from .outreach import CHANNELS, OutreachStep, ProactiveOutreachFlow, update_outreach_status
from .simulation import InteractiveSimulation, SimulationStep, build_prompts

__all__ = [
    "CHANNELS",
    "DEPARTURE_REASONS",
    "MANAGED_SYSTEMS",
    "SYSTEM_KEYS",
    "AgentOffboardingFlow",
    "ClientOnboardingWizard",
    "ClientOnboardingWorkflow",
    "Flow",
    "InteractiveSimulation",
    "ManagedSystem",
    "OffboardingStep",
    "OnboardingWizardStep",
    "OnboardingWorkflowStep",
    "OutreachStep",
    "ProactiveOutreachFlow",
    "SimulationStep",
    "build_prompts",
    "check_transition",
    "review_actions",
    "review_flag",
    "update_outreach_status",
    "utc_now",
]
