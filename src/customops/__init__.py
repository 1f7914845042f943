"""Agency operations toolkit on top of a hosted entity platform.

This package provides:

- **Gateway**: Typed access to remote entities, functions, integrations and auth
- **Wizard**: Generic multi-step controller with remote generation steps
- **Flows**: Client onboarding, agent offboarding, training simulation, outreach
- **Segmentation**: Conjunctive client, carrier and agent filters
- **Metrics**: Carrier health, compliance and agent status aggregates

Example:
    ```python
    from customops import Gateway, InMemoryTransport, ClientOnboardingWizard

    gateway = Gateway(InMemoryTransport())
    wizard = ClientOnboardingWizard(gateway, agent_id="agent-1")
    wizard.update(first_name="Ada", last_name="Lovelace", email="ada@example.com")
    await wizard.advance()
    ```
"""

from customops.config import Settings, load_settings
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
from customops.flows import (
    AgentOffboardingFlow,
    ClientOnboardingWizard,
    ClientOnboardingWorkflow,
    InteractiveSimulation,
    ProactiveOutreachFlow,
)
from customops.gateway import Gateway, HTTPTransport, InMemoryTransport, create_gateway
from customops.notify import LoggingNotifier, Notifier, RecordingNotifier
from customops.segmentation import SegmentCriteria, filter_agents, filter_carriers, filter_clients
from customops.theme import Theme
from customops.transitions import InvalidTransitionError, TransitionValidator
from customops.wizard import RemoteResult, StepDefinition, WizardController, WizardDefinition

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "CustomOpsError",
    "ValidationError",
    "RequiredFieldsError",
    "SchemaValidationError",
    "ConfigurationError",
    "NotFoundError",
    "OperationError",
    "GatewayError",
    "InvalidTransitionError",
    "ConcurrencyError",
    "WizardBusyError",
    # Configuration
    "Settings",
    "load_settings",
    # Gateway
    "Gateway",
    "HTTPTransport",
    "InMemoryTransport",
    "create_gateway",
    # Notifications
    "Notifier",
    "LoggingNotifier",
    "RecordingNotifier",
    # Wizard
    "StepDefinition",
    "WizardDefinition",
    "WizardController",
    "RemoteResult",
    "TransitionValidator",
    # Flows
    "ClientOnboardingWorkflow",
    "ClientOnboardingWizard",
    "AgentOffboardingFlow",
    "InteractiveSimulation",
    "ProactiveOutreachFlow",
    # Filters
    "SegmentCriteria",
    "filter_clients",
    "filter_carriers",
    "filter_agents",
    # Display
    "Theme",
]
