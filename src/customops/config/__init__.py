"""Configuration for customops.

Settings are read from YAML/JSON, expanded with ``${VAR}`` substitution and
overridden by ``CUSTOMOPS_<SECTION>__<KEY>`` environment variables.
"""

from .environment import EnvironmentOverrides
from .settings import (
    GatewaySettings,
    MetricsSettings,
    Settings,
    WizardSettings,
    load_settings,
)
from .substitution import VariableSubstitution

__all__ = [
    "EnvironmentOverrides",
    "GatewaySettings",
    "MetricsSettings",
    "Settings",
    "VariableSubstitution",
    "WizardSettings",
    "load_settings",
]
