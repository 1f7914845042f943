"""Settings loading for customops.

Settings come from a YAML or JSON file (or a dict), pass through
``${VAR}`` substitution, and are then overridden by ``CUSTOMOPS_*``
environment variables.

Example config::

    gateway:
      transport: http
      base_url: https://app.base44.com/api
      app_id: ${CUSTOMOPS_APP_ID}
      auth_token: ${CUSTOMOPS_TOKEN:}
      timeout: 30

    wizard:
      passing_score: 70

    metrics:
      expiring_window_days: 90
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from customops.exceptions import ConfigurationError

from .environment import EnvironmentOverrides
from .substitution import VariableSubstitution

logger = logging.getLogger(__name__)

TRANSPORTS = ("http", "memory")


@dataclass
class GatewaySettings:
    """Connection settings for the remote entity gateway."""

    transport: str = "memory"
    base_url: str = "https://app.base44.com/api"
    app_id: str = ""
    auth_token: str | None = None
    timeout: float = 30.0
    verify_ssl: bool = True
    requires_auth: bool = True

    def validate(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ConfigurationError(
                f"Unknown gateway transport: {self.transport}",
                context={"section": "gateway", "allowed": list(TRANSPORTS)},
            )
        if self.transport == "http":
            if not self.base_url:
                raise ConfigurationError(
                    "Gateway base_url is required for the http transport",
                    context={"section": "gateway"},
                )
            if not self.app_id:
                raise ConfigurationError(
                    "Gateway app_id is required for the http transport",
                    context={"section": "gateway"},
                )
        if self.timeout <= 0:
            raise ConfigurationError(
                "Gateway timeout must be positive",
                context={"section": "gateway", "timeout": self.timeout},
            )


@dataclass
class WizardSettings:
    passing_score: int = 70

    def validate(self) -> None:
        if not 0 <= self.passing_score <= 100:
            raise ConfigurationError(
                "wizard.passing_score must lie in [0, 100]",
                context={"section": "wizard", "passing_score": self.passing_score},
            )


@dataclass
class MetricsSettings:
    expiring_window_days: int = 90

    def validate(self) -> None:
        if self.expiring_window_days < 1:
            raise ConfigurationError(
                "metrics.expiring_window_days must be at least 1",
                context={"section": "metrics"},
            )


@dataclass
class Settings:
    """Top-level settings object passed explicitly to gateway and flows."""

    gateway: GatewaySettings = field(default_factory=GatewaySettings)
    wizard: WizardSettings = field(default_factory=WizardSettings)
    metrics: MetricsSettings = field(default_factory=MetricsSettings)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Settings:
        """Build settings from a plain dict, rejecting unknown keys."""
        sections = {
            "gateway": GatewaySettings,
            "wizard": WizardSettings,
            "metrics": MetricsSettings,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration sections: {', '.join(sorted(unknown))}",
                context={"unknown": sorted(unknown), "available": sorted(sections)},
            )

        built: dict[str, Any] = {}
        for name, section_cls in sections.items():
            values = data.get(name) or {}
            if not isinstance(values, Mapping):
                raise ConfigurationError(
                    f"Configuration section '{name}' must be a mapping",
                    context={"section": name},
                )
            known = {f.name for f in fields(section_cls)}
            extra = set(values) - known
            if extra:
                raise ConfigurationError(
                    f"Unknown keys in '{name}': {', '.join(sorted(extra))}",
                    context={"section": name, "unknown": sorted(extra)},
                )
            section = section_cls(**values)
            section.validate()
            built[name] = section

        return cls(**built)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _read_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {path}", context={"path": str(path)}
        )

    suffix = path.suffix.lower()
    if suffix not in (".yaml", ".yml", ".json"):
        raise ConfigurationError(
            f"Unsupported file format: {suffix}", context={"path": str(path)}
        )
    with open(path) as f:
        try:
            data = json.load(f) if suffix == ".json" else yaml.safe_load(f)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to parse configuration file {path}: {e}", context={"path": str(path)}
            ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration root must be a mapping", context={"path": str(path)}
        )
    return data


def load_settings(
    source: Union[str, Path, Mapping[str, Any], None] = None,
    *,
    use_env: bool = True,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from a file path or dict.

    Args:
        source: YAML/JSON path, a mapping, or ``None`` for defaults only
        use_env: Apply ``CUSTOMOPS_<SECTION>__<KEY>`` overrides
        environ: Environment mapping to use instead of ``os.environ``

    Returns:
        Validated :class:`Settings`

    Raises:
        ConfigurationError: On missing files, unknown keys or invalid values
    """
    if source is None:
        raw: dict[str, Any] = {}
    elif isinstance(source, Mapping):
        raw = dict(source)
    else:
        raw = _read_file(Path(source))

    data = VariableSubstitution(environ).substitute(raw)

    if use_env:
        for section, values in EnvironmentOverrides().get_overrides(environ).items():
            logger.debug("Applying environment overrides for %s: %s", section, sorted(values))
            data.setdefault(section, {})
            if data[section] is None:
                data[section] = {}
            data[section].update(values)

    try:
        return Settings.from_dict(data)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
