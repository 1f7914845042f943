"""``CUSTOMOPS_<SECTION>__<KEY>`` overrides applied on top of settings files."""

import os
from typing import Any, Dict, Mapping, Tuple

from customops.exceptions import ConfigurationError

from .substitution import coerce_scalar


class EnvironmentOverrides:
    """Read per-key settings overrides from the environment.

    Values are typed like single substitution references. Examples:
        - CUSTOMOPS_GATEWAY__BASE_URL -> gateway.base_url
        - CUSTOMOPS_WIZARD__PASSING_SCORE -> wizard.passing_score
    """

    ENV_PREFIX = "CUSTOMOPS_"
    ENV_SEPARATOR = "__"

    def __init__(self, prefix: str | None = None) -> None:
        self.prefix = prefix or self.ENV_PREFIX

    def get_overrides(self, environ: Mapping[str, str] | None = None) -> Dict[str, Dict[str, Any]]:
        """Collect overrides from the environment.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            Nested dict ``{section: {key: typed_value}}``
        """
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Dict[str, Any]] = {}

        for key, value in environ.items():
            if not key.startswith(self.prefix):
                continue
            try:
                section, attribute = self.parse_env_var(key)
            except ConfigurationError:
                # Unrelated variables sharing the prefix (e.g. CUSTOMOPS_HOME)
                continue
            overrides.setdefault(section, {})[attribute] = coerce_scalar(value)

        return overrides

    def parse_env_var(self, env_var: str) -> Tuple[str, str]:
        """Split an environment variable name into ``(section, key)``.

        Raises:
            ConfigurationError: If the name does not follow the override format
        """
        if not env_var.startswith(self.prefix):
            raise ConfigurationError(
                f"Environment variable must start with {self.prefix}",
                context={"variable": env_var},
            )

        parts = env_var[len(self.prefix):].split(self.ENV_SEPARATOR)
        if len(parts) != 2 or not all(parts):
            raise ConfigurationError(
                f"Invalid environment variable format: {env_var}",
                context={"variable": env_var},
            )

        return parts[0].lower(), parts[1].lower()
