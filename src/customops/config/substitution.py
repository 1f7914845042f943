"""``${VAR}`` references in settings files.

Reference forms:

- ``${VAR}`` takes the environment value and fails when ``VAR`` is unset
- ``${VAR:default}`` or ``${VAR:-default}`` fall back to ``default``

A value that is exactly one reference is also typed, so
``timeout: ${CUSTOMOPS_TIMEOUT:30}`` loads as ``30`` and not ``"30"``.
References embedded in longer text stay strings.
"""

from __future__ import annotations

import os
import re
from typing import Any, Mapping

from customops.exceptions import ConfigurationError

_TRUE = {"true", "yes"}
_FALSE = {"false", "no"}


def coerce_scalar(text: str) -> bool | int | float | str:
    """Type a substituted value: bool words, then int, then float."""
    lowered = text.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return text


class VariableSubstitution:
    """Replace ``${VAR}`` references throughout nested settings data.

    Args:
        environ: Mapping to resolve names against, ``os.environ`` by default
    """

    VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-?([^}]*))?\}")

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def substitute(self, value: Any) -> Any:
        """Substitute every reference inside ``value``; mapping keys are left alone.

        Raises:
            ConfigurationError: If a reference without a default names an
                unset variable
        """
        if isinstance(value, dict):
            return {key: self.substitute(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self.substitute(item) for item in value]
        if not isinstance(value, str):
            return value

        whole = self.VAR_PATTERN.fullmatch(value)
        if whole is not None:
            return coerce_scalar(self._resolve(whole))
        return self.VAR_PATTERN.sub(self._resolve, value)

    def _resolve(self, match: re.Match) -> str:
        name, default = match.group(1), match.group(2)
        if name in self._environ:
            return self._environ[name]
        if default is not None:
            return default
        raise ConfigurationError(
            f"Environment variable '{name}' not found", context={"variable": name}
        )
