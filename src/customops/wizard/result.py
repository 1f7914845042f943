"""Read-only view over a remote generation result.

A :class:`RemoteResult` wraps the structured object a remote call returned
(an onboarding plan, a simulation evaluation, an outreach message). Reads go
through dotted paths; writes are only accepted on paths declared editable,
such as the message body of an outreach draft.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any, Dict

from customops.exceptions import ValidationError

from .steps import lookup


class RemoteResult(Mapping[str, Any]):
    """Remote result with explicitly editable sub-fields.

    Args:
        data: The result object returned by the remote call
        editable: Dotted paths that may be changed with :meth:`set`

    Example:
        ```python
        result = RemoteResult(
            {"subject": "Checking in", "message": "Hi Ada"},
            editable={"message"},
        )
        result.set("message", "Hi Ada, quick question")
        result.set("subject", "x")  # raises ValidationError
        ```
    """

    def __init__(self, data: Mapping[str, Any] | None, editable: Iterable[str] = ()) -> None:
        self._original: Dict[str, Any] = copy.deepcopy(dict(data or {}))
        self._edits: Dict[str, Any] = {}
        self._editable = frozenset(editable)

    @property
    def editable(self) -> frozenset[str]:
        return self._editable

    @property
    def edited(self) -> bool:
        return bool(self._edits)

    def get(self, path: str, default: Any = None) -> Any:
        if path in self._edits:
            return self._edits[path]
        value = lookup(self._original, path)
        return default if value is None else copy.deepcopy(value)

    def set(self, path: str, value: Any) -> None:
        """Change an editable sub-field.

        Raises:
            ValidationError: If ``path`` is not declared editable
        """
        if path not in self._editable:
            raise ValidationError(
                f"Result field '{path}' is read-only",
                context={"path": path, "editable": sorted(self._editable)},
            )
        self._edits[path] = value

    def revert(self) -> None:
        self._edits.clear()

    def to_dict(self) -> Dict[str, Any]:
        """Return the result with edits applied."""
        data = copy.deepcopy(self._original)
        for path, value in self._edits.items():
            target = data
            *parents, leaf = path.split(".")
            for part in parents:
                target = target.setdefault(part, {})
            target[leaf] = value
        return data

    def __getitem__(self, key: str) -> Any:
        data = self.to_dict()
        return data[key]

    def __iter__(self):
        return iter(self.to_dict())

    def __len__(self) -> int:
        return len(self.to_dict())

    def __repr__(self) -> str:
        return f"RemoteResult({self.to_dict()!r}, editable={sorted(self._editable)!r})"
