"""Client-side filtering of entity lists.

Every filter here is conjunctive: a record is kept only if it satisfies every
active criterion, and an unset criterion (``None``, blank, empty list,
``"all"``) imposes no constraint. Filters never reorder or copy records; the
result is the sub-list of the input that matches.

Example:
    ```python
    criteria = SegmentCriteria.from_dict(
        {"minPremium": "100", "maxPremium": "500", "sentimentTrend": "declining"}
    )
    at_risk = filter_clients(clients, criteria)
    ```
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from customops.dates import days_between, to_date, today
from customops.exceptions import ValidationError
from customops.gateway import Gateway

logger = logging.getLogger(__name__)

UNSET_VALUES = ("", "all")


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def is_unset(value: Any) -> bool:
    """Whether a criterion value imposes no constraint."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in UNSET_VALUES
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def matches_text(query: str | None, *values: Any) -> bool:
    """Case-insensitive substring match of ``query`` over any of ``values``."""
    if is_unset(query):
        return True
    needle = query.strip().lower()
    return any(needle in str(v).lower() for v in values if v is not None)


def in_range(value: Any, minimum: float | None = None, maximum: float | None = None) -> bool:
    """Inclusive numeric range check.

    A missing or non-finite value fails an active bound.
    """
    if minimum is None and maximum is None:
        return True
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    if not math.isfinite(number):
        return False
    if minimum is not None and number < minimum:
        return False
    if maximum is not None and number > maximum:
        return False
    return True


def equals(value: Any, expected: Any) -> bool:
    return is_unset(expected) or value == expected


def is_member(value: Any, allowed: Iterable[Any] | None) -> bool:
    allowed = list(allowed or [])
    return not allowed or value in allowed


def at_least_days_ago(value: Any, days: int | None, reference: date | None = None) -> bool:
    """Whether a date lies ``days`` or more before ``reference``.

    Records with no date count as never contacted and match.
    """
    if days is None:
        return True
    when = to_date(value)
    if when is None:
        return True
    return days_between(when, reference or today()) >= days


# ---------------------------------------------------------------------------
# Client segmentation
# ---------------------------------------------------------------------------


class SegmentCriteria(BaseModel):
    """Client segmentation criteria.

    Accepts both snake_case names and the camelCase names used by form fields,
    and the string values form inputs produce (``"100"``, ``""``).
    """

    model_config = ConfigDict(
        populate_by_name=True, extra="forbid", frozen=True, allow_inf_nan=False
    )

    policy_types: List[str] = Field(default_factory=list, alias="policyTypes")
    min_premium: float | None = Field(default=None, alias="minPremium")
    max_premium: float | None = Field(default=None, alias="maxPremium")
    sentiment_trend: str | None = Field(default=None, alias="sentimentTrend")
    lifecycle_stage: str | None = Field(default=None, alias="lifecycleStage")
    churn_risk_level: str | None = Field(default=None, alias="churnRiskLevel")
    days_since_contact: int | None = Field(default=None, ge=0, alias="daysSinceContact")
    min_satisfaction: float | None = Field(default=None, alias="minSatisfaction")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in UNSET_VALUES:
            return None
        return value

    @field_validator("policy_types", mode="before")
    @classmethod
    def _policy_types_list(cls, value: Any) -> Any:
        if value is None or is_unset(value):
            return []
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple, set)):
            return [p.strip() if isinstance(p, str) else p for p in value if not is_unset(p)]
        return value

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> SegmentCriteria:
        """Build criteria from form or config data.

        Raises:
            ValidationError: If a value cannot be interpreted
        """
        try:
            return cls.model_validate(dict(data or {}))
        except PydanticValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise ValidationError(
                f"Invalid segment criteria: {', '.join(fields)}",
                context={"errors": [err["msg"] for err in e.errors()]},
            ) from e

    def to_payload(self) -> Dict[str, Any]:
        """CamelCase form used by the remote segmentation function."""
        return self.model_dump(by_alias=True)

    @property
    def active(self) -> List[str]:
        """Names of the criteria that constrain the result."""
        return [name for name, value in self if not is_unset(value)]

    def matches(self, client: Mapping[str, Any], reference: date | None = None) -> bool:
        lifecycle = client.get("lifecycle_stage") or client.get("status")
        return (
            is_member(client.get("plan_type"), self.policy_types)
            and in_range(client.get("premium"), self.min_premium, self.max_premium)
            and equals(client.get("sentiment_trend"), self.sentiment_trend)
            and equals(lifecycle, self.lifecycle_stage)
            and equals(client.get("churn_risk_level"), self.churn_risk_level)
            and at_least_days_ago(client.get("last_contact_date"), self.days_since_contact, reference)
            and in_range(client.get("satisfaction_score"), self.min_satisfaction)
        )


def filter_clients(
    clients: Sequence[Mapping[str, Any]],
    criteria: SegmentCriteria | Mapping[str, Any],
    reference: date | None = None,
) -> List[Mapping[str, Any]]:
    """Return the clients matching every active criterion, in input order."""
    if not isinstance(criteria, SegmentCriteria):
        criteria = SegmentCriteria.from_dict(criteria)
    reference = reference or today()
    selected = [c for c in clients if criteria.matches(c, reference)]
    logger.debug(
        "Segment %s matched %d of %d clients", criteria.active, len(selected), len(clients)
    )
    return selected


async def request_segment(
    gateway: Gateway, criteria: SegmentCriteria, agent_id: str | None = None
) -> Dict[str, Any]:
    """Forward criteria to the remote ``aiClientSegmentation`` function.

    Returns:
        The response data, which carries ``segment_size`` among other keys
    """
    response = await gateway.functions.invoke(
        "aiClientSegmentation", {"segmentCriteria": criteria.to_payload(), "agentId": agent_id}
    )
    data = response.data or {}
    logger.info("Remote segment created with %s clients", data.get("segment_size"))
    return data


# ---------------------------------------------------------------------------
# Carrier and agent lists
# ---------------------------------------------------------------------------


def filter_carriers(
    carriers: Sequence[Mapping[str, Any]],
    search: str | None = None,
    status: str | None = None,
) -> List[Mapping[str, Any]]:
    """Carriers whose name or code contains ``search`` and whose status matches."""
    return [
        c
        for c in carriers
        if matches_text(search, c.get("name"), c.get("code")) and equals(c.get("status"), status)
    ]


def agent_full_name(agent: Mapping[str, Any]) -> str:
    return f"{agent.get('first_name') or ''} {agent.get('last_name') or ''}".strip()


def filter_agents(
    agents: Sequence[Mapping[str, Any]],
    search: str | None = None,
    onboarding_status: str | None = None,
) -> List[Mapping[str, Any]]:
    """Agents whose full name, NPN or email contains ``search``."""
    return [
        a
        for a in agents
        if matches_text(search, agent_full_name(a), a.get("npn"), a.get("email"))
        and equals(a.get("onboarding_status"), onboarding_status)
    ]
