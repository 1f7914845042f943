"""Aggregates and scores computed from already-fetched entity lists.

Every score produced here lies in ``[0, 100]``. Percentages are rounded half
up, as displayed to users.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List

from customops.dates import days_between, to_date, today

logger = logging.getLogger(__name__)

HEALTH_BASE = 70
HEALTH_ACTIVE_CONTRACT_BONUS = 15
HEALTH_NO_EXPIRING_BONUS = 10
HEALTH_APPOINTMENTS_BONUS = 5
HEALTH_APPOINTMENTS_THRESHOLD = 5
EXPIRING_WINDOW_DAYS = 90
TOP_RISK_LIMIT = 5

OFFBOARDING_SYSTEM_COUNT = 8

AGENT_STATUS_LABELS: Dict[str, str] = {
    "ready_to_sell": "Ready to Sell",
    "in_progress": "In Progress",
    "pending": "Pending",
    "suspended": "Suspended",
    "terminated": "Terminated",
}


def clamp_score(value: float) -> int:
    return int(max(0, min(100, value)))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: int, whole: int) -> int:
    """``round(part / max(whole, 1) * 100)``, clamped to [0, 100]."""
    return clamp_score(round_half_up(part / max(whole, 1) * 100))


# ---------------------------------------------------------------------------
# Carrier health
# ---------------------------------------------------------------------------


@dataclass
class CarrierMetrics:
    """Health metrics of one carrier.

    Attributes:
        carrier: The carrier record
        active_contracts: Contracts with ``contract_status == "active"``
        expiring_contracts: Contracts expiring within the window
        active_appointments: Appointments with ``status == "active"``
        health_score: Score in [0, 100]
        has_risk: Any contract is expiring
    """

    carrier: Mapping[str, Any]
    active_contracts: int
    expiring_contracts: int
    active_appointments: int
    health_score: int
    has_risk: bool

    @property
    def label(self) -> str:
        return health_label(self.health_score)


def health_label(score: float) -> str:
    if score >= 80:
        return "Healthy"
    if score >= 60:
        return "Monitor"
    return "At Risk"


def is_expiring(contract: Mapping[str, Any], reference: date, window_days: int) -> bool:
    expires = to_date(contract.get("expiration_date"))
    if expires is None:
        return False
    remaining = days_between(reference, expires)
    return 0 < remaining <= window_days


def health_score(active_contracts: int, expiring_contracts: int, active_appointments: int) -> int:
    score = HEALTH_BASE
    if active_contracts > 0:
        score += HEALTH_ACTIVE_CONTRACT_BONUS
    if expiring_contracts == 0:
        score += HEALTH_NO_EXPIRING_BONUS
    if active_appointments > HEALTH_APPOINTMENTS_THRESHOLD:
        score += HEALTH_APPOINTMENTS_BONUS
    return clamp_score(score)


def carrier_metrics(
    carriers: Sequence[Mapping[str, Any]],
    contracts: Sequence[Mapping[str, Any]],
    appointments: Sequence[Mapping[str, Any]],
    reference: date | None = None,
    window_days: int = EXPIRING_WINDOW_DAYS,
) -> List[CarrierMetrics]:
    """Compute health metrics for each carrier, in input order.

    Contracts are matched on ``carrier_id``; appointments on
    ``carrier_name``.
    """
    reference = reference or today()
    results = []
    for carrier in carriers:
        owned = [c for c in contracts if c.get("carrier_id") == carrier.get("id")]
        active = sum(1 for c in owned if c.get("contract_status") == "active")
        expiring = sum(1 for c in owned if is_expiring(c, reference, window_days))
        appointed = sum(
            1
            for a in appointments
            if a.get("carrier_name") == carrier.get("name") and a.get("status") == "active"
        )
        results.append(
            CarrierMetrics(
                carrier=carrier,
                active_contracts=active,
                expiring_contracts=expiring,
                active_appointments=appointed,
                health_score=health_score(active, expiring, appointed),
                has_risk=expiring > 0,
            )
        )
    return results


def sort_by_health(metrics: Sequence[CarrierMetrics]) -> List[CarrierMetrics]:
    """Riskiest first; ties keep input order."""
    return sorted(metrics, key=lambda m: m.health_score)


def top_risk_carriers(
    metrics: Sequence[CarrierMetrics], limit: int = TOP_RISK_LIMIT
) -> List[CarrierMetrics]:
    return [m for m in sort_by_health(metrics) if m.has_risk][:limit]


def average_health(metrics: Sequence[CarrierMetrics]) -> int | None:
    """Rounded mean health score, or ``None`` when there are no carriers."""
    if not metrics:
        return None
    return clamp_score(round_half_up(sum(m.health_score for m in metrics) / len(metrics)))


# ---------------------------------------------------------------------------
# Compliance
# ---------------------------------------------------------------------------


@dataclass
class ComplianceSummary:
    total: int = 0
    pending: int = 0
    critical: int = 0
    resolved: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)

    @property
    def resolution_rate(self) -> int:
        return percentage(self.resolved, self.total)


def compliance_summary(flags: Sequence[Mapping[str, Any]]) -> ComplianceSummary:
    by_type = Counter(f.get("violation_type") or "unspecified" for f in flags)
    return ComplianceSummary(
        total=len(flags),
        pending=sum(1 for f in flags if f.get("status") == "pending_review"),
        critical=sum(1 for f in flags if f.get("severity") == "critical"),
        resolved=sum(1 for f in flags if f.get("status") in ("corrected", "dismissed")),
        by_type=dict(by_type.most_common()),
    )


# ---------------------------------------------------------------------------
# Agents and offboarding
# ---------------------------------------------------------------------------


@dataclass
class AgentStatusCount:
    status: str
    label: str
    count: int


def agent_status_counts(agents: Sequence[Mapping[str, Any]]) -> List[AgentStatusCount]:
    """Count agents by ``onboarding_status`` (missing counts as ``pending``).

    Statuses are listed in label order, followed by any unknown statuses;
    zero counts are omitted.
    """
    counts = Counter(a.get("onboarding_status") or "pending" for a in agents)
    ordered = [s for s in AGENT_STATUS_LABELS if s in counts]
    ordered += sorted(s for s in counts if s not in AGENT_STATUS_LABELS)
    return [
        AgentStatusCount(s, AGENT_STATUS_LABELS.get(s, s.replace("_", " ").title()), counts[s])
        for s in ordered
    ]


def offboarding_completion(
    system_access: Mapping[str, Any], total_systems: int = OFFBOARDING_SYSTEM_COUNT
) -> int:
    """Percentage of managed systems whose access has been deactivated."""
    done = sum(
        1 for entry in system_access.values() if isinstance(entry, Mapping) and entry.get("deactivated")
    )
    return percentage(done, total_systems)
