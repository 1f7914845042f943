"""Compliance flag review.

Flags raised by the remote scanner start in ``pending_review``. A reviewer
acknowledges, escalates, corrects or dismisses them; ``corrected`` and
``dismissed`` are final.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from customops.gateway import Gateway
from customops.transitions import COMPLIANCE_FLAG_STATUS

from .base import check_transition, utc_now

logger = logging.getLogger(__name__)


def review_actions(flag: Dict[str, Any]) -> List[str]:
    """Statuses a reviewer may move ``flag`` to, sorted."""
    return sorted(COMPLIANCE_FLAG_STATUS.targets(flag.get("status") or "pending_review"))


async def review_flag(gateway: Gateway, flag_id: str, status: str) -> Dict[str, Any]:
    """Record a review decision on a compliance flag.

    The current user is stamped as the reviewer.

    Raises:
        InvalidTransitionError: If the flag's status cannot move to ``status``
        GatewayError: If the flag cannot be read or written
    """
    flag = await gateway.entities.ComplianceFlag.get(flag_id)
    check_transition(COMPLIANCE_FLAG_STATUS, flag.get("status") or "pending_review", status)

    user = await gateway.auth.me()
    updated = await gateway.entities.ComplianceFlag.update(
        flag_id,
        {"status": status, "reviewed_by": user.get("email"), "reviewed_date": utc_now()},
    )
    logger.info("Compliance flag %s: %s -> %s", flag_id, flag.get("status"), status)
    return updated
