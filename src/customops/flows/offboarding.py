"""Agent offboarding: system access deactivation and record keeping.

The flow creates an ``AgentOffboarding`` record, deactivates the agent's
access to each managed system through ``deactivateSystemAccess``, tracks the
completion percentage over the eight systems, and closes the record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from customops.exceptions import GatewayError, NotFoundError
from customops.gateway import Gateway
from customops.metrics import offboarding_completion
from customops.transitions import OFFBOARDING_STATUS
from customops.wizard import RemoteResult, StepDefinition, WizardDefinition

from .base import Flow, check_transition, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManagedSystem:
    key: str
    label: str
    icon: str


MANAGED_SYSTEMS: tuple[ManagedSystem, ...] = (
    ManagedSystem("email", "Email Access", "mail"),
    ManagedSystem("quote_enroll", "Quote & Enroll Platform", "file-text"),
    ManagedSystem("ops_platform", "Operations Platform", "database"),
    ManagedSystem("crm", "CRM System", "users"),
    ManagedSystem("phone_system", "Phone System", "phone"),
    ManagedSystem("carrier_portals", "Carrier Portals", "shield"),
    ManagedSystem("vpn", "VPN Access", "wifi"),
    ManagedSystem("file_storage", "File Storage", "server"),
)

SYSTEM_KEYS = tuple(s.key for s in MANAGED_SYSTEMS)

DEPARTURE_REASONS = (
    "resignation",
    "termination",
    "retirement",
    "contract_end",
    "performance",
    "other",
)


class OffboardingStep(str, Enum):
    INITIATE = "initiate"
    DEACTIVATE = "deactivate"
    REVIEW = "review"


class AgentOffboardingFlow(Flow):
    """Offboard one agent.

    Steps: initiate (reason and target termination date required; leaving it
    creates the record), deactivate systems, review. Completion is only
    allowed once every managed system has been deactivated.

    Args:
        gateway: Gateway handle
        agent: Agent record (``id``, ``first_name``, ``last_name``, ``email``)
    """

    steps = OffboardingStep

    def __init__(self, gateway: Gateway, agent: Dict[str, Any], **kwargs: Any) -> None:
        if not agent or not agent.get("id"):
            raise NotFoundError("Offboarding requires an agent record with an id")
        self.agent = agent
        self.record: Dict[str, Any] | None = None
        super().__init__(gateway, **kwargs)

    def build_definition(self) -> WizardDefinition:
        return WizardDefinition(
            "agent_offboarding",
            [
                StepDefinition(
                    OffboardingStep.INITIATE,
                    "Initiate Offboarding",
                    required_fields={"reason", "target_termination_date"},
                    icon="user-x",
                    action=self._initiate,
                ),
                StepDefinition(OffboardingStep.DEACTIVATE, "System Access", icon="key"),
                StepDefinition(OffboardingStep.REVIEW, "Review & Complete", icon="check-circle"),
            ],
        )

    @property
    def agent_name(self) -> str:
        return f"{self.agent.get('first_name', '')} {self.agent.get('last_name', '')}".strip()

    @property
    def completion_percentage(self) -> int:
        if self.record is None:
            return 0
        return offboarding_completion(self.record.get("system_access") or {})

    def pending_systems(self) -> List[str]:
        access = (self.record or {}).get("system_access") or {}
        return [k for k in SYSTEM_KEYS if not (access.get(k) or {}).get("deactivated")]

    async def load(self) -> Dict[str, Any] | None:
        """Find the agent's open offboarding record, if any.

        An existing record puts the flow on the deactivation step.
        """
        records = await self.gateway.entities.AgentOffboarding.filter({"agent_id": self.agent["id"]})
        self.record = next((r for r in records if r.get("status") != "cancelled"), None)
        if self.record is not None and self.step == OffboardingStep.INITIATE:
            self.controller.state.move_to(OffboardingStep.DEACTIVATE.value, "load")
        return self.record

    async def _initiate(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        if self.record is not None:
            return self.record
        user = await self.gateway.auth.me()
        clients = await self.gateway.entities.Client.filter({"agent_id": self.agent["id"]})
        self.record = await self.gateway.entities.AgentOffboarding.create(
            {
                "agent_id": self.agent["id"],
                "agent_name": self.agent_name,
                "initiated_by": user.get("email"),
                "initiated_date": utc_now(),
                "status": "initiated",
                "reason": form_data.get("reason"),
                "reason_notes": form_data.get("reason_notes", ""),
                "target_termination_date": form_data.get("target_termination_date"),
                "system_access": {},
                "client_reassignment": {
                    "required": bool(form_data.get("client_reassignment_required")),
                    "reassigned_to_agent_id": form_data.get("reassigned_to_agent_id", ""),
                    "clients_count": len(clients),
                    "reassignment_completed": False,
                },
                "completion_percentage": 0,
            }
        )
        self.notifier.success("Offboarding initiated")
        logger.info("Offboarding initiated for agent %s", self.agent["id"])
        return self.record

    async def deactivate(self, system_key: str, notes: str = "") -> bool:
        """Deactivate the agent's access to one managed system."""
        if system_key not in SYSTEM_KEYS:
            self.notifier.error(f"Unknown system: {system_key}")
            return False
        if self.record is None:
            self.notifier.error("Offboarding has not been initiated")
            return False
        ok, _ = await self.controller.run_remote(
            "deactivate",
            self._deactivate,
            system_key,
            notes,
            error_message="Failed to deactivate",
        )
        return ok

    async def _deactivate(self, system_key: str, notes: str) -> Dict[str, Any]:
        user = await self.gateway.auth.me()
        self.notifier.info("Deactivating system access...")
        data = await self.invoke(
            "deactivateSystemAccess",
            {
                "systemKey": system_key,
                "agentId": self.agent["id"],
                "agentEmail": self.agent.get("email"),
                "notes": notes,
            },
        )
        if not data.get("success"):
            raise GatewayError(
                data.get("message") or "Deactivation failed",
                operation="functions.invoke:deactivateSystemAccess",
                context={"system": system_key},
            )

        record = self.record or {}
        access = dict(record.get("system_access") or {})
        access[system_key] = {
            "deactivated": True,
            "deactivated_date": utc_now(),
            "deactivated_by": user.get("email"),
            "notes": notes,
            "api_response": data.get("log"),
        }
        percentage = offboarding_completion(access)
        status = "completed" if percentage == 100 else "in_progress"
        check_transition(OFFBOARDING_STATUS, record.get("status"), status)

        self.record = await self.gateway.entities.AgentOffboarding.update(
            record["id"],
            {"system_access": access, "completion_percentage": percentage, "status": status},
        )
        self.notifier.success("System access deactivated successfully")
        logger.info(
            "Deactivated %s for agent %s (%d%%)", system_key, self.agent["id"], percentage
        )
        return self.record

    async def finish(self, form_data: Dict[str, Any], result: RemoteResult | None) -> Dict[str, Any]:
        record = self.record
        if record is None:
            raise GatewayError("Offboarding has not been initiated", operation="complete")
        if self.completion_percentage < 100:
            raise GatewayError(
                "All systems must be deactivated before completing offboarding",
                operation="complete",
                context={"pending": self.pending_systems()},
            )
        check_transition(OFFBOARDING_STATUS, record.get("status"), "completed")

        user = await self.gateway.auth.me()
        self.record = await self.gateway.entities.AgentOffboarding.update(
            record["id"],
            {
                "status": "completed",
                "completed_by": user.get("email"),
                "completed_date": utc_now(),
                "admin_notes": form_data.get("admin_notes", ""),
            },
        )
        self.notifier.success("Offboarding completed")
        return self.record

    async def cancel(self) -> bool:
        if self.record is None:
            return False
        ok, _ = await self.controller.run_remote("cancel", self._cancel)
        return ok

    async def _cancel(self) -> Dict[str, Any]:
        record = self.record or {}
        check_transition(OFFBOARDING_STATUS, record.get("status"), "cancelled")
        self.record = await self.gateway.entities.AgentOffboarding.update(
            record["id"], {"status": "cancelled"}
        )
        self.notifier.info("Offboarding cancelled")
        return self.record

    # -- Compliance audit ----------------------------------------------------

    async def audits(self) -> List[Dict[str, Any]]:
        """Past compliance audits of this offboarding, newest first."""
        if self.record is None:
            return []
        return await self.gateway.entities.OffboardingAudit.filter(
            {"offboarding_id": self.record["id"]}, "-audit_date"
        )

    async def run_audit(self) -> Dict[str, Any] | None:
        """Run a manual ``auditOffboardingCompliance`` and report the summary."""
        if self.record is None:
            self.notifier.error("Offboarding has not been initiated")
            return None
        ok, data = await self.controller.run_remote(
            "audit",
            self.invoke,
            "auditOffboardingCompliance",
            {"offboardingId": self.record["id"], "auditType": "manual"},
            error_message="Audit failed",
        )
        if not ok:
            return None

        summary = (data or {}).get("summary") or {}
        critical = summary.get("critical_findings") or 0
        if critical > 0:
            self.notifier.error(f"Audit complete: {critical} critical issues found")
        else:
            self.notifier.success(f"Audit complete: {summary.get('compliance_score', 0)}% compliant")
        return data
