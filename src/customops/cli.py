"""customops CLI: segment clients and print operational dashboards.

Entities come from a fixtures file (``--fixtures``, JSON or YAML mapping
entity names to record lists) loaded into an in-memory gateway, or from the
gateway described by ``--config``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import Settings, load_settings
from .exceptions import ConfigurationError, CustomOpsError
from .flows import review_actions, review_flag
from .gateway import Gateway, InMemoryTransport, create_gateway
from .metrics import (
    agent_status_counts,
    average_health,
    carrier_metrics,
    compliance_summary,
    health_label,
    sort_by_health,
    top_risk_carriers,
)
from .segmentation import (
    SegmentCriteria,
    agent_full_name,
    filter_agents,
    filter_carriers,
    filter_clients,
    request_segment,
)
from .theme import Theme

logger = logging.getLogger(__name__)


@dataclass
class CliContext:
    settings: Settings
    theme: Theme
    fixtures: Path | None = None

    @property
    def console(self) -> Console:
        return self.theme.console()

    def gateway(self) -> Gateway:
        if self.fixtures is not None:
            return Gateway(InMemoryTransport(records=load_fixtures(self.fixtures)), validate=False)
        return create_gateway(self.settings.gateway)


def load_fixtures(path: Path) -> Dict[str, List[Dict[str, Any]]]:
    """Read ``{"EntityName": [records...]}`` from a JSON or YAML file."""
    with open(path) as f:
        try:
            data = json.load(f) if path.suffix.lower() == ".json" else yaml.safe_load(f)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to parse fixtures file {path}: {e}", context={"path": str(path)}
            ) from e
    data = data or {}
    if not isinstance(data, dict) or not all(isinstance(v, list) for v in data.values()):
        raise ConfigurationError(
            "Fixtures must map entity names to lists of records", context={"path": str(path)}
        )
    return data


async def fetch_entities(gateway: Gateway, *names: str) -> Dict[str, List[Dict[str, Any]]]:
    async with gateway:
        return {name: await gateway.entities[name].list() for name in names}


def _fail(console: Console, message: str) -> None:
    console.print(f"[error]Error: {escape(message)}[/error]")
    sys.exit(1)


def _load(obj: CliContext, *names: str) -> Dict[str, List[Dict[str, Any]]]:
    try:
        return asyncio.run(fetch_entities(obj.gateway(), *names))
    except CustomOpsError as e:
        _fail(obj.console, str(e))


def _money(value: Any) -> str:
    try:
        return f"${float(value):,.0f}"
    except (TypeError, ValueError):
        return "-"


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_file", type=click.Path(exists=True), help="Settings file (YAML/JSON)")
@click.option("--fixtures", "-f", type=click.Path(exists=True), help="Entity fixtures file (YAML/JSON)")
@click.option("--theme", type=click.Choice([t.value for t in Theme]), default=Theme.LIGHT.value)
@click.option("--verbose", "-v", is_flag=True, help="Log gateway and filter activity")
@click.pass_context
def cli(ctx: click.Context, config_file: str | None, fixtures: str | None, theme: str, verbose: bool):
    """customops - agency operations tooling"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    selected = Theme(theme)
    try:
        settings = load_settings(config_file)
    except ConfigurationError as e:
        _fail(selected.console(), str(e))
    ctx.obj = CliContext(
        settings=settings, theme=selected, fixtures=Path(fixtures) if fixtures else None
    )


@cli.command()
@click.option("--policy-types", help="Comma-separated plan types")
@click.option("--min-premium", help="Minimum monthly premium")
@click.option("--max-premium", help="Maximum monthly premium")
@click.option("--sentiment", "sentiment_trend", help="Sentiment trend, e.g. declining")
@click.option("--lifecycle", "lifecycle_stage", help="Lifecycle stage")
@click.option("--churn-risk", "churn_risk_level", help="Churn risk level")
@click.option("--days-since-contact", help="Minimum days since last contact")
@click.option("--min-satisfaction", help="Minimum satisfaction score")
@click.option("--remote", is_flag=True, help="Also create the segment with aiClientSegmentation")
@click.option("--agent-id", help="Agent the remote segment belongs to")
@click.pass_obj
def segment(obj: CliContext, remote: bool, agent_id: str | None, **options: str | None):
    """Filter clients by segmentation criteria"""
    console = obj.console
    names = {
        "policy_types": "policyTypes",
        "min_premium": "minPremium",
        "max_premium": "maxPremium",
        "sentiment_trend": "sentimentTrend",
        "lifecycle_stage": "lifecycleStage",
        "churn_risk_level": "churnRiskLevel",
        "days_since_contact": "daysSinceContact",
        "min_satisfaction": "minSatisfaction",
    }
    try:
        criteria = SegmentCriteria.from_dict(
            {names[k]: v for k, v in options.items() if v is not None}
        )
    except CustomOpsError as e:
        _fail(console, str(e))

    clients = _load(obj, "Client")["Client"]
    selected = filter_clients(clients, criteria)

    table = Table(title="Client Segment", title_style="title", header_style="header")
    table.add_column("Name")
    table.add_column("Plan Type")
    table.add_column("Premium", justify="right")
    table.add_column("Sentiment")
    table.add_column("Last Contact", style="muted")
    for client in selected:
        table.add_row(
            f"{client.get('first_name', '')} {client.get('last_name', '')}".strip(),
            str(client.get("plan_type") or "-"),
            _money(client.get("premium")),
            str(client.get("sentiment_trend") or "-"),
            str(client.get("last_contact_date") or "never"),
        )
    console.print(table)
    console.print(f"{len(selected)} of {len(clients)} clients match")

    if remote:
        async def create_remote() -> Dict[str, Any]:
            async with obj.gateway() as gateway:
                return await request_segment(gateway, criteria, agent_id)

        try:
            data = asyncio.run(create_remote())
        except CustomOpsError as e:
            _fail(console, str(e))
        console.print(f"[success]Segment created with {data.get('segment_size', 0)} clients[/success]")


@cli.command()
@click.option("--search", "-s", help="Match carrier name or code")
@click.option("--status", help="Carrier status (all for any)")
@click.option("--window", type=int, help="Expiring contract window in days")
@click.pass_obj
def carriers(obj: CliContext, search: str | None, status: str | None, window: int | None):
    """Carrier health dashboard"""
    console = obj.console
    data = _load(obj, "Carrier", "Contract", "CarrierAppointment")
    shown = filter_carriers(data["Carrier"], search, status)
    metrics = sort_by_health(
        carrier_metrics(
            shown,
            data["Contract"],
            data["CarrierAppointment"],
            window_days=window or obj.settings.metrics.expiring_window_days,
        )
    )

    table = Table(title="Carrier Health", title_style="title", header_style="header")
    table.add_column("Carrier")
    table.add_column("Code", style="muted")
    table.add_column("Active", justify="right")
    table.add_column("Expiring", justify="right")
    table.add_column("Appointed", justify="right")
    table.add_column("Health", justify="right")
    table.add_column("Status")
    for m in metrics:
        style = Theme.label_style(m.label)
        table.add_row(
            str(m.carrier.get("name") or "-"),
            str(m.carrier.get("code") or "-"),
            str(m.active_contracts),
            str(m.expiring_contracts),
            str(m.active_appointments),
            str(m.health_score),
            f"[{style}]{m.label}[/{style}]",
        )
    console.print(table)

    average = average_health(metrics)
    if average is None:
        console.print("No carriers")
        return
    label = health_label(average)
    style = Theme.label_style(label)
    console.print(f"Average health: {average} [{style}]{label}[/{style}]")
    risky = top_risk_carriers(metrics)
    if risky:
        console.print("Top risk: " + ", ".join(str(m.carrier.get("name")) for m in risky))


@cli.command()
@click.pass_obj
def compliance(obj: CliContext):
    """Compliance flag summary"""
    console = obj.console
    flags = _load(obj, "ComplianceFlag")["ComplianceFlag"]
    summary = compliance_summary(flags)

    console.print(f"Total flags: {summary.total}")
    console.print(f"Pending review: {summary.pending}")
    console.print(f"[error]Critical: {summary.critical}[/error]")
    console.print(f"[success]Resolved: {summary.resolved}[/success]")
    console.print(f"Resolution rate: {summary.resolution_rate}%")

    open_flags = [f for f in flags if review_actions(f)]
    if open_flags:
        table = Table(title="Open Flags", title_style="title", header_style="header")
        table.add_column("ID", style="muted")
        table.add_column("Violation")
        table.add_column("Severity")
        table.add_column("Status")
        table.add_column("Actions")
        for flag in open_flags:
            table.add_row(
                str(flag.get("id")),
                str(flag.get("violation_type") or "unspecified").replace("_", " "),
                str(flag.get("severity") or "-"),
                str(flag.get("status") or "pending_review"),
                ", ".join(review_actions(flag)),
            )
        console.print(table)

    if summary.by_type:
        table = Table(title="Violations by Type", title_style="title", header_style="header")
        table.add_column("Violation")
        table.add_column("Count", justify="right")
        for violation, count in summary.by_type.items():
            table.add_row(violation.replace("_", " "), str(count))
        console.print(table)


@cli.command("review-flag")
@click.argument("flag_id")
@click.argument("status", type=click.Choice(["acknowledged", "escalated", "corrected", "dismissed"]))
@click.pass_obj
def review_flag_command(obj: CliContext, flag_id: str, status: str):
    """Record a review decision on a compliance flag"""
    console = obj.console

    async def review() -> Dict[str, Any]:
        async with obj.gateway() as gateway:
            return await review_flag(gateway, flag_id, status)

    try:
        flag = asyncio.run(review())
    except CustomOpsError as e:
        _fail(console, str(e))
    console.print(f"[success]Flag {flag_id} marked {flag.get('status')}[/success]")


@cli.command()
@click.option("--search", "-s", help="Match name, NPN or email")
@click.option("--status", help="Onboarding status (all for any)")
@click.pass_obj
def agents(obj: CliContext, search: str | None, status: str | None):
    """Agent roster and onboarding status counts"""
    console = obj.console
    shown = filter_agents(_load(obj, "Agent")["Agent"], search, status)

    table = Table(title="Agents", title_style="title", header_style="header")
    table.add_column("Name")
    table.add_column("NPN", style="muted")
    table.add_column("Email")
    table.add_column("Status")
    for agent in shown:
        table.add_row(
            agent_full_name(agent) or "-",
            str(agent.get("npn") or "-"),
            str(agent.get("email") or "-"),
            str(agent.get("onboarding_status") or "pending"),
        )
    console.print(table)

    for entry in agent_status_counts(shown):
        console.print(f"{entry.label}: {entry.count}")


if __name__ == "__main__":
    cli()
