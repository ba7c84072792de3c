"""Rich rendering for plans, reports, and ledgers."""

import json
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..config.models import ReferenceArg
from ..orchestrator.executor import DeploymentReport, ExecutionStatus
from ..orchestrator.planner import DeploymentPlan
from ..state.ledger import DeploymentLedger
from ..state.models import RecordStatus

STATUS_STYLES = {
    RecordStatus.SUCCESS: "[green]deployed[/green]",
    RecordStatus.FAILED: "[red]failed[/red]",
    RecordStatus.PENDING: "[yellow]interrupted[/yellow]",
}


def render_plan(console: Console, plan: DeploymentPlan, ledger: Optional[DeploymentLedger] = None):
    """Show the plan in deployment order with each step's ledger status."""
    table = Table(show_header=True, header_style="bold", title="Deployment Plan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Resource", style="cyan")
    table.add_column("Args")
    table.add_column("Status")
    table.add_column("Identifier", style="dim")

    for position, spec in enumerate(plan, start=1):
        args = ", ".join(
            f"ref:{binding.ref}" if isinstance(binding, ReferenceArg) else json.dumps(binding.value, default=str)
            for binding in spec.args
        )
        record = ledger.lookup(spec.name) if ledger is not None else None
        status = STATUS_STYLES[record.status] if record else "[dim]pending[/dim]"
        identifier = record.deployed_identifier if record and record.deployed_identifier else ""
        table.add_row(str(position), escape(spec.name), escape(args), status, identifier)

    console.print(table)

    if ledger is not None:
        summary = plan.summarize(ledger)
        console.print(
            f"{summary['deployed']} deployed, {summary['pending']} pending, "
            f"{summary['failed']} failed, {summary['interrupted']} interrupted"
        )


def render_report(console: Console, report: DeploymentReport):
    """Summarize a finished run."""
    lines = []
    for result in report.results:
        if result.status == ExecutionStatus.SUCCESS:
            lines.append(f"[green]+[/green] {escape(result.resource_name)} -> {result.deployed_identifier}")
        elif result.status == ExecutionStatus.SKIPPED:
            lines.append(f"[dim]= {escape(result.resource_name)} -> {result.deployed_identifier} (already deployed)[/dim]")
        else:
            lines.append(f"[red]x[/red] {escape(result.resource_name)}: {escape(result.error or '')}")

    if report.is_success():
        title, border = "All Deployed", "green"
    else:
        title, border = "Deployment Failed", "red"

    body = "\n".join(lines) if lines else "[dim]No resources[/dim]"
    body += (
        f"\n\nDeployed: {len(report.deployed)}  Skipped: {len(report.skipped)}  "
        f"Duration: {report.duration:.2f}s"
    )
    console.print(Panel.fit(body, title=title, border_style=border))


def render_ledger(console: Console, ledger: DeploymentLedger, output_format: str = "table"):
    """Show every ledger record."""
    if output_format == "json":
        console.print_json(data=[record.to_dict() for record in ledger.records()])
        return

    if not len(ledger):
        console.print("[dim]Ledger is empty[/dim]")
        return

    table = Table(show_header=True, header_style="bold", title="Deployment Ledger")
    table.add_column("Resource", style="cyan")
    table.add_column("Status")
    table.add_column("Identifier")
    table.add_column("Recorded", style="dim")
    table.add_column("Error", style="red")

    for record in ledger.records():
        table.add_row(
            escape(record.resource_name),
            STATUS_STYLES[record.status],
            record.deployed_identifier or "",
            record.timestamp.isoformat(timespec="seconds"),
            escape(record.error or ""),
        )

    console.print(table)
