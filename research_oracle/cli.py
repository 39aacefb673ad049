"""Command-line interface for the research oracle."""

import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from research_oracle.analysis.models import QuestionCategory
from research_oracle.analysis.oracle import ResearchOracle
from research_oracle.database.db import RecordStore
from research_oracle.exceptions import AnalystError, IncompleteAnalystSet, OracleError
from research_oracle.ledger.attestation import get_attestation_protocol
from research_oracle.llm.manager import AnalystOrchestrator, create_provider
from research_oracle.utils.helpers import format_percentage, parse_outcome
from research_oracle.utils.logger import setup_logger

console = Console()
logger = logging.getLogger(__name__)


def _build_oracle(ctx: click.Context, attest: bool = True) -> ResearchOracle:
    """Assemble the oracle from the group options."""
    options = ctx.obj or {}
    return ResearchOracle(
        orchestrator=AnalystOrchestrator(create_provider(options.get("provider"))),
        store=RecordStore(options.get("records_dir")),
        attestation=get_attestation_protocol() if attest else None,
    )


def _fail(message: str) -> None:
    console.print(f"[red]✗ {escape(message)}[/red]")
    sys.exit(1)


def _require_protocol():
    """Configured attestation protocol; exits when the ledger is unavailable."""
    try:
        protocol = get_attestation_protocol()
    except OracleError as e:
        _fail(f"Ledger error: {str(e)}")
        return None
    if protocol is None:
        _fail("Ledger is not configured")
    return protocol


@click.group()
@click.option("--records-dir", type=click.Path(file_okay=False), help="Record store directory")
@click.option(
    "--provider",
    type=click.Choice(["auto", "claude", "openai", "gemini", "offline"], case_sensitive=False),
    help="Reasoning provider for the analysts",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, records_dir: Optional[str], provider: Optional[str], verbose: bool):
    """Research Oracle - consensus probability estimates with on-chain attestation."""
    setup_logger(log_level="DEBUG" if verbose else None)
    ctx.ensure_object(dict)
    ctx.obj["records_dir"] = records_dir
    ctx.obj["provider"] = None if provider in (None, "auto") else provider
    if verbose:
        console.print("[dim]Verbose mode enabled[/dim]")


@cli.command("estimate")
@click.argument("question")
@click.option("--context", "context_text", help="Additional context for the analysts")
@click.option(
    "--category",
    type=click.Choice([c.value for c in QuestionCategory], case_sensitive=False),
    help="Question category",
)
@click.option(
    "--deadline",
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]),
    help="Resolution deadline (UTC)",
)
@click.option("--no-attest", is_flag=True, help="Skip on-chain attestation")
@click.option("--json", "as_json", is_flag=True, help="Print the raw response as JSON")
@click.pass_context
def estimate(
    ctx: click.Context,
    question: str,
    context_text: Optional[str],
    category: Optional[str],
    deadline: Optional[datetime],
    no_attest: bool,
    as_json: bool,
):
    """Produce a consensus estimate for a yes/no question.

    Args:
        question: Question to estimate
    """
    try:
        oracle = _build_oracle(ctx, attest=not no_attest)

        request = {
            "question": question,
            "context": context_text,
            "category": category.lower() if category else None,
            "deadline": deadline.replace(tzinfo=timezone.utc) if deadline else None,
            "attest_on_chain": not no_attest,
        }

        if not as_json:
            console.print("[bold]Running analysts...[/bold]")
        response = asyncio.run(oracle.estimate(request))

        if as_json:
            click.echo(response.model_dump_json(indent=2))
            return

        console.print(f"\n[bold cyan]Estimate {response.request_id}[/bold cyan]")
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Analyst", style="cyan")
        table.add_column("Estimate", style="white")
        table.add_column("Confidence", style="yellow")

        for role, analyst in response.estimate.estimates.items():
            table.add_row(role.label, format_percentage(analyst.estimate), analyst.confidence.value)

        combined = response.estimate.combined
        table.add_row(
            "[bold]CONSENSUS[/bold]",
            f"[bold]{format_percentage(combined.estimate)}[/bold]",
            f"[bold]{combined.confidence.value}[/bold]",
        )
        console.print(table)
        console.print(f"Agreement: {combined.agreement}")

        if response.attestation:
            label = " (simulated)" if response.attestation.simulated else ""
            console.print(f"Attestation{label}: {response.attestation.tx_signature}")
            console.print(f"Account: {response.attestation.account}")

        calibration = response.calibration
        console.print(
            f"[dim]Calibration: Brier {calibration.brier_score:.4f} over "
            f"{calibration.total_resolved}/{calibration.total_predictions} resolved[/dim]"
        )
        console.print("\n[green]✓[/green] Estimate recorded")

    except (AnalystError, IncompleteAnalystSet):
        logger.exception("Estimate failed")
        _fail("Failed to process estimate request")
    except OracleError as e:
        _fail(str(e))
    except Exception as e:
        _fail(f"Error: {str(e)}")


@cli.command("show")
@click.argument("request_id")
@click.pass_context
def show(ctx: click.Context, request_id: str):
    """Show a stored estimate.

    Args:
        request_id: Request id returned by ``estimate``
    """
    try:
        record = _build_oracle(ctx, attest=False).get_estimate(request_id)
    except OracleError as e:
        _fail(str(e))
        return

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Request", record.request_id)
    table.add_row("Question", escape(record.question))
    table.add_row("Category", record.category or "N/A")
    table.add_row("Deadline", str(record.deadline) if record.deadline else "N/A")
    table.add_row("Estimate", format_percentage(record.estimate.combined.estimate))
    table.add_row("Confidence", record.estimate.combined.confidence.value)
    table.add_row("Agreement", record.estimate.combined.agreement)
    table.add_row("Created", str(record.created_at))
    table.add_row(
        "Attestation", record.attestation.tx_signature if record.attestation else "N/A"
    )
    if record.is_resolved:
        table.add_row("Outcome", "YES" if record.actual_outcome else "NO")
        table.add_row("Brier", f"{record.brier_contribution:.4f}")
    else:
        table.add_row("Outcome", "[dim]unresolved[/dim]")

    console.print(table)
    console.print(f"\n[bold cyan]Reasoning[/bold cyan]\n{escape(record.estimate.reasoning)}")


@cli.command("resolve")
@click.argument("request_id")
@click.option("--outcome", required=True, help="Actual outcome (yes/no)")
@click.pass_context
def resolve(ctx: click.Context, request_id: str, outcome: str):
    """Record the actual outcome of an estimate.

    Args:
        request_id: Request id returned by ``estimate``
        outcome: yes or no
    """
    try:
        actual = parse_outcome(outcome)
    except ValueError as e:
        _fail(str(e))
        return

    try:
        response = asyncio.run(_build_oracle(ctx).resolve(request_id, actual))
    except OracleError as e:
        _fail(str(e))
        return

    console.print(f"[green]✓[/green] Resolved {request_id}: {'YES' if response.outcome else 'NO'}")
    console.print(f"Brier contribution: {response.brier_contribution:.4f}")
    if response.resolution_tx:
        console.print(f"Resolution tx: {response.resolution_tx}")


@cli.command("calibration")
@click.pass_context
def calibration(ctx: click.Context):
    """Show calibration statistics over every stored estimate."""
    try:
        stats = _build_oracle(ctx, attest=False).calibration()
    except OracleError as e:
        _fail(str(e))
        return

    console.print("[bold cyan]Calibration[/bold cyan]")
    console.print(f"Brier score: {stats.brier_score:.4f}")
    console.print(f"Resolved: {stats.total_resolved}/{stats.total_predictions}")

    if not stats.buckets:
        console.print("\n[dim]No resolved estimates yet[/dim]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Range", style="cyan")
    table.add_column("Predicted", style="white")
    table.add_column("Actual", style="white")
    table.add_column("Count", style="yellow")

    for bucket in stats.buckets:
        table.add_row(
            bucket.range,
            format_percentage(bucket.predicted),
            format_percentage(bucket.actual),
            str(bucket.count),
        )
    console.print(table)


@cli.command("addresses")
@click.argument("question", required=False)
def addresses(question: Optional[str]):
    """Show derived ledger addresses (optionally for a question).

    Args:
        question: Question whose attestation address to derive
    """
    protocol = _require_protocol()

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Program", str(protocol.program_id))
    table.add_row("Authority", str(protocol.authority))
    table.add_row("Oracle state", str(protocol.oracle_state_address()))
    if question:
        table.add_row("Attestation", str(protocol.attestation_address(question)))
    console.print(table)


@cli.command("init-ledger")
def init_ledger():
    """Create the oracle-state account if it does not exist."""
    protocol = _require_protocol()

    try:
        protocol.ensure_initialized()
    except OracleError as e:
        _fail(f"Ledger error: {str(e)}")
        return

    console.print(f"[green]✓[/green] Oracle state ready at {protocol.oracle_state_address()}")


if __name__ == "__main__":
    cli()
