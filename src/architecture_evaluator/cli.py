"""CLI for the Architecture Evaluator.

Provides command-line interface for evaluating architecture descriptions,
running what-if simulations and inspecting the rule tables.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from . import __version__
from .app_logging import setup_logging
from .config import get_config
from .cost_modeler import OPTIMIZATION_RULES, PRICE_TABLE_VERSION
from .engine import Orchestrator, validate_rule_tables
from .exceptions import EvaluatorError, InputError
from .extractor import Extractor
from .handler import handle_request
from .narrative import NarrativeClient
from .risk_analyzer import RISK_RULES
from .schema import (
    RULES_VERSION,
    AnalysisResult,
    ArchitectureSummary,
    ExtractionResult,
    ScoreCategory,
    SimulationParams,
)
from .scorer import SCORE_RULES

console = Console()

SEVERITY_COLORS = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "dim",
}

MATURITY_COLORS = {
    "Prototype": "red",
    "Early Stage": "yellow",
    "Production Ready": "cyan",
    "Enterprise Grade": "green",
}


@click.group()
@click.version_option(version=__version__, prog_name="architecture-evaluator")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Log level for diagnostics written to stderr"
)
def main(log_level: str):
    """Architecture Evaluator.

    Scores a free-text cloud architecture description for scalability,
    reliability, security and cost efficiency, and explains every point.
    """
    setup_logging(log_level)


def _read_description(description: Optional[str], file: Optional[str]) -> str:
    if file:
        return Path(file).read_text(encoding="utf-8")
    if description:
        return description
    raise InputError("Provide a DESCRIPTION argument or --file")


def _build_orchestrator(narrative: Optional[bool]) -> Orchestrator:
    """Build the pipeline, overriding the configured narrative setting if asked."""
    config = get_config()
    if narrative is None:
        return Orchestrator.from_config(config)
    if not narrative:
        return Orchestrator(config=config)
    narrative_config = config.narrative.model_copy(update={"enabled": True})
    return Orchestrator(narrator=NarrativeClient.from_config(narrative_config), config=config)


@main.command("analyze")
@click.argument("description", required=False)
@click.option(
    "--file", "-f",
    type=click.Path(exists=True, dir_okay=False),
    help="Read the description from a text file"
)
@click.option(
    "--out", "-o",
    type=click.Path(),
    help="Output file for JSON results"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show every scoring rule that contributed"
)
@click.option(
    "--narrative/--no-narrative",
    default=None,
    help="Force the narrative collaborator on or off (default: from config)"
)
def analyze_cmd(
    description: Optional[str],
    file: Optional[str],
    out: Optional[str],
    json_output: bool,
    verbose: bool,
    narrative: Optional[bool],
):
    """Evaluate a free-text architecture description.

    Examples:
        architecture-evaluator analyze "3 EC2 instances behind an ALB, RDS Multi-AZ"
        architecture-evaluator analyze -f architecture.txt -v
        architecture-evaluator analyze -f architecture.txt -j -o result.json
    """
    try:
        text = _read_description(description, file)
        orchestrator = _build_orchestrator(narrative)

        if json_output:
            result = orchestrator.analyze(text)
            output_json(result, out)
            return

        with console.status("Evaluating architecture..."):
            result = orchestrator.analyze(text)

        display_result(result, verbose)
        if out:
            output_json(result, out)
            console.print(f"\n[green]Results saved to {out}[/green]")

    except (EvaluatorError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command("extract")
@click.argument("description", required=False)
@click.option(
    "--file", "-f",
    type=click.Path(exists=True, dir_okay=False),
    help="Read the description from a text file"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
def extract_cmd(description: Optional[str], file: Optional[str], json_output: bool):
    """Show the structured facts extracted from a description.

    Use this to check which fields the extractor recognized before scoring.
    """
    try:
        text = _read_description(description, file)
        extraction = Extractor().extract_detailed(text)

        if json_output:
            print(extraction.model_dump_json(indent=2))
        else:
            display_extraction(extraction)

    except (EvaluatorError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command("simulate")
@click.option(
    "--summary", "-s",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file with an architecture summary or a previous analysis result"
)
@click.option(
    "--traffic", "-t",
    default=1.0,
    type=float,
    help="Traffic multiplier applied to estimated users (>= 1)"
)
@click.option(
    "--regions", "-r",
    default=0,
    type=int,
    help="Number of regions to add"
)
@click.option(
    "--cost-target", "-c",
    default=0.0,
    type=float,
    help="Monthly cost target in USD (0 = no target)"
)
@click.option(
    "--out", "-o",
    type=click.Path(),
    help="Output file for JSON results"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show every scoring rule that contributed"
)
def simulate_cmd(
    summary: str,
    traffic: float,
    regions: int,
    cost_target: float,
    out: Optional[str],
    json_output: bool,
    verbose: bool,
):
    """Re-evaluate an architecture under what-if changes.

    Examples:
        architecture-evaluator analyze -f arch.txt -j -o result.json
        architecture-evaluator simulate -s result.json -t 3 -r 1
        architecture-evaluator simulate -s result.json -c 1500
    """
    try:
        base = load_summary(summary)
        params = SimulationParams(
            traffic_multiplier=traffic,
            add_regions=regions,
            cost_target=cost_target,
        )
        orchestrator = Orchestrator(config=get_config())
        result = orchestrator.simulate(base, params)

        if json_output:
            output_json(result, out)
            return

        baseline = orchestrator.evaluate(base)
        display_comparison(baseline, result)
        display_result(result, verbose)
        if out:
            output_json(result, out)
            console.print(f"\n[green]Results saved to {out}[/green]")

    except (EvaluatorError, ValueError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command("rules")
@click.option(
    "--table", "-t",
    type=click.Choice(["score", "risk", "cost"]),
    default="score",
    help="Which rule table to show"
)
@click.option(
    "--category", "-c",
    type=click.Choice([c.value for c in ScoreCategory]),
    help="Filter score and risk rules by category"
)
@click.option(
    "--check",
    is_flag=True,
    help="Validate all rule tables and exit"
)
def rules_cmd(table: str, category: Optional[str], check: bool):
    """Inspect the versioned rule and price tables.

    Examples:
        architecture-evaluator rules
        architecture-evaluator rules -t risk -c security
        architecture-evaluator rules --check
    """
    if check:
        try:
            validate_rule_tables()
        except EvaluatorError as e:
            console.print(f"[red]✗ {e.message}[/red]")
            sys.exit(1)
        console.print(
            f"[green]✓[/green] Rule tables valid "
            f"({len(SCORE_RULES)} score, {len(RISK_RULES)} risk, {len(OPTIMIZATION_RULES)} optimization rules)"
        )
        return

    if table == "score":
        display_score_rules(category)
    elif table == "risk":
        display_risk_rules(category)
    else:
        display_optimization_rules()


@main.command("handle")
@click.argument("request_file", type=click.File("r", encoding="utf-8"), default="-")
@click.option(
    "--narrative-required",
    is_flag=True,
    help="Fail the request when the narrative is unavailable"
)
def handle_cmd(request_file, narrative_required: bool):
    """Process a JSON request body and print the JSON response.

    Reads from REQUEST_FILE or stdin. Exits 1 for any non-2xx status.

    Example:
        echo '{"description": "2 VMs behind nginx"}' | architecture-evaluator handle
    """
    response = handle_request(request_file.read(), narrative_required=narrative_required)
    print(response.to_json(indent=2))
    if not response.ok:
        sys.exit(1)


def display_result(result: AnalysisResult, verbose: bool):
    """Display an analysis result in formatted text."""
    scores = result.scores
    maturity_color = MATURITY_COLORS.get(result.maturity_level.value, "white")
    risk_color = SEVERITY_COLORS.get(result.risk_analysis.risk_level.value.lower(), "white")
    cost = result.cost_analysis

    lines = [
        f"Overall Score: [bold]{scores.overall}/100[/bold]",
        f"Maturity: [{maturity_color}]{result.maturity_level.value}[/{maturity_color}]",
        f"Risk Level: [{risk_color}]{result.risk_analysis.risk_level.value}[/{risk_color}]",
        f"Monthly Cost: ${cost.total_current:,} (optimized ${cost.total_optimized:,}, "
        f"save ${cost.monthly_savings:,})",
    ]
    if result.extraction_confidence is not None:
        lines.append(f"Extraction Confidence: {result.extraction_confidence:.0%}")
    if result.simulation and result.simulation.cost_target_met is not None:
        met = "[green]met[/green]" if result.simulation.cost_target_met else "[red]missed[/red]"
        lines.append(f"Cost Target ${result.simulation.params.cost_target:,.0f}: {met}")
    console.print(Panel("\n".join(lines), title="Architecture Evaluation"))

    # Category scores
    score_table = Table(title="Category Scores")
    score_table.add_column("Category", style="cyan")
    score_table.add_column("Score", justify="right")
    score_table.add_column("Violated Principles")
    for category in ScoreCategory:
        cat = scores.category(category)
        score_table.add_row(
            category.label.title(),
            f"{cat.score}/{cat.max}",
            ", ".join(cat.violated_principles) or "[green]none[/green]",
        )
    console.print(score_table)

    if verbose:
        for category in ScoreCategory:
            console.print(f"\n[bold]{category.label.title()}:[/bold]")
            for line in scores.category(category).explanation:
                color = "green" if line.startswith("+") else "red"
                console.print(f"  [{color}]{line}[/{color}]")

    # Risks
    if result.risk_analysis.risks:
        risk_table = Table(title=f"Risks ({len(result.risk_analysis.risks)})")
        risk_table.add_column("Severity")
        risk_table.add_column("Risk", style="bold")
        risk_table.add_column("Component")
        risk_table.add_column("Impact")
        for risk in result.risk_analysis.risks:
            color = SEVERITY_COLORS[risk.severity.value]
            risk_table.add_row(
                f"[{color}]{risk.severity.value}[/{color}]",
                risk.type,
                risk.component,
                risk.impact,
            )
        console.print(risk_table)
    else:
        console.print("\n[green]No risks detected.[/green]")

    # Costs
    if cost.breakdown:
        cost_table = Table(title=f"Monthly Cost (price table {cost.price_table_version})")
        cost_table.add_column("Category", style="cyan")
        cost_table.add_column("Current", justify="right")
        cost_table.add_column("Optimized", justify="right")
        for item in cost.breakdown:
            cost_table.add_row(item.category, f"${item.current:,}", f"${item.optimized:,}")
        cost_table.add_row("[bold]Total[/bold]", f"[bold]${cost.total_current:,}[/bold]",
                           f"[bold]${cost.total_optimized:,}[/bold]")
        console.print(cost_table)
        if verbose and cost.optimizations:
            console.print("\n[bold]Optimizations:[/bold]")
            for opt in cost.optimizations:
                console.print(f"  [green]•[/green] {opt}")

    # Roadmap
    if result.improvement_plan:
        tree = Tree("[bold]Improvement Roadmap[/bold]")
        for phase in result.improvement_plan:
            branch = tree.add(f"[bold cyan]Phase {phase.phase}: {phase.title}[/bold cyan] [dim]({phase.impact})[/dim]")
            for action in phase.actions:
                branch.add(action)
        console.print(tree)

    if result.ai_explanation:
        console.print(Panel(result.ai_explanation, title=f"Narrative (confidence {result.confidence_score:.0%})"))
    elif result.narrative_status.value not in ("ok", "disabled"):
        console.print(f"\n[yellow]⚠ Narrative unavailable: {result.narrative_status.value}[/yellow]")

    console.print(f"\n[dim]Rules version {result.rules_version}[/dim]")


def display_extraction(extraction: ExtractionResult):
    """Display extracted fields with recognition status."""
    table = Table(title=f"Extracted Architecture (confidence {extraction.confidence:.0%})")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_column("Recognized", justify="center")

    values = extraction.summary.model_dump(mode="json")
    for name in ArchitectureSummary.field_names():
        recognized = name in extraction.recognized_fields
        table.add_row(
            name,
            str(values[name]),
            "[green]✓[/green]" if recognized else "[dim]-[/dim]",
        )
    console.print(table)


def display_comparison(baseline: AnalysisResult, simulated: AnalysisResult):
    """Display baseline and simulated headline figures side by side."""
    table = Table(title="Simulation Impact")
    table.add_column("Metric", style="cyan")
    table.add_column("Baseline", justify="right")
    table.add_column("Simulated", justify="right")
    table.add_column("Change", justify="right")

    def row(label: str, before: int, after: int, money: bool = False):
        fmt = (lambda v: f"${v:,}") if money else str
        diff = after - before
        color = "green" if diff > 0 else "red" if diff < 0 else "dim"
        table.add_row(label, fmt(before), fmt(after), f"[{color}]{diff:+,}[/{color}]")

    row("Overall", baseline.scores.overall, simulated.scores.overall)
    for category in ScoreCategory:
        row(
            category.label.title(),
            baseline.scores.category(category).score,
            simulated.scores.category(category).score,
        )
    row("Risks", len(baseline.risk_analysis.risks), len(simulated.risk_analysis.risks))
    row("Monthly Cost", baseline.cost_analysis.total_current, simulated.cost_analysis.total_current, money=True)
    row("Optimized Cost", baseline.cost_analysis.total_optimized, simulated.cost_analysis.total_optimized, money=True)
    console.print(table)


def display_score_rules(category: Optional[str]):
    table = Table(title=f"Score Rules (rules version {RULES_VERSION})")
    table.add_column("ID", style="cyan")
    table.add_column("Category")
    table.add_column("+Pts", justify="right", style="green")
    table.add_column("-Pts", justify="right", style="red")
    table.add_column("Rule")
    table.add_column("Principle")
    for rule in SCORE_RULES:
        if category and rule.category.value != category:
            continue
        table.add_row(
            rule.rule_id,
            rule.category.value,
            str(rule.points),
            str(rule.penalty) if rule.penalty else "",
            rule.explanation,
            rule.principle or "",
        )
    console.print(table)


def display_risk_rules(category: Optional[str]):
    table = Table(title=f"Risk Rules (rules version {RULES_VERSION})")
    table.add_column("ID", style="cyan")
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Risk")
    table.add_column("Component")
    for rule in RISK_RULES:
        if category and rule.category.value != category:
            continue
        color = SEVERITY_COLORS[rule.severity.value]
        table.add_row(
            rule.rule_id,
            f"[{color}]{rule.severity.value}[/{color}]",
            rule.category.value,
            rule.type,
            rule.component,
        )
    console.print(table)


def display_optimization_rules():
    table = Table(title=f"Cost Optimizations (price table {PRICE_TABLE_VERSION})")
    table.add_column("ID", style="cyan")
    table.add_column("Category")
    table.add_column("Factor", justify="right")
    table.add_column("Description")
    for rule in OPTIMIZATION_RULES:
        table.add_row(rule.rule_id, rule.category, f"{rule.factor:.2f}", rule.description)
    console.print(table)


def load_summary(path: str) -> ArchitectureSummary:
    """Load a summary from a summary JSON file or a full analysis result."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and "architecture_summary" in data:
        data = data["architecture_summary"]
    return ArchitectureSummary.model_validate(data)


def output_json(result: AnalysisResult, out_path: Optional[str]):
    """Output result as JSON."""
    json_str = result.model_dump_json(indent=2)

    if out_path:
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(json_str)
    else:
        print(json_str)


@main.command("init-config")
@click.option(
    "--out", "-o",
    type=click.Path(),
    default="evaluator-config.yaml",
    help="Output path for the configuration file"
)
@click.option(
    "--force", "-f",
    is_flag=True,
    help="Overwrite existing config file"
)
def init_config_cmd(out: str, force: bool):
    """Generate a default evaluator configuration file.

    Example:
        architecture-evaluator init-config --out my-config.yaml
    """
    from .config import save_default_config

    out_path = Path(out)
    if out_path.exists() and not force:
        console.print(f"[red]Error:[/red] Config file already exists: {out}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        save_default_config(out_path)
        console.print(f"[green]✓[/green] Config file created: {out}")
        console.print("\nThis file configures:")
        console.print("  • scoring_weights - How much each category contributes to the overall score")
        console.print("  • maturity_thresholds - Overall scores that separate maturity levels")
        console.print("  • narrative - The optional narrative collaborator endpoint and timeout")
        console.print("  • pipeline - Parallel execution of the scoring, risk and cost stages")
        console.print("\nThe evaluator will look for config in this order:")
        console.print("  1. ARCHITECTURE_EVALUATOR_CONFIG environment variable")
        console.print("  2. ./evaluator-config.yaml (current directory)")
        console.print("  3. ~/.config/architecture-evaluator/config.yaml")
    except OSError as e:
        console.print(f"[red]Error creating config:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
