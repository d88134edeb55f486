"""CVELens CLI - Command Line Interface.

A Typer front end over the aggregation pipeline: single and bulk CVE
lookups, autocomplete and keyword analytics.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from cvelens import __version__
from cvelens.config import get_settings
from cvelens.errors import CVELensError
from cvelens.models.analytics import AnalyticsSummary
from cvelens.models.bulk import BulkResult
from cvelens.models.details import CVEDetails
from cvelens.pipeline import Pipeline
from cvelens.utils.file_parser import parse_uploaded_file, validate_cve_id

# Create Typer app
app = typer.Typer(
    name="cvelens",
    help="CVELens - NVD, EPSS and KEV vulnerability intelligence",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]CVELens[/] version [green]{__version__}[/]")
        raise typer.Exit()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity."""
    logger.remove()
    level = "DEBUG" if verbose else get_settings().log_level
    log_format = (
        "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
    )
    logger.add(sys.stderr, level=level, format=log_format)


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
) -> None:
    """CVELens - Join NVD, EPSS and KEV data per CVE."""
    setup_logging(verbose)


def _fail(message: str) -> None:
    console.print(f"[red]✗[/] {message}")
    raise typer.Exit(1)


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def _severity_style(score: float) -> str:
    if score >= 9:
        return "bold red"
    if score >= 7:
        return "red"
    if score >= 4:
        return "yellow"
    if score > 0:
        return "green"
    return "dim"


def _render_details(details: CVEDetails) -> None:
    table = Table(title=details.cve_id, border_style="blue", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    style = _severity_style(details.cvss_score)
    table.add_row("CVSS", f"[{style}]{details.cvss_score:.1f} ({details.severity})[/]")
    table.add_row("Vector", details.vector_string or "N/A")
    table.add_row(
        "EPSS",
        f"{details.epss * 100:.2f}% (percentile {details.epss_percentile or 0:.2f})"
        if details.epss is not None
        else "N/A",
    )
    table.add_row("CWE", details.cwe or "N/A")
    table.add_row("Published", details.published.isoformat())
    table.add_row("Last Modified", details.last_modified.isoformat())
    if details.kev_details:
        kev = details.kev_details
        table.add_row("KEV", f"[red]✓[/] added {kev.date_added}, due {kev.due_date}")
        table.add_row("Required Action", kev.required_action)
        table.add_row("Ransomware", "Known" if kev.known_ransomware_campaign_use else "Unknown")
    else:
        table.add_row("KEV", "No")
    table.add_row(
        "Products (approx.)",
        ", ".join(details.affected_products) or "N/A",
    )
    table.add_row("Description", details.description)
    console.print(table)


def _render_bulk(result: BulkResult) -> None:
    table = Table(title="Bulk Lookup", border_style="blue")
    table.add_column("CVE ID", style="cyan", no_wrap=True)
    table.add_column("Score", style="yellow")
    table.add_column("Severity")
    table.add_column("EPSS", style="magenta")
    table.add_column("KEV", style="green")

    for details in result.results:
        table.add_row(
            details.cve_id,
            f"{details.cvss_score:.1f}",
            details.severity,
            f"{details.epss:.3f}" if details.epss is not None else "N/A",
            "✓" if details.is_kev else "",
        )
    console.print(table)

    console.print(
        f"[bold]Total:[/] {result.total}  [green]Succeeded:[/] {result.successful}  "
        f"[red]Failed:[/] {result.failed}"
    )
    for error in result.errors:
        console.print(f"  [red]✗[/] {error.cve_id}: {error.error}")


def _render_summary(keyword: str, months: int, summary: AnalyticsSummary) -> None:
    overview = Table(title=f"Analytics for '{keyword}' ({months} months)", border_style="blue")
    overview.add_column("Metric", style="cyan")
    overview.add_column("Value", style="green")
    overview.add_row("Total CVEs", f"{summary.total_cves:,}")
    overview.add_row("Average CVSS", f"{summary.avg_cvss:.1f}")
    overview.add_row("Average EPSS", f"{summary.avg_epss:.3f}")
    overview.add_row("In KEV", f"{summary.kev_count:,}")
    for bucket in summary.cvss_distribution:
        overview.add_row(f"  {bucket.severity}", str(bucket.count))
    console.print(overview)

    if summary.top_cvss:
        top = Table(title="Top CVSS", border_style="blue")
        top.add_column("CVE ID", style="cyan", no_wrap=True)
        top.add_column("Score", style="yellow")
        top.add_column("Description", max_width=60)
        for details in summary.top_cvss:
            top.add_row(details.cve_id, f"{details.cvss_score:.1f}", details.description[:100])
        console.print(top)

    if summary.cwe_distribution:
        cwes = Table(title="Top CWEs", border_style="blue")
        cwes.add_column("CWE", style="cyan")
        cwes.add_column("Count", style="green")
        for cwe in summary.cwe_distribution:
            cwes.add_row(cwe.name, str(cwe.count))
        console.print(cwes)


@app.command()
def cve(
    cve_id: Annotated[str, typer.Argument(help="CVE identifier, e.g. CVE-2021-44228")],
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON instead of a table.")] = False,
) -> None:
    """Show joined NVD, EPSS and KEV details for one CVE."""
    pipeline = Pipeline.from_settings()

    try:
        result = asyncio.run(pipeline.details.resolve(validate_cve_id(cve_id)))
    except CVELensError as e:
        _fail(str(e))
        return

    if result.data is None:
        _fail(f"CVE {result.cve_id}: {result.error}")
        return

    if as_json:
        _print_json(result.data.to_dict())
    else:
        _render_details(result.data)


@app.command()
def bulk(
    cve_ids: Annotated[
        list[str] | None,
        typer.Argument(help="CVE identifiers (up to 50)."),
    ] = None,
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="TXT or CSV file to scan for CVE IDs."),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON instead of a table.")] = False,
) -> None:
    """Look up several CVEs; failures are reported per CVE."""
    ids = list(cve_ids or [])
    if file is not None:
        try:
            ids.extend(parse_uploaded_file(file.name, file.read_bytes()))
        except OSError as e:
            _fail(f"Cannot read {file}: {e}")
        except CVELensError as e:
            _fail(str(e))

    pipeline = Pipeline.from_settings()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Fetching {len(ids)} CVEs (NVD allows one request every few seconds)...")
        try:
            result = asyncio.run(pipeline.details.get_bulk(ids))
        except CVELensError as e:
            _fail(str(e))
            return

    if as_json:
        _print_json(result.to_dict())
    else:
        _render_bulk(result)


@app.command()
def autocomplete(
    query: Annotated[str, typer.Argument(help="Partial keyword (at least 3 characters)")],
) -> None:
    """Suggest CVEs whose description matches a partial keyword."""
    pipeline = Pipeline.from_settings()
    suggestions = asyncio.run(pipeline.details.autocomplete(query))

    if not suggestions:
        console.print(f"[yellow]No suggestions for '{query}'[/]")
        raise typer.Exit(0)

    table = Table(title=f"Suggestions for '{query}'", border_style="blue")
    table.add_column("CVE ID", style="cyan", no_wrap=True)
    table.add_column("Description", max_width=80)
    for suggestion in suggestions:
        table.add_row(suggestion.cve_id, suggestion.description)
    console.print(table)


@app.command()
def analytics(
    keyword: Annotated[str, typer.Argument(help="Keyword to search in CVE descriptions")],
    months: Annotated[
        int,
        typer.Option("--months", "-m", min=1, max=120, help="Lookback window in months."),
    ] = 6,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON instead of tables.")] = False,
) -> None:
    """Summarize CVEs published in the last N months that match a keyword."""
    pipeline = Pipeline.from_settings()
    console.print(Panel.fit(f"[bold blue]CVELens Analytics[/] {keyword}", border_style="blue"))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Searching NVD and joining EPSS/KEV data...")
        summary = asyncio.run(pipeline.analytics.summarize_months(keyword, months))

    if as_json:
        _print_json(summary.to_dict())
    else:
        _render_summary(keyword, months, summary)


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()

    table = Table(title="CVELens Configuration", border_style="blue")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Log Level", settings.log_level)
    table.add_row("", "")
    table.add_row("[bold]NVD[/]", "")
    table.add_row("  URL", settings.nvd.base_url)
    table.add_row("  API Key", "Set" if settings.nvd.api_key else "Not set")
    table.add_row("  Min Interval", f"{settings.nvd.min_interval:g}s")
    table.add_row("  Max Window", f"{settings.nvd.max_range_days} days")
    table.add_row("", "")
    table.add_row("[bold]EPSS[/]", "")
    table.add_row("  URL", settings.epss.url)
    table.add_row("  Batch Size", str(settings.epss.batch_size))
    table.add_row("", "")
    table.add_row("[bold]KEV[/]", "")
    table.add_row("  URL", settings.kev.url)
    table.add_row("", "")
    table.add_row("[bold]Cache[/]", "")
    table.add_row("  TTL", f"{settings.cache.ttl_seconds:g}s")
    table.add_row(
        "  Max Entries",
        str(settings.cache.max_entries) if settings.cache.max_entries else "Unbounded",
    )

    console.print(table)


if __name__ == "__main__":
    app()
