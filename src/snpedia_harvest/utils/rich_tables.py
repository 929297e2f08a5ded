# ABOUTME: Rich table builders for variant records, risk tiers, citations and queue state
# ABOUTME: Provides pre-configured table generators for the CLI's display patterns

from typing import Any

from rich.box import ROUNDED
from rich.console import Console
from rich.table import Table

from snpedia_harvest.core.models import Citation, NormalizedVariantRecord, RiskLevel
from snpedia_harvest.core.risk import GenotypeRisk
from snpedia_harvest.persistence.models import TaskQueue, TaskStatus

RISK_LEVEL_STYLES = {
    RiskLevel.HIGH: "bold red",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.LOW: "green",
    RiskLevel.UNKNOWN: "dim",
}


def create_key_value_table(
    title: str,
    data: dict[str, str],
    title_style: str = "bold cyan",
    key_style: str = "bold blue",
    value_style: str = "green",
    box_style=ROUNDED,
) -> Table:
    """Create a two-column field/value table.

    Args:
        title: Table title with emoji/styling
        data: Dictionary of key-value pairs to display
        title_style: Style for the table title
        key_style: Style for the key column
        value_style: Style for the value column
        box_style: Border style for the table

    Returns:
        Formatted Rich table ready for printing
    """
    table = Table(
        title=f"[{title_style}]{title}[/{title_style}]",
        box=box_style,
        show_header=True,
        header_style="bold magenta",
        border_style="cyan",
        title_justify="left",
        expand=False,
    )

    table.add_column("Field", style=key_style, no_wrap=False)
    table.add_column("Value", style=value_style, no_wrap=False)

    for key, value in data.items():
        table.add_row(key, str(value))

    return table


def create_multi_column_table(
    title: str,
    columns: list[tuple[str, str]],
    rows: list[list[str]],
    title_style: str = "bold cyan",
    header_style: str = "bold magenta",
    alternate_row_styles: list[str] | None = None,
    box_style=ROUNDED,
) -> Table:
    """Create a multi-column table with zebra striping.

    Args:
        title: Table title with emoji/styling
        columns: List of (column_name, column_style) tuples
        rows: List of row data
        title_style: Style for the table title
        header_style: Style for column headers
        alternate_row_styles: Alternating row styles for zebra striping
        box_style: Border style for the table

    Returns:
        Formatted Rich table ready for printing
    """
    table = Table(
        title=f"[{title_style}]{title}[/{title_style}]",
        box=box_style,
        show_header=True,
        header_style=header_style,
        border_style="cyan",
        title_justify="left",
        row_styles=alternate_row_styles or ["", "dim"],
        expand=True,
    )

    for name, style in columns:
        table.add_column(name, style=style)

    for row in rows:
        table.add_row(*row)

    return table


def _truncate(text: str, length: int) -> str:
    return text[:length] + "..." if len(text) > length else text


def create_variant_summary_table(record: NormalizedVariantRecord) -> Table:
    """Create the overview table of one variant record."""
    provenance = record.provenance
    sources = [
        name
        for name, present in (
            ("page HTML", provenance.has_structural_data),
            ("rsnum template", provenance.has_template_data),
        )
        if present
    ]

    data = {
        "🆔 Variant": record.id or "Unknown",
        "🧬 Gene": record.gene or "Not specified",
        "📍 Location": f"chr{record.chromosome}:{record.position:,}"
        if record.chromosome and record.position
        else (record.chromosome or "Unknown"),
        "📝 Summary": _truncate(record.summary, 150) if record.summary else "Not available",
        "📈 Max Magnitude": f"{record.max_magnitude:g}" if record.max_magnitude is not None else "N/A",
        "🌍 GMAF": f"{record.gmaf:g}" if record.gmaf is not None else "N/A",
        "📚 Citations": str(len(record.citations)),
        "🏷️ Traits": _truncate(", ".join(record.traits), 120) or "None",
        "🔎 Sources": ", ".join(sources) or "None",
    }
    if record.gender_specific:
        data["⚧ Gender Specific"] = record.gender_specific.value

    return create_key_value_table(
        title="🧬 Variant Summary",
        data=data,
        title_style="bold magenta",
        key_style="cyan",
        value_style="white",
    )


def create_genotype_risk_table(risks: list[GenotypeRisk], variant_id: str | None) -> Table:
    """Create a table of genotypes with their magnitude and risk tier."""
    rows = [
        [
            risk.genotype,
            f"{risk.magnitude:g}",
            f"[{RISK_LEVEL_STYLES[risk.risk_level]}]{risk.risk_level.value}[/]",
            _truncate(risk.summary, 80),
        ]
        for risk in risks
    ]
    return create_multi_column_table(
        title=f"🧬 Genotypes for {variant_id or 'variant'}",
        columns=[("Genotype", "bold cyan"), ("Magnitude", "white"), ("Risk", "white"), ("Summary", "white")],
        rows=rows,
    )


def create_citations_table(citations: list[Citation]) -> Table:
    rows = [[citation.id, _truncate(citation.title or "", 100) or "-"] for citation in citations]
    return create_multi_column_table(
        title="📚 Citations",
        columns=[("PMID", "bold cyan"), ("Title", "white")],
        rows=rows,
    )


def create_queue_stats_table(stats: dict[str, int]) -> Table:
    data = {
        "⏳ Pending": str(stats.get("pending", 0)),
        "⚙️ Processing": str(stats.get("processing", 0)),
        "✅ Done": str(stats.get("done", 0)),
        "❌ Error": str(stats.get("error", 0)),
        "📦 Total": str(stats.get("total", 0)),
    }
    return create_key_value_table(
        title="📋 Task Queue",
        data=data,
        title_style="bold green",
        key_style="blue",
        value_style="white",
    )


TASK_STATUS_STYLES = {
    TaskStatus.PENDING: "yellow",
    TaskStatus.PROCESSING: "cyan",
    TaskStatus.DONE: "green",
    TaskStatus.ERROR: "bold red",
}


def create_task_list_table(tasks: list[TaskQueue], task_type: str) -> Table:
    """Create a table of queued tasks of one type."""
    rows = [
        [
            task.task_id,
            f"[{TASK_STATUS_STYLES[task.status]}]{task.status.value}[/]",
            str(task.priority),
            f"{task.retry_count}/{task.max_retries}",
            task.created_at.strftime("%Y-%m-%d %H:%M"),
            _truncate(task.error_message or "", 60) or "-",
        ]
        for task in tasks
    ]
    return create_multi_column_table(
        title=f"📋 Tasks: {task_type}",
        columns=[
            ("Task", "bold cyan"),
            ("Status", "white"),
            ("Priority", "white"),
            ("Retries", "white"),
            ("Created", "dim"),
            ("Error", "white"),
        ],
        rows=rows,
    )


def create_logging_status_table(status: dict[str, Any]) -> Table:
    """Create a logging configuration status table.

    Args:
        status: Logging status dictionary

    Returns:
        Styled logging configuration table
    """
    logging_data = {
        "🔧 Mode": status["mode"].title(),
        "📁 Log Directory": status["log_directory"] or "N/A (production mode)",
        "🔇 Suppressed Libraries": ", ".join(status["third_party_suppressed"]),
    }

    if status["log_files"]["main"]:
        logging_data["📝 Main Log"] = status["log_files"]["main"]
    if status["log_files"]["json"]:
        logging_data["📊 JSON Log"] = status["log_files"]["json"]
    if status["log_files"]["errors"]:
        logging_data["🚨 Error Log"] = status["log_files"]["errors"]

    return create_key_value_table(
        title="🔍 Logging Configuration",
        data=logging_data,
        title_style="bold green",
        key_style="blue",
        value_style="white",
    )


def print_rich_table(console: Console, table: Table) -> None:
    """Print a rich table with consistent spacing and style.

    Args:
        console: Rich console instance
        table: Configured table to print
    """
    console.print()
    console.print(table)
    console.print()
