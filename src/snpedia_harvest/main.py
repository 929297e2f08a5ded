# ABOUTME: Main CLI application entry point using asyncclick for native async support
# ABOUTME: Provides commands to parse local pages, fetch and store variants, and drive the update queue

import json as jsonlib
from pathlib import Path

import asyncclick as click
from rich.console import Console

from snpedia_harvest.config import get_config
from snpedia_harvest.core.models import NormalizedVariantRecord
from snpedia_harvest.core.pipeline import extract_variant
from snpedia_harvest.core.risk import classify_risk
from snpedia_harvest.extraction.base import ExtractionError, PageNotFoundError
from snpedia_harvest.persistence import DatabaseManager, TaskStatus
from snpedia_harvest.utils.logging import (
    LoggingMode,
    configure_logging,
    get_logging_status,
    with_pipeline_context,
    with_variant_context,
)
from snpedia_harvest.utils.retry import configure_fetch_retry
from snpedia_harvest.utils.rich_tables import (
    create_citations_table,
    create_genotype_risk_table,
    create_key_value_table,
    create_logging_status_table,
    create_queue_stats_table,
    create_task_list_table,
    create_variant_summary_table,
    print_rich_table,
)

console = Console()


def _record_json(record: NormalizedVariantRecord) -> str:
    return record.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def _display_record(record: NormalizedVariantRecord) -> None:
    """Display a variant record as rich tables."""
    print_rich_table(console, create_variant_summary_table(record))
    if record.genotypes:
        print_rich_table(console, create_genotype_risk_table(classify_risk(record), record.id))
    if record.citations:
        print_rich_table(console, create_citations_table(record.citations))


@click.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("wikitext_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--id", "variant_id", help="Variant id to key the record by")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the record JSON here")
@click.option("--no-raw", is_flag=True, help="Leave the raw HTML and wikitext off the record")
@click.pass_context
def parse(ctx, html_file: Path, wikitext_file: Path, variant_id: str | None, output: Path | None, no_raw: bool):
    """
    🧪 Extract a variant record from a saved page's HTML and wikitext.
    """
    with with_pipeline_context("parse_local", html_file=str(html_file)) as logger:
        record = extract_variant(
            html_file.read_text(encoding="utf-8"),
            wikitext_file.read_text(encoding="utf-8"),
            variant_id=variant_id,
            include_raw=not no_raw,
        )
        logger.info("Parsed local page", variant_id=record.id, genotype_count=record.provenance.genotype_count)

    if output:
        output.write_text(_record_json(record), encoding="utf-8")

    if ctx.obj["json_output"]:
        click.echo(_record_json(record))
    else:
        _display_record(record)
        if output:
            console.print(f"[green]💾 Record written to {output}[/green]")


@click.command()
@click.argument("variant_id")
@click.option("--force-refresh", is_flag=True, help="Bypass cache and fetch fresh data")
@click.pass_context
async def fetch(ctx, variant_id: str, force_refresh: bool):
    """
    🌐 Fetch a variant from SNPedia, extract it and store it.
    """
    await _fetch_async(variant_id, force_refresh, ctx.obj["json_output"])


async def _fetch_async(variant_id: str, force_refresh: bool, json_output: bool):
    with with_variant_context(variant_id) as logger:
        from snpedia_harvest.core.service import VariantExtractionService

        service = VariantExtractionService(force_refresh=force_refresh)
        try:
            try:
                state = await service.extract(variant_id)
            except PageNotFoundError as e:
                logger.warning("Variant page not found", error=str(e))
                if not json_output:
                    console.print(f"[red]❌ {e}[/red]")
                return
            except ExtractionError as e:
                logger.error("Variant extraction failed", error=str(e))
                if not json_output:
                    console.print(f"[red]❌ {e}[/red]")
                return

            record = state.record
            if record is None:
                return
            if json_output:
                click.echo(_record_json(record))
                return

            _display_record(record)
            assessment = await service.assess(variant_id)
            if assessment and assessment.user_genotype:
                print_rich_table(
                    console,
                    create_key_value_table(
                        title="🧍 Your Genotype",
                        data={
                            "Genotype": assessment.user_genotype,
                            "Risk": assessment.risk_level.value,
                            "Magnitude": f"{assessment.magnitude:g}" if assessment.magnitude is not None else "N/A",
                            "Interpretation": assessment.interpretation,
                        },
                    ),
                )
        finally:
            await service.close()


@click.command(name="set-genotype")
@click.argument("variant_id")
@click.argument("genotype")
async def set_genotype(variant_id: str, genotype: str):
    """
    🧍 Record your own genotype for a stored variant.
    """
    database = DatabaseManager()
    try:
        await database.create_tables()
        if await database.set_user_genotype(variant_id, genotype):
            console.print(f"[green]✅ Genotype {genotype} recorded for {variant_id.lower()}[/green]")
        else:
            console.print(f"[yellow]⚠️ {variant_id.lower()} is not stored yet; fetch it first[/yellow]")
    finally:
        await database.close()


@click.command()
@click.argument("variant_ids", nargs=-1, required=True)
@click.option("--priority", default=0, type=int, help="Higher priority tasks run first")
@click.option("--force-refresh", is_flag=True, help="Fetch even when a fresh copy is stored")
async def enqueue(variant_ids: tuple[str, ...], priority: int, force_refresh: bool):
    """
    📥 Queue variants for fetching.
    """
    from snpedia_harvest.core.service import SNPEDIA_UPDATE_TASK

    database = DatabaseManager()
    try:
        await database.create_tables()
        for variant_id in variant_ids:
            await database.enqueue_task(
                SNPEDIA_UPDATE_TASK,
                variant_id.strip().lower(),
                arguments={"force_refresh": force_refresh},
                priority=priority,
            )
        console.print(f"[green]📥 Queued {len(variant_ids)} variant(s)[/green]")
    finally:
        await database.close()


@click.command()
@click.option("--pages", default=1, type=int, help="Category listing pages to walk")
@click.option("--priority", default=0, type=int, help="Priority of the queued tasks")
async def discover(pages: int, priority: int):
    """
    🔭 Queue every variant listed in SNPedia's SNP category.
    """
    from snpedia_harvest.core.service import VariantExtractionService

    service = VariantExtractionService()
    try:
        with with_pipeline_context("discovery", pages=pages) as logger:
            discovered = await service.discover(pages=pages, priority=priority)
            logger.info("Discovery finished", discovered=len(discovered))
        console.print(f"[green]🔭 Queued {len(discovered)} variant(s)[/green]")
    finally:
        await service.close()


@click.command(name="process-queue")
@click.option("--limit", default=10, type=int, help="Maximum number of tasks to run")
async def process_queue(limit: int):
    """
    ⚙️ Run pending update tasks.
    """
    from snpedia_harvest.core.service import VariantExtractionService

    service = VariantExtractionService()
    processed = 0
    try:
        while processed < limit:
            task = await service.process_next_task()
            if task is None:
                break
            processed += 1
            status_style = "green" if task.status.value == "done" else "yellow"
            console.print(f"[{status_style}]{task.task_id}: {task.status.value}[/{status_style}]")
        console.print(f"⚙️ Processed {processed} task(s)")
    finally:
        await service.close()


@click.command(name="queue-stats")
@click.pass_context
async def queue_stats(ctx):
    """
    📋 Show task queue counts by status.
    """
    database = DatabaseManager()
    try:
        await database.create_tables()
        stats = await database.queue_stats()
    finally:
        await database.close()

    if ctx.obj["json_output"]:
        click.echo(jsonlib.dumps(stats))
    else:
        print_rich_table(console, create_queue_stats_table(stats))


@click.command(name="list-tasks")
@click.option("--task-type", default="snpedia-update", show_default=True, help="Task type to list")
@click.option(
    "--status",
    type=click.Choice([status.value for status in TaskStatus]),
    default=None,
    help="Only tasks in this status",
)
@click.option("--limit", default=50, type=int, help="Maximum number of tasks to show")
@click.pass_context
async def list_tasks(ctx, task_type: str, status: str | None, limit: int):
    """
    🗂️ List queued tasks of one type, newest first.
    """
    database = DatabaseManager()
    try:
        await database.create_tables()
        tasks = await database.list_tasks(task_type, status=TaskStatus(status) if status else None, limit=limit)
    finally:
        await database.close()

    if ctx.obj["json_output"]:
        click.echo(jsonlib.dumps([task.model_dump(mode="json") for task in tasks]))
    elif not tasks:
        console.print(f"[yellow]No {task_type} tasks queued[/yellow]")
    else:
        print_rich_table(console, create_task_list_table(tasks, task_type))


@click.command()
@click.option("--older-than-days", default=7, type=click.IntRange(min=0), show_default=True, help="Age cutoff")
async def cleanup(older_than_days: int):
    """
    🧹 Delete finished and failed tasks older than the cutoff.
    """
    database = DatabaseManager()
    try:
        await database.create_tables()
        removed = await database.cleanup_tasks(older_than_days=older_than_days)
    finally:
        await database.close()

    console.print(f"[green]🧹 Cleaned up {removed} old task(s)[/green]")


def _initialize_logging(json_output: bool, log_level: str | None = None, log_file: str | None = None) -> None:
    """Initialize logging configuration."""
    try:
        config = get_config()
        mode = LoggingMode.PRODUCTION if json_output else LoggingMode.INTERACTIVE

        # Use config defaults when CLI parameters are not provided
        final_log_level = log_level or config.log_level
        final_log_file = log_file or (str(config.log_file) if config.log_file else None)

        configure_logging(mode=mode, log_level=final_log_level, log_file=final_log_file)
    except (FileNotFoundError, PermissionError, OSError):
        # Log directory unavailable: fall back to minimal logging configuration
        mode = LoggingMode.PRODUCTION if json_output else LoggingMode.INTERACTIVE
        configure_logging(mode=mode, log_level=log_level or "INFO", log_file=log_file)


@click.command(name="logging-status")
def logging_status():
    """
    📊 Show current logging configuration and status.
    """
    status = get_logging_status()
    logging_table = create_logging_status_table(status)
    print_rich_table(console, logging_table)


@click.group(invoke_without_command=True)
@click.option("--json", is_flag=True, help="Output structured JSON instead of rich tables")
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--log-file", help="Custom log file path")
@click.pass_context
def app(ctx, json: bool, log_level: str | None, log_file: str | None):
    """
    🧬 SNPedia Harvest - normalized variant records from SNPedia pages

    Fetches SNPedia variant pages, reconciles their rendered HTML with their
    wikitext templates, and stores one normalized record per variant.
    """
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json

    # Initialize logging and the request rate limit once here instead of in each command
    _initialize_logging(json, log_level, log_file)
    configure_fetch_retry(get_config().requests_per_second)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Add commands to the main group
app.add_command(parse)
app.add_command(fetch)
app.add_command(set_genotype)
app.add_command(enqueue)
app.add_command(discover)
app.add_command(process_queue)
app.add_command(queue_stats)
app.add_command(list_tasks)
app.add_command(cleanup)
app.add_command(logging_status)


if __name__ == "__main__":
    app()
