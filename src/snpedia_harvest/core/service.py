# ABOUTME: High-level service API tying SNPedia fetches, extraction and storage together
# ABOUTME: Cache-first variant extraction, queued update tasks and category discovery

from __future__ import annotations

from snpedia_harvest.config import get_config
from snpedia_harvest.core.interpretation import needs_interpretation
from snpedia_harvest.core.pipeline import extract_variant
from snpedia_harvest.core.risk import GenotypeRiskAssessment, assess_genotype
from snpedia_harvest.extraction.base import PageNotFoundError, VariantSource
from snpedia_harvest.extraction.wiki.client import SNPediaClient
from snpedia_harvest.persistence import DatabaseManager, TaskQueue, TaskStatus, VariantState
from snpedia_harvest.utils.logging import get_logger, with_variant_context

SNPEDIA_UPDATE_TASK = "snpedia-update"


class VariantExtractionService:
    """Service for extracting SNPedia variants with cache-first logic."""

    def __init__(
        self,
        fetcher: VariantSource | None = None,
        database: DatabaseManager | None = None,
        force_refresh: bool = False,
        refresh_after_days: int | None = None,
        include_raw: bool | None = None,
    ):
        config = get_config()
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or SNPediaClient()
        self.database = database or DatabaseManager()
        self.force_refresh = force_refresh
        self.refresh_after_days = config.refresh_after_days if refresh_after_days is None else refresh_after_days
        self.include_raw = config.include_raw_content if include_raw is None else include_raw
        self.logger = get_logger(__name__)

    async def extract(self, variant_id: str, force_refresh: bool | None = None) -> VariantState:
        """Return the stored variant, fetching and extracting it when missing or stale.

        Raises:
            PageNotFoundError: If SNPedia has no page for the variant
            ExtractionError: If the fetched payload is unusable
        """
        variant_id = variant_id.strip().lower()
        force = self.force_refresh if force_refresh is None else force_refresh
        await self.database.create_tables()

        with with_variant_context(variant_id) as logger:
            if not force and not await self.database.should_refresh(variant_id, self.refresh_after_days):
                cached = await self.database.get_variant(variant_id)
                if cached:
                    logger.info("Using cached variant", genotype_count=len(cached.genotypes))
                    return cached

            logger.info("Extracting fresh variant data", force_refresh=force)

            page = await self.fetcher.fetch_page(variant_id)
            record = extract_variant(page.html, page.wikitext, variant_id=variant_id, include_raw=self.include_raw)
            await self.database.upsert_variant(record)

            state = await self.database.get_variant(variant_id)
            if not state:
                raise RuntimeError(f"Stored variant {variant_id} could not be read back")

            logger.info(
                "Variant stored",
                gene=record.gene,
                genotype_count=record.provenance.genotype_count,
                citation_count=len(record.citations),
                has_template_data=record.provenance.has_template_data,
                needs_interpretation=needs_interpretation(record),
            )
            return state

    async def process_next_task(self) -> TaskQueue | None:
        """Run the next pending update task, if any, and return it in its final state.

        Missing pages fail the task outright; any other failure counts as a retry.
        """
        await self.database.create_tables()
        task = await self.database.next_task(SNPEDIA_UPDATE_TASK)
        if task is None or task.id is None:
            return None

        await self.database.mark_task(task.id, TaskStatus.PROCESSING)
        force = bool((task.arguments or {}).get("force_refresh", False))

        try:
            state = await self.extract(task.task_id, force_refresh=force)
        except PageNotFoundError as e:
            self.logger.warning("Variant page missing", variant_id=task.task_id, error=str(e))
            return await self.database.mark_task(task.id, TaskStatus.ERROR, error_message=str(e))
        except Exception as e:
            self.logger.error(
                "Update task failed", variant_id=task.task_id, error=str(e), error_type=type(e).__name__
            )
            await self.database.increment_retry(task.id, error_message=str(e))
            return await self.database.get_task(task.id)

        return await self.database.mark_task(
            task.id,
            TaskStatus.DONE,
            result={
                "variant_id": state.id,
                "genotype_count": len(state.genotypes),
                "needs_interpretation": state.record is not None and needs_interpretation(state.record),
            },
        )

    async def discover(self, pages: int = 1, priority: int = 0) -> list[str]:
        """Queue update tasks for variants listed in the SNP category, page by page."""
        await self.database.create_tables()
        discovered: list[str] = []
        token: str | None = None

        for page in range(1, pages + 1):
            batch = await self.fetcher.list_variant_ids(token)
            for variant_id in batch.variant_ids:
                await self.database.enqueue_task(SNPEDIA_UPDATE_TASK, variant_id, priority=priority)
                discovered.append(variant_id)
            self.logger.info("Discovery batch queued", page=page, queued=len(batch.variant_ids))

            token = batch.continue_token
            if not token:
                break

        return discovered

    async def assess(self, variant_id: str) -> GenotypeRiskAssessment | None:
        """Risk assessment of the stored user genotype; None when the variant is not stored."""
        state = await self.database.get_variant(variant_id)
        if state is None or state.record is None:
            return None
        return assess_genotype(state.record, state.user_genotype)

    async def close(self) -> None:
        """Clean up client and database resources."""
        if self._owns_fetcher and isinstance(self.fetcher, SNPediaClient):
            await self.fetcher.close()
        await self.database.close()
