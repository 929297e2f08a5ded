# ABOUTME: Tests for the variant extraction service over an in-memory database
# ABOUTME: Cache-first extraction, queued update tasks, discovery and genotype assessment

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from snpedia_harvest.core.models import RiskLevel
from snpedia_harvest.core.service import SNPEDIA_UPDATE_TASK, VariantExtractionService
from snpedia_harvest.extraction.base import ExtractionError, PageNotFoundError, VariantIdBatch, WikiPage
from snpedia_harvest.persistence import DatabaseManager, TaskStatus

PAGE_HTML = """
<h1>Rs1801133</h1>
<table>
  <tr><th>Geno</th><th>Mag</th><th>Summary</th></tr>
  <tr><td>(A;A)</td><td>3.5</td><td>10% enzyme activity</td></tr>
  <tr><td>(G;G)</td><td>0</td><td>normal</td></tr>
</table>
"""
PAGE_WIKITEXT = "{{rsnum|rsid=1801133|gene=MTHFR}} Linked to [[folate deficiency]]."


class FakeSNPedia:
    """In-memory VariantSource recording what was fetched."""

    def __init__(self, pages: dict[str, WikiPage] | None = None, batches: list[VariantIdBatch] | None = None):
        self.pages = pages or {}
        self.batches = batches or []
        self.fetched: list[str] = []
        self.tokens: list[str | None] = []
        self.failures: dict[str, Exception] = {}

    async def fetch_page(self, variant_id: str) -> WikiPage:
        self.fetched.append(variant_id)
        if variant_id in self.failures:
            raise self.failures[variant_id]
        if variant_id not in self.pages:
            raise PageNotFoundError(f"No SNPedia page for {variant_id}: missingtitle")
        return self.pages[variant_id]

    async def list_variant_ids(self, continue_token: str | None = None) -> VariantIdBatch:
        self.tokens.append(continue_token)
        return self.batches.pop(0)


@pytest_asyncio.fixture
async def temp_db() -> DatabaseManager:
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
    from sqlmodel.ext.asyncio.session import AsyncSession

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    db = DatabaseManager("sqlite+aiosqlite:///:memory:")
    db.engine = engine
    db.async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def snpedia() -> FakeSNPedia:
    return FakeSNPedia(pages={"rs1801133": WikiPage(title="Rs1801133", html=PAGE_HTML, wikitext=PAGE_WIKITEXT)})


@pytest.fixture
def service(snpedia, temp_db) -> VariantExtractionService:
    return VariantExtractionService(fetcher=snpedia, database=temp_db, refresh_after_days=30, include_raw=False)


class TestExtract:
    @pytest.mark.asyncio
    async def test_fetches_extracts_and_stores(self, service, snpedia):
        state = await service.extract("RS1801133")

        assert snpedia.fetched == ["rs1801133"]
        assert state.id == "rs1801133"
        assert state.record.gene == "MTHFR"
        assert state.record.raw_content is None
        assert [g.genotype for g in state.genotypes] == ["A;A", "G;G"]
        assert state.trait_names == ["folate deficiency"]

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, service, snpedia):
        await service.extract("rs1801133")
        await service.extract("rs1801133")

        assert snpedia.fetched == ["rs1801133"]

    @pytest.mark.asyncio
    async def test_force_refresh_fetches_again(self, service, snpedia):
        await service.extract("rs1801133")
        await service.extract("rs1801133", force_refresh=True)

        assert snpedia.fetched == ["rs1801133", "rs1801133"]

    @pytest.mark.asyncio
    async def test_missing_page_propagates(self, service):
        with pytest.raises(PageNotFoundError):
            await service.extract("rs0")


class TestTaskProcessing:
    @pytest.mark.asyncio
    async def test_empty_queue(self, service):
        assert await service.process_next_task() is None

    @pytest.mark.asyncio
    async def test_successful_task(self, service, temp_db):
        await temp_db.enqueue_task(SNPEDIA_UPDATE_TASK, "rs1801133")

        task = await service.process_next_task()

        assert task.status == TaskStatus.DONE
        assert task.result == {"variant_id": "rs1801133", "genotype_count": 2, "needs_interpretation": True}
        assert await temp_db.get_variant("rs1801133") is not None

    @pytest.mark.asyncio
    async def test_complete_genomics_only_variant_not_worth_interpreting(self, service, snpedia, temp_db):
        snpedia.pages["rs2000"] = WikiPage(
            title="Rs2000",
            html=(
                "<table><tr><th>Geno</th><th>Mag</th><th>Summary</th></tr>"
                "<tr><td>(A;A)</td><td>0</td><td>common in complete genomics</td></tr></table>"
            ),
            wikitext="{{rsnum|rsid=2000}}",
        )
        await temp_db.enqueue_task(SNPEDIA_UPDATE_TASK, "rs2000")

        task = await service.process_next_task()

        assert task.status == TaskStatus.DONE
        assert task.result["needs_interpretation"] is False

    @pytest.mark.asyncio
    async def test_missing_page_fails_without_retry(self, service, temp_db):
        await temp_db.enqueue_task(SNPEDIA_UPDATE_TASK, "rs0")

        task = await service.process_next_task()

        assert task.status == TaskStatus.ERROR
        assert task.retry_count == 0
        assert "missingtitle" in task.error_message

    @pytest.mark.asyncio
    async def test_transient_failure_goes_back_to_pending(self, service, snpedia, temp_db):
        snpedia.failures["rs1801133"] = ExtractionError("SNPedia returned a non-JSON response")
        await temp_db.enqueue_task(SNPEDIA_UPDATE_TASK, "rs1801133")

        task = await service.process_next_task()

        assert task.status == TaskStatus.PENDING
        assert task.retry_count == 1
        assert task.error_message == "SNPedia returned a non-JSON response"

    @pytest.mark.asyncio
    async def test_force_refresh_argument_honoured(self, service, snpedia, temp_db):
        await service.extract("rs1801133")
        await temp_db.enqueue_task(SNPEDIA_UPDATE_TASK, "rs1801133", arguments={"force_refresh": True})

        await service.process_next_task()

        assert snpedia.fetched == ["rs1801133", "rs1801133"]


class TestDiscovery:
    @pytest.mark.asyncio
    async def test_walks_pages_until_token_runs_out(self, snpedia, temp_db):
        snpedia.batches = [
            VariantIdBatch(variant_ids=["rs1", "rs2"], continue_token="next"),
            VariantIdBatch(variant_ids=["rs3"], continue_token=None),
        ]
        service = VariantExtractionService(fetcher=snpedia, database=temp_db)

        discovered = await service.discover(pages=5, priority=2)

        assert discovered == ["rs1", "rs2", "rs3"]
        assert snpedia.tokens == [None, "next"]
        assert (await temp_db.queue_stats())["pending"] == 3
        assert (await temp_db.next_task(SNPEDIA_UPDATE_TASK)).priority == 2

    @pytest.mark.asyncio
    async def test_page_limit(self, snpedia, temp_db):
        snpedia.batches = [
            VariantIdBatch(variant_ids=["rs1"], continue_token="next"),
            VariantIdBatch(variant_ids=["rs2"], continue_token=None),
        ]
        service = VariantExtractionService(fetcher=snpedia, database=temp_db)

        assert await service.discover(pages=1) == ["rs1"]


class TestAssess:
    @pytest.mark.asyncio
    async def test_unknown_variant(self, service):
        assert await service.assess("rs1801133") is None

    @pytest.mark.asyncio
    async def test_with_stored_user_genotype(self, service, temp_db):
        await service.extract("rs1801133")
        await temp_db.set_user_genotype("rs1801133", "(A;A)")

        assessment = await service.assess("rs1801133")

        assert assessment.risk_level == RiskLevel.HIGH
        assert assessment.interpretation == "10% enzyme activity"

    @pytest.mark.asyncio
    async def test_without_user_genotype(self, service):
        await service.extract("rs1801133")

        assessment = await service.assess("rs1801133")

        assert assessment.risk_level == RiskLevel.UNKNOWN
