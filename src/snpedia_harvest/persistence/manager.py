# ABOUTME: Database manager for stored variant records and the fetch task queue
# ABOUTME: Upserts replace child collections wholesale; queue hands out the highest-priority oldest task

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from snpedia_harvest.config import get_config
from snpedia_harvest.core.models import NormalizedVariantRecord
from snpedia_harvest.persistence.models import (
    TaskQueue,
    TaskStatus,
    Variant,
    VariantCitation,
    VariantGenotype,
    VariantLink,
    VariantTrait,
    utcnow,
)
from snpedia_harvest.utils.logging import get_logger

CHILD_TABLES = (VariantGenotype, VariantCitation, VariantTrait, VariantLink)


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; they were stored as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


@dataclass(slots=True)
class VariantState:
    """Stored variant assembled from the variant row and its child tables."""

    variant: Variant
    genotypes: list[VariantGenotype] = field(default_factory=list)
    citations: list[VariantCitation] = field(default_factory=list)
    traits: list[VariantTrait] = field(default_factory=list)
    links: list[VariantLink] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.variant.id

    @property
    def record(self) -> NormalizedVariantRecord | None:
        return self.variant.record_json

    @property
    def user_genotype(self) -> str | None:
        return self.variant.user_genotype

    @property
    def fetched_at(self) -> datetime:
        return _as_utc(self.variant.fetched_at)

    @property
    def trait_names(self) -> list[str]:
        return [trait.name for trait in self.traits]


class DatabaseManager:
    """Manages async database operations for variant records and queued tasks."""

    def __init__(self, database_url: str | None = None):
        self.database_url = database_url or get_config().database_url
        self.logger = get_logger(__name__)
        self.engine = create_async_engine(self.database_url, echo=False)
        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    # --- Variants --------------------------------------------------------------------

    async def upsert_variant(self, record: NormalizedVariantRecord, fetched_at: datetime | None = None) -> Variant:
        """Store a record, overwriting scalars and replacing every child collection.

        The owner's user genotype is kept across re-storage.

        Raises:
            ValueError: If the record has no id to key it by
        """
        if not record.id:
            raise ValueError("Cannot store a variant record without an id")

        timestamp = fetched_at or utcnow()
        async with self.async_session() as session:
            variant = await session.get(Variant, record.id)
            if variant:
                variant.gene = record.gene
                variant.chromosome = record.chromosome
                variant.position = record.position
                variant.summary = record.summary
                variant.magnitude = record.max_magnitude
                variant.record_json = record
                variant.fetched_at = timestamp
                variant.updated_at = utcnow()
            else:
                variant = Variant(
                    id=record.id,
                    gene=record.gene,
                    chromosome=record.chromosome,
                    position=record.position,
                    summary=record.summary,
                    magnitude=record.max_magnitude,
                    record_json=record,
                    fetched_at=timestamp,
                )
            session.add(variant)

            for table in CHILD_TABLES:
                await session.exec(delete(table).where(table.variant_id == record.id))  # type: ignore[call-overload]

            session.add_all(
                VariantGenotype(
                    variant_id=record.id,
                    position=index,
                    genotype=entry.genotype,
                    magnitude=entry.magnitude,
                    summary=entry.summary,
                    risk_color=entry.risk_color.value,
                )
                for index, entry in enumerate(record.genotypes)
            )
            session.add_all(
                VariantCitation(variant_id=record.id, pmid=citation.id, title=citation.title)
                for citation in record.citations
            )
            session.add_all(VariantTrait(variant_id=record.id, name=trait) for trait in record.traits)
            session.add_all(
                VariantLink(variant_id=record.id, name=link.name, url=link.url) for link in record.external_links
            )

            await session.commit()
            await session.refresh(variant)

        self.logger.debug(
            "Stored variant",
            variant_id=record.id,
            genotype_count=len(record.genotypes),
            citation_count=len(record.citations),
        )
        return variant

    async def get_variant(self, variant_id: str) -> VariantState | None:
        """Assemble the stored state of a variant."""
        async with self.async_session() as session:
            variant = await session.get(Variant, variant_id.lower())
            if not variant:
                return None

            genotypes = await session.exec(
                select(VariantGenotype)
                .where(VariantGenotype.variant_id == variant.id)
                .order_by(col(VariantGenotype.position))
            )
            citations = await session.exec(
                select(VariantCitation).where(VariantCitation.variant_id == variant.id).order_by(col(VariantCitation.id))
            )
            traits = await session.exec(
                select(VariantTrait).where(VariantTrait.variant_id == variant.id).order_by(col(VariantTrait.id))
            )
            links = await session.exec(
                select(VariantLink).where(VariantLink.variant_id == variant.id).order_by(col(VariantLink.id))
            )

            return VariantState(
                variant=variant,
                genotypes=list(genotypes.all()),
                citations=list(citations.all()),
                traits=list(traits.all()),
                links=list(links.all()),
            )

    async def get_record(self, variant_id: str) -> NormalizedVariantRecord | None:
        async with self.async_session() as session:
            variant = await session.get(Variant, variant_id.lower())
            return variant.record_json if variant else None

    async def find_by_gene(self, gene: str) -> list[Variant]:
        """Variants whose gene contains ``gene``, case-insensitively."""
        async with self.async_session() as session:
            result = await session.exec(
                select(Variant).where(col(Variant.gene).ilike(f"%{gene}%")).order_by(col(Variant.id))
            )
            return list(result.all())

    async def should_refresh(self, variant_id: str, max_age_days: int) -> bool:
        """True when the variant is not stored or was fetched more than ``max_age_days`` ago."""
        async with self.async_session() as session:
            variant = await session.get(Variant, variant_id.lower())
            if not variant:
                return True
            age = utcnow() - _as_utc(variant.fetched_at)
            return age > timedelta(days=max_age_days)

    async def set_user_genotype(self, variant_id: str, genotype: str | None) -> bool:
        """Record the owner's genotype at a stored variant; False when the variant is unknown."""
        async with self.async_session() as session:
            variant = await session.get(Variant, variant_id.lower())
            if not variant:
                return False
            variant.user_genotype = genotype
            variant.updated_at = utcnow()
            session.add(variant)
            await session.commit()
            return True

    # --- Task queue ------------------------------------------------------------------

    async def enqueue_task(
        self,
        task_type: str,
        task_id: str,
        arguments: dict[str, Any] | None = None,
        priority: int = 0,
        max_retries: int = 3,
    ) -> TaskQueue:
        """Add a task, or reset an existing one with the same type and id back to pending."""
        async with self.async_session() as session:
            result = await session.exec(
                select(TaskQueue).where(TaskQueue.task_type == task_type, TaskQueue.task_id == task_id)
            )
            task = result.first()
            if task:
                task.arguments = arguments
                task.priority = priority
                task.max_retries = max_retries
                task.status = TaskStatus.PENDING
                task.retry_count = 0
                task.error_message = None
                task.result = None
                task.updated_at = utcnow()
            else:
                task = TaskQueue(
                    task_type=task_type,
                    task_id=task_id,
                    arguments=arguments,
                    priority=priority,
                    max_retries=max_retries,
                )
            session.add(task)
            await session.commit()
            await session.refresh(task)

        self.logger.debug("Task queued", task_type=task_type, task_id=task_id, priority=priority)
        return task

    async def get_task(self, task_pk: int) -> TaskQueue | None:
        async with self.async_session() as session:
            return await session.get(TaskQueue, task_pk)

    async def next_task(self, task_type: str | None = None) -> TaskQueue | None:
        """The pending task with the highest priority, oldest first among equals."""
        async with self.async_session() as session:
            statement = select(TaskQueue).where(TaskQueue.status == TaskStatus.PENDING)
            if task_type:
                statement = statement.where(TaskQueue.task_type == task_type)
            statement = statement.order_by(
                col(TaskQueue.priority).desc(), col(TaskQueue.created_at).asc(), col(TaskQueue.id).asc()
            )
            result = await session.exec(statement.limit(1))
            return result.first()

    async def list_tasks(
        self, task_type: str, status: TaskStatus | None = None, limit: int = 50, offset: int = 0
    ) -> list[TaskQueue]:
        """Tasks of one type, newest first."""
        async with self.async_session() as session:
            statement = select(TaskQueue).where(TaskQueue.task_type == task_type)
            if status is not None:
                statement = statement.where(TaskQueue.status == status)
            statement = statement.order_by(col(TaskQueue.created_at).desc(), col(TaskQueue.id).desc())
            result = await session.exec(statement.offset(offset).limit(limit))
            return list(result.all())

    async def mark_task(
        self,
        task_pk: int,
        status: TaskStatus,
        error_message: str | None = None,
        result: dict[str, Any] | None = None,
    ) -> TaskQueue | None:
        """Move a task to ``status``, stamping the matching timestamp."""
        async with self.async_session() as session:
            task = await session.get(TaskQueue, task_pk)
            if not task:
                return None
            now = utcnow()
            task.status = status
            task.updated_at = now
            if status == TaskStatus.PROCESSING:
                task.processed_at = now
            elif status == TaskStatus.DONE:
                task.completed_at = now
                if result is not None:
                    task.result = result
            elif status == TaskStatus.ERROR:
                task.error_message = error_message
            session.add(task)
            await session.commit()
            await session.refresh(task)
            return task

    async def increment_retry(self, task_pk: int, error_message: str | None = None) -> bool:
        """Count a failed attempt; True when the task goes back to pending, False when it gives up."""
        async with self.async_session() as session:
            task = await session.get(TaskQueue, task_pk)
            if not task:
                return False
            task.retry_count += 1
            should_retry = task.retry_count <= task.max_retries
            task.status = TaskStatus.PENDING if should_retry else TaskStatus.ERROR
            if should_retry:
                task.error_message = error_message
            else:
                task.error_message = f"Max retries ({task.max_retries}) exceeded: {error_message or 'unknown error'}"
            task.updated_at = utcnow()
            session.add(task)
            await session.commit()

        self.logger.debug("Task retry recorded", task_pk=task_pk, should_retry=should_retry)
        return should_retry

    async def queue_stats(self) -> dict[str, int]:
        async with self.async_session() as session:
            result = await session.exec(
                select(TaskQueue.status, func.count()).group_by(TaskQueue.status)  # type: ignore[call-overload]
            )
            counts = {TaskStatus(status).value: count for status, count in result.all()}

        stats = {status.value: counts.get(status.value, 0) for status in TaskStatus}
        stats["total"] = sum(counts.values())
        return stats

    async def cleanup_tasks(self, older_than_days: int = 7) -> int:
        """Delete finished (done or error) tasks last touched before the cutoff; returns how many."""
        cutoff = utcnow() - timedelta(days=older_than_days)
        async with self.async_session() as session:
            result = await session.exec(
                delete(TaskQueue).where(  # type: ignore[call-overload]
                    col(TaskQueue.status).in_([TaskStatus.DONE, TaskStatus.ERROR]),
                    col(TaskQueue.updated_at) < cutoff,
                )
            )
            await session.commit()

        removed = result.rowcount or 0
        self.logger.info("Cleaned up old tasks", removed=removed, older_than_days=older_than_days)
        return removed
