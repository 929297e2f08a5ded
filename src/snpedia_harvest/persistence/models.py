# ABOUTME: Persistence models for stored variant records and the fetch task queue
# ABOUTME: One variant row with its full record as JSON, child rows per genotype/citation/trait/link

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import UniqueConstraint
from sqlmodel import JSON, Column, Field, SQLModel

from snpedia_harvest.core.models import NormalizedVariantRecord
from snpedia_harvest.persistence.json_types import PydanticJson


def utcnow() -> datetime:
    """Returns the current UTC timestamp."""

    return datetime.now(UTC)


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


class Variant(SQLModel, table=True):
    """Stored variant, keyed by its canonical lowercase id."""

    __tablename__ = "variant"  # type: ignore[assignment]

    id: str = Field(primary_key=True, description="Canonical lowercase rs/I id")
    gene: str | None = Field(default=None, index=True, description="Gene symbol")
    chromosome: str | None = Field(default=None, description="Chromosome label")
    position: int | None = Field(default=None, description="Genomic position")
    summary: str | None = Field(default=None, description="Variant summary")
    magnitude: float | None = Field(default=None, description="Maximum genotype magnitude")
    user_genotype: str | None = Field(default=None, description="The owner's own genotype at this variant")
    record_json: NormalizedVariantRecord | None = Field(
        default=None,
        sa_column=Column(PydanticJson(NormalizedVariantRecord)),
        description="Complete normalized record as extracted",
    )
    fetched_at: datetime = Field(default_factory=utcnow, description="When the page was last fetched")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utcnow, description="Last modification timestamp")


class VariantGenotype(SQLModel, table=True):
    """One genotype row of a variant's magnitude table."""

    __tablename__ = "variant_genotype"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    variant_id: str = Field(index=True, foreign_key="variant.id", description="FK to variant.id")
    position: int = Field(description="Order of the row in the source table")
    genotype: str = Field(description="Allele pair, e.g. 'A;G'")
    magnitude: float = Field(description="Magnitude of the genotype")
    summary: str = Field(default="", description="Genotype effect summary")
    risk_color: str = Field(default="unknown", description="Colour marker of the magnitude cell")


class VariantCitation(SQLModel, table=True):
    __tablename__ = "variant_citation"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    variant_id: str = Field(index=True, foreign_key="variant.id", description="FK to variant.id")
    pmid: str = Field(description="PubMed id")
    title: str | None = Field(default=None, description="Citation title when known")


class VariantTrait(SQLModel, table=True):
    __tablename__ = "variant_trait"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    variant_id: str = Field(index=True, foreign_key="variant.id", description="FK to variant.id")
    name: str = Field(index=True, description="Lowercased trait")


class VariantLink(SQLModel, table=True):
    __tablename__ = "variant_link"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    variant_id: str = Field(index=True, foreign_key="variant.id", description="FK to variant.id")
    name: str = Field(description="External database name")
    url: str = Field(description="External database URL")


class TaskQueue(SQLModel, table=True):
    """A unit of background work, unique per (task_type, task_id)."""

    __tablename__ = "task_queue"  # type: ignore[assignment]
    __table_args__ = (UniqueConstraint("task_type", "task_id"),)

    id: int | None = Field(default=None, primary_key=True)
    task_type: str = Field(index=True, description="Kind of work, e.g. 'snpedia-update'")
    task_id: str = Field(description="Target of the work, e.g. a variant id")
    arguments: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON), description="Task arguments")
    status: TaskStatus = Field(default=TaskStatus.PENDING, index=True, description="Task lifecycle status")
    priority: int = Field(default=0, description="Higher runs first")
    retry_count: int = Field(default=0, description="Failed attempts so far")
    max_retries: int = Field(default=3, description="Failed attempts allowed before giving up")
    error_message: str | None = Field(default=None, description="Last error")
    result: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON), description="Task result")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utcnow, description="Last modification timestamp")
    processed_at: datetime | None = Field(default=None, description="When processing started")
    completed_at: datetime | None = Field(default=None, description="When the task finished successfully")
