# ABOUTME: Database operations and data persistence layer
# ABOUTME: Pipeline Stage 2: normalized records and queued fetch tasks → database storage

"""
Persistence Layer: Store variant records and schedule their fetching

This layer handles:
- SQLModel tables for variants, their child collections and the task queue
- Idempotent upserts that replace child collections wholesale
- Refresh decisions for cached records
- Database connection and transaction management

Data Flow: core/ records → Database → core/ service and CLI
"""

from .json_types import PydanticJson
from .manager import DatabaseManager, VariantState
from .models import TaskQueue, TaskStatus, Variant, VariantCitation, VariantGenotype, VariantLink, VariantTrait

__all__ = [
    "DatabaseManager",
    "PydanticJson",
    "TaskQueue",
    "TaskStatus",
    "Variant",
    "VariantCitation",
    "VariantGenotype",
    "VariantLink",
    "VariantState",
    "VariantTrait",
]
