# ABOUTME: Business logic and orchestration layer
# ABOUTME: Pipeline Stage 3: partial extractions → normalized variant records and their consumers

"""
Core Layer: Normalized records and the rules built on them

This layer handles:
- The normalized variant record and its invariants
- Merging partial extractions under the template priority rule
- Risk tiers and the interpretation projection
- Orchestration of fetch, extraction and storage

Data Flow: extraction/ partials → merged record → persistence/ and consumers
"""

from .models import (
    Citation,
    GenotypeEntry,
    NormalizedVariantRecord,
    Provenance,
    RiskColor,
    RiskLevel,
)

# Import pipeline and service on-demand to avoid circular imports
# Use: from snpedia_harvest.core.pipeline import extract_variant

__all__ = [
    "Citation",
    "GenotypeEntry",
    "NormalizedVariantRecord",
    "Provenance",
    "RiskColor",
    "RiskLevel",
]
