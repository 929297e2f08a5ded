# ABOUTME: Projection of a variant record into the request consumed by the AI interpreter
# ABOUTME: Also decides when a record carries too little to be worth interpreting

from pydantic import Field

from snpedia_harvest.core.models import NormalizedVariantRecord, RecordModel

UNINFORMATIVE_SUMMARY = "common in complete genomics"


class PhenotypeSummary(RecordModel):
    genotype: str
    magnitude: float | None = None
    summary: str = ""


class InterpretationRequest(RecordModel):
    """Input of the external interpretation service."""

    rsid: str | None = None
    gene: str | None = None
    summary: str | None = None
    magnitude: float | None = None
    genotype: str | None = None
    phenotypes: list[PhenotypeSummary] = Field(default_factory=list)


def build_interpretation_request(
    record: NormalizedVariantRecord, user_genotype: str | None = None
) -> InterpretationRequest:
    return InterpretationRequest(
        rsid=record.id,
        gene=record.gene,
        summary=record.summary,
        magnitude=record.max_magnitude,
        genotype=user_genotype or None,
        phenotypes=[
            PhenotypeSummary(genotype=entry.genotype, magnitude=entry.magnitude, summary=entry.summary)
            for entry in record.genotypes
        ],
    )


def needs_interpretation(record: NormalizedVariantRecord) -> bool:
    """False for records without genotypes or whose only row is the uninformative Complete Genomics note."""
    if not record.genotypes:
        return False
    if len(record.genotypes) == 1 and record.genotypes[0].summary.strip().lower() == UNINFORMATIVE_SUMMARY:
        return False
    return True
