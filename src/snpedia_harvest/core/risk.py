# ABOUTME: Magnitude-based risk tiers for genotypes and for a person's own genotype
# ABOUTME: Pure functions over NormalizedVariantRecord, total over all inputs

from snpedia_harvest.core.models import GenotypeEntry, NormalizedVariantRecord, RecordModel, RiskLevel

HIGH_RISK_MAGNITUDE = 3.0
MEDIUM_RISK_MAGNITUDE = 2.0

NO_GENOTYPE_INTERPRETATION = "No genotype data available for risk assessment"
NO_INTERPRETATION = "No interpretation available"


class GenotypeRisk(RecordModel):
    genotype: str
    risk_level: RiskLevel
    magnitude: float
    summary: str = ""


class GenotypeRiskAssessment(RecordModel):
    """Risk for one person's genotype at a variant."""

    risk_level: RiskLevel
    magnitude: float | None = None
    user_genotype: str | None = None
    interpretation: str


def risk_level_for(magnitude: float | None) -> RiskLevel:
    """Tier a magnitude: >= 3 HIGH, >= 2 MEDIUM, anything else (including absent) LOW."""
    value = magnitude or 0.0
    if value >= HIGH_RISK_MAGNITUDE:
        return RiskLevel.HIGH
    if value >= MEDIUM_RISK_MAGNITUDE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def classify_risk(record: NormalizedVariantRecord) -> list[GenotypeRisk]:
    """One risk entry per genotype entry, in the record's order."""
    return [
        GenotypeRisk(
            genotype=entry.genotype,
            risk_level=risk_level_for(entry.magnitude),
            magnitude=entry.magnitude,
            summary=entry.summary,
        )
        for entry in record.genotypes
    ]


def normalize_genotype(genotype: str) -> str:
    """Comparable form of a genotype: '(a; G)' -> 'A;G'."""
    return "".join(character for character in genotype if character not in "() \t").upper()


def find_genotype(record: NormalizedVariantRecord, genotype: str) -> GenotypeEntry | None:
    wanted = normalize_genotype(genotype)
    return next((entry for entry in record.genotypes if normalize_genotype(entry.genotype) == wanted), None)


def assess_genotype(record: NormalizedVariantRecord, user_genotype: str | None) -> GenotypeRiskAssessment:
    """Assess a person's genotype against the record.

    Without a genotype the level is UNKNOWN. Otherwise the matching table row
    supplies magnitude and interpretation, falling back to the record's maximum
    magnitude and summary.
    """
    if not user_genotype or not user_genotype.strip():
        return GenotypeRiskAssessment(
            risk_level=RiskLevel.UNKNOWN,
            magnitude=record.max_magnitude,
            interpretation=NO_GENOTYPE_INTERPRETATION,
        )

    match = find_genotype(record, user_genotype)
    if match is not None:
        magnitude = match.magnitude
        interpretation = match.summary or record.summary or NO_INTERPRETATION
    else:
        magnitude = record.max_magnitude or 0.0
        interpretation = record.summary or NO_INTERPRETATION

    return GenotypeRiskAssessment(
        risk_level=risk_level_for(magnitude),
        magnitude=magnitude,
        user_genotype=user_genotype,
        interpretation=interpretation,
    )
