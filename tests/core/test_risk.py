# ABOUTME: Tests for magnitude risk tiers and user genotype assessment
# ABOUTME: Threshold boundaries, per-genotype classification and genotype matching fallbacks

import pytest

from snpedia_harvest.core.models import GenotypeEntry, NormalizedVariantRecord, RiskLevel
from snpedia_harvest.core.risk import (
    NO_GENOTYPE_INTERPRETATION,
    NO_INTERPRETATION,
    assess_genotype,
    classify_risk,
    find_genotype,
    normalize_genotype,
    risk_level_for,
)


@pytest.fixture
def record() -> NormalizedVariantRecord:
    return NormalizedVariantRecord(
        id="rs1801133",
        summary="Reduced MTHFR activity",
        genotypes=[
            GenotypeEntry(genotype="A;A", magnitude=3.5, summary="10% enzyme activity"),
            GenotypeEntry(genotype="A;G", magnitude=2.0, summary=""),
            GenotypeEntry(genotype="G;G", magnitude=0.0, summary="normal"),
        ],
    )


@pytest.mark.parametrize(
    "magnitude,expected",
    [
        (0, RiskLevel.LOW),
        (1.9, RiskLevel.LOW),
        (2.0, RiskLevel.MEDIUM),
        (2.9, RiskLevel.MEDIUM),
        (3.0, RiskLevel.HIGH),
        (10, RiskLevel.HIGH),
        (None, RiskLevel.LOW),
    ],
)
def test_risk_level_boundaries(magnitude, expected):
    assert risk_level_for(magnitude) == expected


def test_classify_risk_preserves_order(record):
    risks = classify_risk(record)

    assert [(r.genotype, r.risk_level) for r in risks] == [
        ("A;A", RiskLevel.HIGH),
        ("A;G", RiskLevel.MEDIUM),
        ("G;G", RiskLevel.LOW),
    ]
    assert risks[0].summary == "10% enzyme activity"


def test_classify_risk_empty_record():
    assert classify_risk(NormalizedVariantRecord()) == []


@pytest.mark.parametrize("raw,expected", [("(a; G)", "A;G"), ("A;G", "A;G"), (" (t;t) ", "T;T")])
def test_normalize_genotype(raw, expected):
    assert normalize_genotype(raw) == expected


def test_find_genotype(record):
    assert find_genotype(record, "(a;a)").magnitude == 3.5
    assert find_genotype(record, "C;C") is None


class TestAssessGenotype:
    def test_without_user_genotype(self, record):
        assessment = assess_genotype(record, None)

        assert assessment.risk_level == RiskLevel.UNKNOWN
        assert assessment.magnitude == 3.5
        assert assessment.interpretation == NO_GENOTYPE_INTERPRETATION

    def test_matching_row(self, record):
        assessment = assess_genotype(record, "(A;A)")

        assert assessment.risk_level == RiskLevel.HIGH
        assert assessment.magnitude == 3.5
        assert assessment.user_genotype == "(A;A)"
        assert assessment.interpretation == "10% enzyme activity"

    def test_matching_row_without_summary_uses_record_summary(self, record):
        assessment = assess_genotype(record, "A;G")

        assert assessment.risk_level == RiskLevel.MEDIUM
        assert assessment.interpretation == "Reduced MTHFR activity"

    def test_unlisted_genotype_uses_max_magnitude(self, record):
        assessment = assess_genotype(record, "C;C")

        assert assessment.risk_level == RiskLevel.HIGH
        assert assessment.magnitude == 3.5

    def test_record_without_genotypes(self):
        assessment = assess_genotype(NormalizedVariantRecord(), "A;A")

        assert assessment.risk_level == RiskLevel.LOW
        assert assessment.magnitude == 0.0
        assert assessment.interpretation == NO_INTERPRETATION
