# ABOUTME: Tests for the normalized variant record model
# ABOUTME: Derived fields, collection invariants and the camelCase JSON contract

import pytest
from pydantic import ValidationError

from snpedia_harvest.core.models import (
    Citation,
    ExternalLink,
    GenotypeEntry,
    NormalizedVariantRecord,
    PopulationData,
    Provenance,
    RiskColor,
)


def _genotype(genotype: str, magnitude: float, summary: str = "") -> GenotypeEntry:
    return GenotypeEntry(genotype=genotype, magnitude=magnitude, summary=summary)


class TestDerivedFields:
    def test_max_magnitude_over_genotypes(self):
        record = NormalizedVariantRecord(genotypes=[_genotype("A;A", 0.5), _genotype("A;G", 3.2)])

        assert record.max_magnitude == 3.2

    def test_max_magnitude_absent_without_genotypes(self):
        assert NormalizedVariantRecord().max_magnitude is None

    def test_provenance_counts_follow_lists(self):
        record = NormalizedVariantRecord(
            genotypes=[_genotype("A;A", 1)],
            external_links=[ExternalLink(name="dbSNP", url="https://example.org"), ExternalLink(name="x", url="y")],
            provenance=Provenance(has_template_data=True, genotype_count=99, external_link_count=99),
        )

        assert record.provenance.genotype_count == 1
        assert record.provenance.external_link_count == 2
        assert record.provenance.has_template_data is True

    def test_default_provenance(self):
        assert NormalizedVariantRecord().provenance == Provenance()


class TestInvariants:
    def test_duplicate_citation_ids_rejected(self):
        with pytest.raises(ValidationError):
            NormalizedVariantRecord(citations=[Citation(id="1"), Citation(id="1", title="T")])

    def test_traits_unique_case_insensitively(self):
        with pytest.raises(ValidationError):
            NormalizedVariantRecord(traits=["diabetes", "Diabetes"])

    def test_related_ids_unique(self):
        with pytest.raises(ValidationError):
            NormalizedVariantRecord(related_variant_ids=["rs1", "rs1"])

    def test_position_must_be_positive(self):
        with pytest.raises(ValidationError):
            NormalizedVariantRecord(position=0)

    def test_gmaf_in_unit_interval(self):
        with pytest.raises(ValidationError):
            NormalizedVariantRecord(gmaf=1.5)

    def test_negative_magnitude_rejected(self):
        with pytest.raises(ValidationError):
            GenotypeEntry(genotype="A;A", magnitude=-0.1)

    def test_population_frequency_range(self):
        with pytest.raises(ValidationError):
            PopulationData(populations=["CEU"], frequencies={"CEU": {"geno1": 1.2}})

    def test_record_is_immutable(self):
        record = NormalizedVariantRecord(gene="APOE")

        with pytest.raises(ValidationError):
            record.gene = "MTHFR"  # type: ignore[misc]


class TestJsonContract:
    def test_camel_case_names(self):
        record = NormalizedVariantRecord(
            id="rs7412",
            dbsnp_build="153",
            reference_allele="C",
            genotypes=[GenotypeEntry(genotype="C;C", magnitude=2.0, risk_color=RiskColor.RED)],
        )

        data = record.model_dump(by_alias=True, mode="json")

        assert data["dbSNPBuild"] == "153"
        assert data["referenceAllele"] == "C"
        assert data["maxMagnitude"] == 2.0
        assert data["genotypes"][0]["riskColor"] == "red"
        assert data["provenance"] == {
            "hasStructuralData": False,
            "hasTemplateData": False,
            "genotypeCount": 1,
            "externalLinkCount": 0,
        }

    def test_json_round_trip(self):
        record = NormalizedVariantRecord(
            id="rs7412",
            gene="APOE",
            genotypes=[_genotype("C;C", 2.0, "normal")],
            citations=[Citation(id="1", title="T")],
            traits=["alzheimer's disease"],
        )

        restored = NormalizedVariantRecord.model_validate_json(record.model_dump_json(by_alias=True))

        assert restored == record
