# ABOUTME: Domain models for the normalized SNPedia variant record
# ABOUTME: Output contract of the extraction pipeline, serialized with camelCase JSON names

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class RecordModel(BaseModel):
    """Base for record types: snake_case attributes, camelCase JSON, immutable once built."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class RiskColor(str, Enum):
    """Background colour SNPedia paints on a genotype's magnitude cell."""

    GREEN = "green"
    WHITE = "white"
    RED = "red"
    UNKNOWN = "unknown"


class GenderSpecificity(str, Enum):
    """Which sex a variant's effect is described as relevant to."""

    MALE = "male"
    FEMALE = "female"
    BOTH = "both"


class RiskLevel(str, Enum):
    """Coarse risk tier derived from genotype magnitude."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"


class GenotypeEntry(RecordModel):
    """One row of a genotype/magnitude/summary table."""

    genotype: str = Field(description="Allele pair as written in the table, parentheses stripped (e.g. 'A;G')")
    magnitude: float = Field(ge=0.0, description="SNPedia magnitude for this genotype")
    summary: str = Field(default="", description="Short effect summary for this genotype")
    risk_color: RiskColor = Field(default=RiskColor.UNKNOWN, description="Colour marker of the magnitude cell")


class ClinicalInfo(RecordModel):
    significance: str | None = None
    disease: str | None = None
    omim_id: str | None = None


class PopulationData(RecordModel):
    """Genotype frequencies per population, from the population diversity chart."""

    populations: list[str] = Field(default_factory=list)
    frequencies: dict[str, dict[str, float]] = Field(default_factory=dict)

    @field_validator("frequencies")
    @classmethod
    def _frequencies_in_unit_interval(cls, value: dict[str, dict[str, float]]) -> dict[str, dict[str, float]]:
        for population, series in value.items():
            for label, frequency in series.items():
                if not 0.0 <= frequency <= 1.0:
                    raise ValueError(f"frequency {frequency} for {population}/{label} outside [0, 1]")
        return value


class ExternalLink(RecordModel):
    name: str
    url: str


class Citation(RecordModel):
    """A PubMed citation; ``id`` is the numeric PMID."""

    id: str
    title: str | None = None


class GenotypeEffect(RecordModel):
    """A genotype-specific link found in the page body, with surrounding text."""

    genotype: str
    effect: str = Field(description="Text window around the genotype link")


class Provenance(RecordModel):
    """Which sources contributed to a record and how much they produced."""

    has_structural_data: bool = False
    has_template_data: bool = False
    genotype_count: int = Field(default=0, ge=0)
    external_link_count: int = Field(default=0, ge=0)


class RawContent(RecordModel):
    html: str = ""
    wikitext: str = ""


class NormalizedVariantRecord(RecordModel):
    """Normalized description of one SNPedia variant page.

    Absent optional fields mean "unknown", never zero. ``max_magnitude`` and the
    provenance counters are derived from the record's own lists and cannot be set
    independently.
    """

    id: str | None = Field(default=None, description="Canonical lowercase variant id (rs/I id)")
    gene: str | None = None
    chromosome: str | None = None
    position: int | None = Field(default=None, ge=1)
    summary: str | None = None

    genotypes: list[GenotypeEntry] = Field(default_factory=list)
    risk_allele: str | None = None

    clinical_info: ClinicalInfo | None = None
    clinvar_data: dict[str, str] | None = Field(default=None, description="Raw ClinVar template fields")
    omim_data: dict[str, str] | None = Field(default=None, description="Raw omim template fields")

    population_data: PopulationData | None = None
    gmaf: float | None = Field(default=None, ge=0.0, le=1.0)

    external_links: list[ExternalLink] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)

    orientation: str | None = None
    reference_allele: str | None = None
    assembly: str | None = None
    dbsnp_build: str | None = Field(default=None, alias="dbSNPBuild")

    traits: list[str] = Field(default_factory=list, description="Lowercased linked terms, no duplicates")
    genotype_effects: list[GenotypeEffect] = Field(default_factory=list)
    related_variant_ids: list[str] = Field(default_factory=list)
    gender_specific: GenderSpecificity | None = None
    clinical_notes: list[str] = Field(default_factory=list, description="Statistical significance mentions")

    provenance: Provenance = Field(default_factory=Provenance)
    raw_content: RawContent | None = None

    @computed_field(alias="maxMagnitude")  # type: ignore[prop-decorator]
    @property
    def max_magnitude(self) -> float | None:
        if not self.genotypes:
            return None
        return max(entry.magnitude for entry in self.genotypes)

    @model_validator(mode="before")
    @classmethod
    def _derive_provenance_counts(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        genotypes = data.get("genotypes") or []
        links = data.get("external_links", data.get("externalLinks")) or []
        provenance = data.get("provenance")
        if not isinstance(provenance, Provenance):
            provenance = Provenance.model_validate(provenance or {})
        counts = {"genotype_count": len(genotypes), "external_link_count": len(links)}
        return {**data, "provenance": provenance.model_copy(update=counts)}

    @model_validator(mode="after")
    def _check_collections(self) -> "NormalizedVariantRecord":
        citation_ids = [citation.id for citation in self.citations]
        if len(citation_ids) != len(set(citation_ids)):
            raise ValueError("citations must not repeat an id")
        lowered = [trait.lower() for trait in self.traits]
        if len(lowered) != len(set(lowered)):
            raise ValueError("traits must be unique (case-insensitive)")
        if len(self.related_variant_ids) != len(set(self.related_variant_ids)):
            raise ValueError("related variant ids must be unique")
        return self
