# ABOUTME: Shared extraction types: fetch protocol, error classes and per-extractor partial results
# ABOUTME: Each extractor returns its own immutable partial; the merge step combines them into one record

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from snpedia_harvest.core.models import (
    Citation,
    ClinicalInfo,
    ExternalLink,
    GenderSpecificity,
    GenotypeEffect,
    GenotypeEntry,
    PopulationData,
)


class ExtractionError(Exception):
    """Raised when a variant page cannot be fetched or its payload is unusable."""

    pass


class PageNotFoundError(ExtractionError):
    """Raised when SNPedia has no page for the requested variant."""

    pass


class WikiPage(BaseModel):
    """Both renderings of one SNPedia page revision."""

    title: str
    page_id: int | None = None
    html: str = ""
    wikitext: str = ""

    model_config = ConfigDict(frozen=True)


class PageFetcher(Protocol):
    """Protocol for fetching a variant page by id."""

    async def fetch_page(self, variant_id: str) -> WikiPage:
        """Fetch the rendered HTML and raw wikitext of a variant page.

        Args:
            variant_id: rs/I id of the variant, any case

        Returns:
            The page content

        Raises:
            PageNotFoundError: If the page does not exist
            ExtractionError: If the response cannot be used
        """
        ...


class VariantIdBatch(BaseModel):
    """One page of variant ids from the SNP category listing."""

    variant_ids: list[str] = Field(default_factory=list)
    continue_token: str | None = None


class VariantSource(PageFetcher, Protocol):
    """A PageFetcher that can also enumerate known variant ids."""

    async def list_variant_ids(self, continue_token: str | None = None) -> VariantIdBatch:
        """List one batch of variant ids, with the token for the next batch if any."""
        ...


class PartialExtraction(BaseModel):
    model_config = ConfigDict(frozen=True)


class StructuralExtraction(PartialExtraction):
    """Everything the rendered-markup extractor found."""

    rsid: str | None = None
    gene: str | None = None
    chromosome: str | None = None
    position: int | None = None
    summary: str | None = None
    gmaf: float | None = None
    orientation: str | None = None
    genotypes: tuple[GenotypeEntry, ...] = ()
    external_links: tuple[ExternalLink, ...] = ()
    citations: tuple[Citation, ...] = ()
    population_data: PopulationData | None = None
    clinical_info: ClinicalInfo | None = None


class TemplateExtraction(PartialExtraction):
    """Fields read from the page's wikitext templates."""

    found: bool = Field(default=False, description="Whether the primary rsnum template was present")
    rsid: str | None = None
    gene: str | None = None
    chromosome: str | None = None
    position: int | None = None
    summary: str | None = None
    gmaf: float | None = None
    orientation: str | None = None
    reference_allele: str | None = None
    assembly: str | None = None
    dbsnp_build: str | None = None
    template_genotypes: tuple[str, ...] = Field(
        default=(), description="geno1..geno5 values; not merged into the record's genotype table"
    )
    auto_citations: tuple[Citation, ...] = ()
    pmid_citations: tuple[Citation, ...] = ()
    clinvar: dict[str, str] | None = None
    omim: dict[str, str] | None = None


class FreeTextAnnotations(PartialExtraction):
    """Heuristic annotations found in the page body text."""

    traits: tuple[str, ...] = ()
    genotype_effects: tuple[GenotypeEffect, ...] = ()
    related_variant_ids: tuple[str, ...] = ()
    citations: tuple[Citation, ...] = ()
    risk_allele: str | None = None
    gender_specific: GenderSpecificity | None = None
    clinical_significance_notes: tuple[str, ...] = ()
