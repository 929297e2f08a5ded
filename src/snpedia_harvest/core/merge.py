# ABOUTME: Merges the structural, template and free-text partial extractions into one variant record
# ABOUTME: Template values win over structural ones; citations are concatenated then de-duplicated by id

from collections.abc import Iterable

from snpedia_harvest.core.models import (
    Citation,
    GenotypeEntry,
    NormalizedVariantRecord,
    Provenance,
    RawContent,
)
from snpedia_harvest.extraction.base import FreeTextAnnotations, StructuralExtraction, TemplateExtraction

# Record fields where a present template value replaces the structural one
TEMPLATE_PRIORITY_FIELDS = (
    "gene",
    "chromosome",
    "position",
    "summary",
    "gmaf",
    "orientation",
    "reference_allele",
    "assembly",
    "dbsnp_build",
)


def _present(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _prefer(template_value: object, structural_value: object) -> object:
    return template_value if _present(template_value) else structural_value


def dedupe_citations(citations: Iterable[Citation]) -> list[Citation]:
    """De-duplicate by id in first-seen order, backfilling a missing title from later duplicates.

    >>> dedupe_citations([Citation(id="1"), Citation(id="1", title="T"), Citation(id="2")])
    [Citation(id='1', title='T'), Citation(id='2', title=None)]
    """
    titles: dict[str, str | None] = {}
    for citation in citations:
        if citation.id not in titles:
            titles[citation.id] = citation.title or None
        elif titles[citation.id] is None and citation.title:
            titles[citation.id] = citation.title
    return [Citation(id=citation_id, title=title) for citation_id, title in titles.items()]


def collapse_identical_genotypes(entries: Iterable[GenotypeEntry]) -> list[GenotypeEntry]:
    """Drop later entries repeating an earlier genotype and summary; other repeats are kept."""
    seen: set[tuple[str, str]] = set()
    collapsed = []
    for entry in entries:
        key = (entry.genotype, entry.summary)
        if key in seen:
            continue
        seen.add(key)
        collapsed.append(entry)
    return collapsed


def merge_extractions(
    structural: StructuralExtraction,
    template: TemplateExtraction,
    free_text: FreeTextAnnotations,
    raw_content: RawContent | None = None,
) -> NormalizedVariantRecord:
    """Combine the three partial extractions into a normalized record.

    The id falls back to the structural id whenever the template id is missing
    or blank; it is never built from an empty template value.
    """
    fields = {
        name: _prefer(getattr(template, name, None), getattr(structural, name, None))
        for name in TEMPLATE_PRIORITY_FIELDS
    }

    citations = dedupe_citations(
        [*structural.citations, *free_text.citations, *template.auto_citations, *template.pmid_citations]
    )

    return NormalizedVariantRecord(
        id=_prefer(template.rsid, structural.rsid),
        **fields,
        genotypes=collapse_identical_genotypes(structural.genotypes),
        risk_allele=free_text.risk_allele,
        clinical_info=structural.clinical_info,
        clinvar_data=template.clinvar,
        omim_data=template.omim,
        population_data=structural.population_data,
        external_links=list(structural.external_links),
        citations=citations,
        traits=list(free_text.traits),
        genotype_effects=list(free_text.genotype_effects),
        related_variant_ids=list(free_text.related_variant_ids),
        gender_specific=free_text.gender_specific,
        clinical_notes=list(free_text.clinical_significance_notes),
        provenance=Provenance(
            has_structural_data=_present(structural.rsid),
            has_template_data=template.found,
        ),
        raw_content=raw_content,
    )
