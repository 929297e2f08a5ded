# ABOUTME: Synchronous extraction entry point: two raw page renderings in, one normalized record out
# ABOUTME: Runs the three extractors in isolation so a failure in one never prevents the others

from collections.abc import Callable
from typing import TypeVar

from snpedia_harvest.core.merge import merge_extractions
from snpedia_harvest.core.models import NormalizedVariantRecord, RawContent
from snpedia_harvest.extraction.base import (
    FreeTextAnnotations,
    PartialExtraction,
    StructuralExtraction,
    TemplateExtraction,
)
from snpedia_harvest.extraction.wiki.annotator import annotate
from snpedia_harvest.extraction.wiki.structural import extract_structural
from snpedia_harvest.extraction.wiki.templates import parse_templates
from snpedia_harvest.utils.logging import get_logger

P = TypeVar("P", bound=PartialExtraction)

logger = get_logger(__name__)


def _run_isolated(name: str, extractor: Callable[[str], P], content: str, empty: type[P]) -> P:
    try:
        return extractor(content)
    except Exception as e:
        logger.warning("Extractor failed, continuing without it", extractor=name, error=str(e))
        return empty()


def extract_variant(
    html: str,
    wikitext: str,
    variant_id: str | None = None,
    include_raw: bool = True,
) -> NormalizedVariantRecord:
    """Extract a normalized record from one SNPedia page.

    Never raises for malformed content: every unusable piece degrades to an
    absent field and callers judge completeness through ``provenance``.

    Args:
        html: Rendered page HTML
        wikitext: Raw page wikitext of the same revision
        variant_id: Storage key; when given, its lowercase form becomes the record id
        include_raw: Attach both inputs as ``raw_content``

    Returns:
        The merged, validated record
    """
    html = html or ""
    wikitext = wikitext or ""

    structural = _run_isolated("structural", extract_structural, html, StructuralExtraction)
    template = _run_isolated("templates", parse_templates, wikitext, TemplateExtraction)
    free_text = _run_isolated("annotator", annotate, wikitext, FreeTextAnnotations)

    raw_content = RawContent(html=html, wikitext=wikitext) if include_raw else None
    record = merge_extractions(structural, template, free_text, raw_content=raw_content)

    if variant_id and variant_id.strip():
        record = record.model_copy(update={"id": variant_id.strip().lower()})

    logger.debug(
        "Variant extracted",
        variant_id=record.id,
        has_structural_data=record.provenance.has_structural_data,
        has_template_data=record.provenance.has_template_data,
        genotype_count=record.provenance.genotype_count,
    )
    return record
