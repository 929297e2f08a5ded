# ABOUTME: Heuristic free-text annotation of SNPedia wikitext
# ABOUTME: Each pattern is a named rule in an ordered table; rules never raise and run independently

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from snpedia_harvest.core.models import Citation, GenderSpecificity, GenotypeEffect
from snpedia_harvest.extraction.base import FreeTextAnnotations
from snpedia_harvest.utils.logging import get_logger, log_extraction_step

logger = get_logger(__name__)

CONTEXT_WINDOW = 100

RISK_ALLELE_PATTERN = re.compile(r"(?:risk allele|risk variant) is \(([^)]+)\)", re.IGNORECASE)
WIKI_LINK_PATTERN = re.compile(r"\[\[([^\]]+)\]\]")
RELATED_VARIANT_PATTERN = re.compile(r"^rs\d+$", re.IGNORECASE)
GENOTYPE_LINK_PATTERN = re.compile(r"\[\[rs\d+\(([^)]+)\)\]\]", re.IGNORECASE)
PMID_PATTERN = re.compile(r"\{\{\s*PMID\s*\|\s*(\d+)([^}]*)\}\}", re.IGNORECASE)
TITLE_KEY_PATTERN = re.compile(r"^\s*title\s*=\s*(.*)$", re.IGNORECASE | re.DOTALL)
MALE_PATTERN = re.compile(r"primarily seen only in males|x chromosome|x-linked", re.IGNORECASE)
FEMALE_PATTERN = re.compile(r"\bfemales\b", re.IGNORECASE)
HOMOZYGOUS_PATTERN = re.compile(r"homozygous", re.IGNORECASE)
P_VALUE_PATTERN = re.compile(
    r"\bp(?:\s*-?\s*value)?\s*(?:of|=|<|>|≤)\s*(?:\d+(?:\.\d+)?|\.\d+)(?:\s*(?:e|[x×]\s*10\^?)\s*[-−]?\s*\d+)?",
    re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class AnnotationRule:
    """A named free-text rule returning the annotation fields it found."""

    name: str
    apply: Callable[[str], dict[str, Any]]


def find_risk_allele(text: str) -> dict[str, Any]:
    match = RISK_ALLELE_PATTERN.search(text)
    return {"risk_allele": match.group(1)} if match else {}


def find_traits_and_related(text: str) -> dict[str, Any]:
    """Wiki links become lowercased traits; bare ``[[rs<digits>]]`` links become related variant ids."""
    traits: list[str] = []
    related: list[str] = []
    for match in WIKI_LINK_PATTERN.finditer(text):
        target = match.group(1).strip()
        if not target:
            continue
        if RELATED_VARIANT_PATTERN.match(target):
            if target not in related:
                related.append(target)
            continue
        trait = target.lower()
        if trait not in traits:
            traits.append(trait)
    return {"traits": tuple(traits), "related_variant_ids": tuple(related)}


def find_genotype_effects(text: str) -> dict[str, Any]:
    effects = []
    for match in GENOTYPE_LINK_PATTERN.finditer(text):
        start = max(0, match.start() - CONTEXT_WINDOW)
        end = min(len(text), match.end() + CONTEXT_WINDOW)
        effects.append(GenotypeEffect(genotype=match.group(1), effect=text[start:end].strip()))
    return {"genotype_effects": tuple(effects)}


def _pmid_title(trailing: str) -> str | None:
    """Title from ``|title=...`` if present, else the first non-empty pipe fragment."""
    fragments = [fragment.strip() for fragment in trailing.split("|")]
    for fragment in fragments:
        keyed = TITLE_KEY_PATTERN.match(fragment)
        if keyed:
            return keyed.group(1).strip() or None
    return next((fragment for fragment in fragments if fragment), None)


def find_pmid_citations(text: str) -> dict[str, Any]:
    citations = tuple(
        Citation(id=match.group(1), title=_pmid_title(match.group(2))) for match in PMID_PATTERN.finditer(text)
    )
    return {"citations": citations}


def find_gender_specificity(text: str) -> dict[str, Any]:
    gender = GenderSpecificity.MALE if MALE_PATTERN.search(text) else None
    if FEMALE_PATTERN.search(text) and HOMOZYGOUS_PATTERN.search(text):
        gender = GenderSpecificity.BOTH if gender else GenderSpecificity.FEMALE
    return {"gender_specific": gender} if gender else {}


def find_significance_notes(text: str) -> dict[str, Any]:
    notes = tuple(f"Statistical significance: {match.group(0).strip()}" for match in P_VALUE_PATTERN.finditer(text))
    return {"clinical_significance_notes": notes}


RULES: tuple[AnnotationRule, ...] = (
    AnnotationRule("risk_allele", find_risk_allele),
    AnnotationRule("traits", find_traits_and_related),
    AnnotationRule("genotype_effects", find_genotype_effects),
    AnnotationRule("pmid_citations", find_pmid_citations),
    AnnotationRule("gender_specificity", find_gender_specificity),
    AnnotationRule("significance_notes", find_significance_notes),
)


@log_extraction_step("annotate_free_text")
def annotate(wikitext: str) -> FreeTextAnnotations:
    """Apply every annotation rule to the page's raw wikitext.

    Args:
        wikitext: Raw page wikitext

    Returns:
        Everything the rules matched; absent matches leave fields empty
    """
    if not wikitext:
        return FreeTextAnnotations()

    fields: dict[str, Any] = {}
    for rule in RULES:
        found = rule.apply(wikitext)
        if found:
            logger.debug("Annotation rule applied", rule=rule.name, fields=sorted(found))
        fields.update(found)
    return FreeTextAnnotations(**fields)
