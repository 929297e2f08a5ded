# ABOUTME: Wikitext template extraction using wikitextparser
# ABOUTME: Reads rsnum, PMID, PMID Auto, ClinVar and omim invocations into a TemplateExtraction

import re

import wikitextparser as wtp

from snpedia_harvest.core.models import Citation
from snpedia_harvest.extraction.base import TemplateExtraction
from snpedia_harvest.extraction.wiki.values import canonical_variant_id, parse_frequency, parse_position
from snpedia_harvest.utils.logging import get_logger, log_extraction_step

logger = get_logger(__name__)

PRIMARY_TEMPLATE = "rsnum"
MAX_TEMPLATE_GENOTYPES = 5

# Recognised rsnum keys, compared after folding case, spaces and underscores
RSNUM_FIELDS = {
    "rsid": "rsid",
    "gene": "gene",
    "chromosome": "chromosome",
    "position": "position",
    "summary": "summary",
    "gmaf": "gmaf",
    "orientation": "orientation",
    "referenceallele": "reference_allele",
    "assembly": "assembly",
    "dbsnpbuild": "dbsnp_build",
}

_PMID = re.compile(r"^\d+$")


def normalize_template_name(name: str) -> str:
    """Fold case, underscores and whitespace runs: 'PMID_Auto' and ' pmid  auto' both give 'pmid auto'."""
    return " ".join(name.replace("_", " ").split()).lower()


def _schema_key(key: str) -> str:
    return re.sub(r"[\s_]", "", key).lower()


def extract_templates(wikitext: str, template_name: str) -> list[dict[str, str]]:
    """Return the arguments of every invocation of ``template_name``.

    Positional arguments are keyed "1", "2", ...; values are stripped and keep
    any nested templates verbatim. Unbalanced or unknown invocations simply do
    not appear in the result.

    Args:
        wikitext: Raw page wikitext
        template_name: Template to look for, matched case-insensitively

    Returns:
        One mapping per invocation, in document order
    """
    if not wikitext:
        return []

    wanted = normalize_template_name(template_name)
    try:
        templates = wtp.parse(wikitext).templates
    except Exception as e:
        logger.debug("Wikitext could not be parsed", template=template_name, error=str(e))
        return []

    return [
        {argument.name.strip(): argument.value.strip() for argument in template.arguments}
        for template in templates
        if normalize_template_name(template.name) == wanted
    ]


def extract_template(wikitext: str, template_name: str) -> dict[str, str] | None:
    """Return the arguments of the first invocation of ``template_name``, if any."""
    matches = extract_templates(wikitext, template_name)
    return matches[0] if matches else None


def _citation_from_arguments(arguments: dict[str, str]) -> Citation | None:
    """Build a citation from {{PMID|123|title=...}} or {{PMID Auto|PMID=123|Title=...}} arguments."""
    fields = {_schema_key(key): value for key, value in arguments.items()}
    pmid = fields.get("pmid") or fields.get("1", "")
    if not _PMID.match(pmid):
        return None
    title = fields.get("title") or fields.get("2") or None
    return Citation(id=pmid, title=title)


def _citations(wikitext: str, template_name: str) -> tuple[Citation, ...]:
    citations = []
    for arguments in extract_templates(wikitext, template_name):
        citation = _citation_from_arguments(arguments)
        if citation is None:
            logger.debug("Skipping citation template without numeric PMID", template=template_name)
            continue
        citations.append(citation)
    return tuple(citations)


def _read_rsnum(arguments: dict[str, str]) -> dict[str, object]:
    """Map rsnum arguments onto TemplateExtraction fields through the recognised-key schema."""
    fields = {_schema_key(key): value for key, value in arguments.items()}
    raw = {target: fields[key] for key, target in RSNUM_FIELDS.items() if fields.get(key)}

    values: dict[str, object] = {
        name: raw[name]
        for name in ("gene", "chromosome", "summary", "orientation", "reference_allele", "assembly", "dbsnp_build")
        if name in raw
    }
    values["rsid"] = canonical_variant_id(raw.get("rsid"))
    values["position"] = parse_position(raw.get("position"))
    values["gmaf"] = parse_frequency(raw.get("gmaf"))

    genotypes = []
    for index in range(1, MAX_TEMPLATE_GENOTYPES + 1):
        genotype = fields.get(f"geno{index}")
        if genotype:
            genotypes.append(genotype)
    values["template_genotypes"] = tuple(genotypes)

    return values


@log_extraction_step("parse_templates")
def parse_templates(wikitext: str) -> TemplateExtraction:
    """Read the SNPedia templates of a page into a TemplateExtraction."""
    rsnum = extract_template(wikitext, PRIMARY_TEMPLATE)
    values = _read_rsnum(rsnum) if rsnum is not None else {}

    return TemplateExtraction(
        found=rsnum is not None,
        auto_citations=_citations(wikitext, "PMID Auto"),
        pmid_citations=_citations(wikitext, "PMID"),
        clinvar=extract_template(wikitext, "ClinVar"),
        omim=extract_template(wikitext, "omim"),
        **values,
    )
