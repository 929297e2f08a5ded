# ABOUTME: Structural extraction from rendered SNPedia page HTML using BeautifulSoup
# ABOUTME: Info tables, genotype tables, external links, PubMed citations, population chart data and ClinVar tables

import json
import re
from typing import Any

from bs4 import BeautifulSoup, Comment, Tag

from snpedia_harvest.core.models import (
    Citation,
    ClinicalInfo,
    ExternalLink,
    GenotypeEntry,
    PopulationData,
    RiskColor,
)
from snpedia_harvest.extraction.base import StructuralExtraction
from snpedia_harvest.extraction.wiki.values import parse_float, parse_frequency, parse_position
from snpedia_harvest.utils.logging import get_logger, log_extraction_step

logger = get_logger(__name__)

SUMMARY_BOX_MARKER = "#ffffc0"
RISK_COLOR_MARKERS = (
    ("#80ff80", RiskColor.GREEN),
    ("#ffffff", RiskColor.WHITE),
    ("#ff8080", RiskColor.RED),
)
GENOTYPE_TABLE_HEADERS = {"geno", "mag", "summary"}
INFO_LABELS = {"chromosome", "position", "gene", "gmaf", "orientation"}
MIN_SIBLING_TITLE_LENGTH = 10

RSID_PATTERN = re.compile(r"\brs(\d+)\b", re.IGNORECASE)
PUBMED_ID_PATTERN = re.compile(
    r"(?:pubmed\.ncbi\.nlm\.nih\.gov/|pubmed/|pmid[=:]|term=)(\d+)",
    re.IGNORECASE,
)
OMIM_ID_PATTERN = re.compile(r"omim(?:\.org/entry)?/(\d+)", re.IGNORECASE)
LABELS_PATTERN = re.compile(r"labels\s*=\s*(\[.*?\])", re.DOTALL)
SERIES_PATTERN = re.compile(r"series\s*=\s*(\[.*?\])\s*;", re.DOTALL)


class PopulationDataError(ValueError):
    """Raised internally when the embedded chart data cannot be used."""

    pass


def _own_rows(table: Tag) -> list[Tag]:
    """Rows whose nearest enclosing table is ``table``, so nested tables are not counted twice."""
    return [row for row in table.find_all("tr") if row.find_parent("table") is table]


def _cells(row: Tag) -> list[Tag]:
    return row.find_all(["td", "th"], recursive=False)


def _text(tag: Tag) -> str:
    return tag.get_text(separator=" ", strip=True)


def _two_column_rows(soup: BeautifulSoup) -> list[tuple[Tag, Tag]]:
    pairs = []
    for table in soup.find_all("table"):
        for row in _own_rows(table):
            cells = _cells(row)
            if len(cells) == 2:
                pairs.append((cells[0], cells[1]))
    return pairs


def _visible_strings(soup: BeautifulSoup):
    for string in soup.find_all(string=True):
        if isinstance(string, Comment):
            continue
        if string.parent is not None and string.parent.name in ("script", "style"):
            continue
        yield str(string)


def extract_basic_info(soup: BeautifulSoup) -> dict[str, Any]:
    """Labelled info rows, the summary box and the first rs id shown on the page."""
    info: dict[str, Any] = {}

    for label_cell, value_cell in _two_column_rows(soup):
        label = _text(label_cell).lower()
        if label not in INFO_LABELS:
            continue
        value = _text(value_cell)
        if label == "position":
            info["position"] = parse_position(value)
        elif label == "gmaf":
            info["gmaf"] = parse_frequency(value)
        elif label == "gene":
            link = value_cell.find("a")
            info["gene"] = (_text(link) if link is not None else "") or value or None
        else:
            info[label] = value or None

    for table in soup.find_all("table", style=True):
        if SUMMARY_BOX_MARKER in table["style"].lower():
            info["summary"] = _text(table) or None
            break

    for string in _visible_strings(soup):
        match = RSID_PATTERN.search(string)
        if match:
            info["rsid"] = f"rs{match.group(1)}"
            break

    return {key: value for key, value in info.items() if value is not None}


def _risk_color(cell: Tag) -> RiskColor:
    style = cell.get("style", "").lower()
    for marker, color in RISK_COLOR_MARKERS:
        if marker in style:
            return color
    return RiskColor.UNKNOWN


def extract_genotypes(soup: BeautifulSoup) -> tuple[GenotypeEntry, ...]:
    """Rows of every table whose header carries geno, mag and summary columns, in document order."""
    entries: list[GenotypeEntry] = []
    for table in soup.find_all("table"):
        rows = _own_rows(table)
        headers = {_text(th).lower() for row in rows for th in row.find_all("th", recursive=False)}
        if not GENOTYPE_TABLE_HEADERS <= headers:
            continue

        for row in rows:
            cells = row.find_all("td", recursive=False)
            if len(cells) < 3:
                continue
            genotype = re.sub(r"[()]", "", _text(cells[0]))
            magnitude = parse_float(_text(cells[1]))
            if not genotype or magnitude is None or magnitude < 0:
                logger.debug("Skipping genotype row", genotype=genotype, magnitude=_text(cells[1]))
                continue
            entries.append(
                GenotypeEntry(
                    genotype=genotype,
                    magnitude=magnitude,
                    summary=_text(cells[2]),
                    risk_color=_risk_color(cells[1]),
                )
            )
    return tuple(entries)


def extract_external_links(soup: BeautifulSoup) -> tuple[ExternalLink, ...]:
    links = []
    for name_cell, link_cell in _two_column_rows(soup):
        anchor = link_cell.find("a", href=True)
        if anchor is None:
            continue
        href = anchor["href"]
        if href.startswith(("http://", "https://")):
            links.append(ExternalLink(name=_text(name_cell), url=href))
    return tuple(links)


def _citation_title(anchor: Tag, pmid: str) -> str | None:
    text = _text(anchor)
    if text and text != pmid and not text.isdigit():
        return text
    parent = anchor.parent
    if parent is None:
        return None
    sibling_text = _text(parent).replace(text, "", 1).strip() if text else _text(parent)
    return sibling_text if len(sibling_text) > MIN_SIBLING_TITLE_LENGTH else None


def extract_citations(soup: BeautifulSoup) -> tuple[Citation, ...]:
    """PubMed links; a repeated id keeps its first entry and only backfills a missing title."""
    titles: dict[str, str | None] = {}
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if "pubmed" not in href.lower() and "pmid" not in href.lower():
            continue
        match = PUBMED_ID_PATTERN.search(href)
        if not match:
            continue
        pmid = match.group(1)
        title = _citation_title(anchor, pmid)
        if pmid not in titles:
            titles[pmid] = title
        elif titles[pmid] is None and title:
            titles[pmid] = title
    return tuple(Citation(id=pmid, title=title) for pmid, title in titles.items())


def _point_value(point: Any) -> float:
    if isinstance(point, dict):
        point = point.get("value")
    if isinstance(point, bool):
        raise PopulationDataError("boolean data point")
    if isinstance(point, (int, float)):
        value = float(point)
    elif isinstance(point, str) and parse_float(point) is not None:
        value = float(point)
    else:
        raise PopulationDataError(f"non-numeric data point: {point!r}")
    if not 0.0 <= value <= 100.0:
        raise PopulationDataError(f"data point out of range: {value}")
    return value


def _series_points(series: Any) -> list[Any]:
    if isinstance(series, dict):
        series = series.get("data")
    if not isinstance(series, list):
        raise PopulationDataError("series without data")
    return series


def parse_population_script(script: str) -> PopulationData | None:
    """Build population frequencies from the chart's ``labels`` and ``series`` literals.

    Each series carries one point per label and becomes the ``geno<n>`` key of
    every population. A series with any value above 1 is read as percentages.
    Any malformed piece discards the whole structure.
    """
    labels_match = LABELS_PATTERN.search(script)
    series_match = SERIES_PATTERN.search(script)
    if not labels_match or not series_match:
        return None

    try:
        labels = json.loads(labels_match.group(1))
        all_series = json.loads(series_match.group(1))
        if not labels or not all(isinstance(label, str) for label in labels):
            raise PopulationDataError("labels must be a non-empty list of strings")
        if not isinstance(all_series, list) or not all_series:
            raise PopulationDataError("series must be a non-empty list")

        frequencies: dict[str, dict[str, float]] = {label: {} for label in labels}
        for series_index, series in enumerate(all_series, start=1):
            points = _series_points(series)
            if len(points) < len(labels):
                raise PopulationDataError(f"series {series_index} is missing data points")
            values = [_point_value(point) for point in points[: len(labels)]]
            if any(value > 1.0 for value in values):
                values = [value / 100.0 for value in values]
            for label, value in zip(labels, values, strict=True):
                frequencies[label][f"geno{series_index}"] = value
    except (json.JSONDecodeError, PopulationDataError) as e:
        logger.debug("Discarding population data", error=str(e))
        return None

    return PopulationData(populations=labels, frequencies=frequencies)


def extract_population_data(soup: BeautifulSoup) -> PopulationData | None:
    script = "\n".join(tag.string or "" for tag in soup.find_all("script"))
    return parse_population_script(script) if script.strip() else None


def extract_clinical_info(soup: BeautifulSoup) -> ClinicalInfo | None:
    """Significance and disease rows of ClinVar tables, plus the first OMIM id linked anywhere."""
    fields: dict[str, str] = {}
    for table in soup.find_all("table"):
        rows = _own_rows(table)
        if not any("clinvar" in _text(th).lower() for row in rows for th in row.find_all("th", recursive=False)):
            continue
        for row in rows:
            cells = _cells(row)
            if len(cells) != 2:
                continue
            key = _text(cells[0]).lower()
            value = _text(cells[1])
            if key in ("significance", "disease") and value:
                fields[key] = value

    for anchor in soup.find_all("a", href=True):
        match = OMIM_ID_PATTERN.search(anchor["href"])
        if match:
            fields["omim_id"] = match.group(1)
            break

    return ClinicalInfo(**fields) if fields else None


@log_extraction_step("extract_structural")
def extract_structural(html: str) -> StructuralExtraction:
    """Run every structural sub-extraction over one rendered page."""
    if not html or not html.strip():
        return StructuralExtraction()

    soup = BeautifulSoup(html, "lxml")
    return StructuralExtraction(
        **extract_basic_info(soup),
        genotypes=extract_genotypes(soup),
        external_links=extract_external_links(soup),
        citations=extract_citations(soup),
        population_data=extract_population_data(soup),
        clinical_info=extract_clinical_info(soup),
    )
