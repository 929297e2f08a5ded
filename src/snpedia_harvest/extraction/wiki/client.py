# ABOUTME: Async client for the SNPedia MediaWiki bots API
# ABOUTME: Fetches rendered HTML plus wikitext of variant pages and lists variant ids from Category:Is_a_snp

import re
from typing import Any

import httpx

from snpedia_harvest.config import get_config
from snpedia_harvest.extraction.base import ExtractionError, PageNotFoundError, VariantIdBatch, WikiPage
from snpedia_harvest.utils.logging import get_logger, log_api_call
from snpedia_harvest.utils.retry import fetch_retry

VARIANT_CATEGORY = "Category:Is_a_snp"
VARIANT_TITLE_PATTERN = re.compile(r"^(rs\d+|I\d+)$", re.IGNORECASE)


def _content(section: Any) -> str:
    """MediaWiki returns ``{"*": text}`` in format version 1 and a bare string in version 2."""
    if isinstance(section, dict):
        section = section.get("*")
    if not isinstance(section, str):
        raise ExtractionError("Parse response is missing page content")
    return section


class SNPediaClient:
    """Fetch collaborator for SNPedia, satisfying the PageFetcher protocol."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        api_url: str | None = None,
        max_attempts: int | None = None,
    ):
        config = get_config()
        self.api_url = api_url or config.snpedia_api_url
        self._owns_client = client is None
        self.http_client = client or httpx.AsyncClient(  # Allow for dependency injection
            headers={"User-Agent": config.user_agent},
            timeout=config.request_timeout,
        )
        self._get_json = fetch_retry(max_attempts=max_attempts or config.max_fetch_attempts)(self._request_json)
        self.logger = get_logger(__name__)

    async def __aenter__(self) -> "SNPediaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    async def _request_json(self, params: dict[str, str]) -> dict[str, Any]:
        response = await self.http_client.get(self.api_url, params=params)
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as e:
            raise ExtractionError(f"SNPedia returned a non-JSON response: {e}") from e
        if not isinstance(payload, dict):
            raise ExtractionError("SNPedia returned an unexpected payload")
        return payload

    @log_api_call("snpedia_parse")
    async def fetch_page(self, variant_id: str) -> WikiPage:
        """Fetch both renderings of a variant page.

        Raises:
            PageNotFoundError: If the API reports an error for the page (e.g. missingtitle)
            ExtractionError: If the payload lacks the parse section
        """
        payload = await self._get_json(
            {"action": "parse", "page": variant_id, "prop": "text|wikitext", "format": "json"}
        )

        error = payload.get("error")
        if error:
            code = error.get("code", "unknown") if isinstance(error, dict) else str(error)
            info = error.get("info", "") if isinstance(error, dict) else ""
            self.logger.info("SNPedia page not available", variant_id=variant_id, code=code, info=info)
            raise PageNotFoundError(f"No SNPedia page for {variant_id}: {code}")

        parse = payload.get("parse")
        if not isinstance(parse, dict):
            raise ExtractionError(f"Parse response for {variant_id} has no parse section")

        page = WikiPage(
            title=parse.get("title") or variant_id,
            page_id=parse.get("pageid"),
            html=_content(parse.get("text")),
            wikitext=_content(parse.get("wikitext")),
        )
        self.logger.debug("Fetched SNPedia page", variant_id=variant_id, title=page.title, html_length=len(page.html))
        return page

    @log_api_call("snpedia_category_members")
    async def list_variant_ids(self, continue_token: str | None = None) -> VariantIdBatch:
        """List one batch of variant ids from the SNP category, lowercased and de-duplicated."""
        params = {
            "action": "query",
            "list": "categorymembers",
            "cmtitle": VARIANT_CATEGORY,
            "cmlimit": "max",
            "format": "json",
        }
        if continue_token:
            params["cmcontinue"] = continue_token

        payload = await self._get_json(params)
        members = payload.get("query", {}).get("categorymembers")
        if not isinstance(members, list):
            raise ExtractionError("Category response has no categorymembers list")

        variant_ids: list[str] = []
        for member in members:
            title = member.get("title", "") if isinstance(member, dict) else ""
            if VARIANT_TITLE_PATTERN.match(title) and title.lower() not in variant_ids:
                variant_ids.append(title.lower())

        next_token = (payload.get("continue") or {}).get("cmcontinue") or (
            (payload.get("query-continue") or {}).get("categorymembers", {}).get("cmcontinue")
        )

        self.logger.info(
            "Listed SNPedia variants", member_count=len(members), variant_count=len(variant_ids), has_more=bool(next_token)
        )
        return VariantIdBatch(variant_ids=variant_ids, continue_token=next_token)
