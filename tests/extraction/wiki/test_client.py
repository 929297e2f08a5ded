# ABOUTME: Tests for the SNPedia MediaWiki API client
# ABOUTME: HTTP is mocked with pytest-httpx; covers page parsing, errors, retries and category listing

import httpx
import pytest

from snpedia_harvest.extraction.base import ExtractionError, PageNotFoundError
from snpedia_harvest.extraction.wiki.client import VARIANT_CATEGORY, SNPediaClient
from snpedia_harvest.utils.retry import FetchRateLimitError, configure_fetch_retry

API_URL = "https://bots.snpedia.com/api.php"


@pytest.fixture(autouse=True)
def no_rate_limit():
    configure_fetch_retry(0)
    yield
    configure_fetch_retry(1.0)


@pytest.fixture
def snpedia():
    return SNPediaClient(client=httpx.AsyncClient(), api_url=API_URL, max_attempts=1)


class TestFetchPage:
    @pytest.mark.asyncio
    async def test_parse_response_format_v1(self, snpedia, httpx_mock):
        httpx_mock.add_response(
            json={
                "parse": {
                    "title": "Rs1801133",
                    "pageid": 1234,
                    "text": {"*": "<p>rendered</p>"},
                    "wikitext": {"*": "{{rsnum|rsid=1801133}}"},
                }
            }
        )

        page = await snpedia.fetch_page("rs1801133")

        assert page.title == "Rs1801133"
        assert page.page_id == 1234
        assert page.html == "<p>rendered</p>"
        assert page.wikitext == "{{rsnum|rsid=1801133}}"

        request = httpx_mock.get_request()
        assert request.url.params["action"] == "parse"
        assert request.url.params["page"] == "rs1801133"
        assert request.url.params["prop"] == "text|wikitext"

    @pytest.mark.asyncio
    async def test_parse_response_format_v2(self, snpedia, httpx_mock):
        httpx_mock.add_response(json={"parse": {"title": "I3000001", "text": "<p>x</p>", "wikitext": "y"}})

        page = await snpedia.fetch_page("i3000001")

        assert page.page_id is None
        assert page.html == "<p>x</p>"
        assert page.wikitext == "y"

    @pytest.mark.asyncio
    async def test_missing_page(self, snpedia, httpx_mock):
        httpx_mock.add_response(json={"error": {"code": "missingtitle", "info": "The page does not exist."}})

        with pytest.raises(PageNotFoundError, match="missingtitle"):
            await snpedia.fetch_page("rs0")

    @pytest.mark.asyncio
    async def test_payload_without_parse_section(self, snpedia, httpx_mock):
        httpx_mock.add_response(json={"batchcomplete": ""})

        with pytest.raises(ExtractionError):
            await snpedia.fetch_page("rs1")

    @pytest.mark.asyncio
    async def test_non_json_response(self, snpedia, httpx_mock):
        httpx_mock.add_response(text="<html>maintenance</html>")

        with pytest.raises(ExtractionError, match="non-JSON"):
            await snpedia.fetch_page("rs1")

    @pytest.mark.asyncio
    async def test_http_error_status_propagates(self, snpedia, httpx_mock):
        httpx_mock.add_response(status_code=500)

        with pytest.raises(httpx.HTTPStatusError):
            await snpedia.fetch_page("rs1")

    @pytest.mark.asyncio
    async def test_rate_limit_error_after_attempts_exhausted(self, snpedia, httpx_mock):
        httpx_mock.add_response(status_code=429)

        with pytest.raises(FetchRateLimitError):
            await snpedia.fetch_page("rs1")

    @pytest.mark.asyncio
    async def test_rate_limit_retried(self, httpx_mock):
        snpedia = SNPediaClient(client=httpx.AsyncClient(), api_url=API_URL, max_attempts=2)
        httpx_mock.add_response(status_code=429)
        httpx_mock.add_response(json={"parse": {"title": "Rs1", "text": "<p/>", "wikitext": ""}})

        page = await snpedia.fetch_page("rs1")

        assert page.title == "Rs1"
        assert len(httpx_mock.get_requests()) == 2


class TestListVariantIds:
    @pytest.mark.asyncio
    async def test_filters_and_normalizes_titles(self, snpedia, httpx_mock):
        httpx_mock.add_response(
            json={
                "continue": {"cmcontinue": "page|RS2|42", "continue": "-||"},
                "query": {
                    "categorymembers": [
                        {"pageid": 1, "ns": 0, "title": "Rs1801133"},
                        {"pageid": 2, "ns": 0, "title": "I3000001"},
                        {"pageid": 3, "ns": 0, "title": "Rs1801133(A;A)"},
                        {"pageid": 4, "ns": 14, "title": "Category:Is a snp"},
                        {"pageid": 5, "ns": 0, "title": "rs1801133"},
                    ]
                },
            }
        )

        batch = await snpedia.list_variant_ids()

        assert batch.variant_ids == ["rs1801133", "i3000001"]
        assert batch.continue_token == "page|RS2|42"

        request = httpx_mock.get_request()
        assert request.url.params["list"] == "categorymembers"
        assert request.url.params["cmtitle"] == VARIANT_CATEGORY
        assert "cmcontinue" not in request.url.params

    @pytest.mark.asyncio
    async def test_passes_continue_token_and_reads_legacy_continuation(self, snpedia, httpx_mock):
        httpx_mock.add_response(
            json={
                "query-continue": {"categorymembers": {"cmcontinue": "next"}},
                "query": {"categorymembers": [{"title": "Rs7412"}]},
            }
        )

        batch = await snpedia.list_variant_ids("previous")

        assert batch.variant_ids == ["rs7412"]
        assert batch.continue_token == "next"
        assert httpx_mock.get_request().url.params["cmcontinue"] == "previous"

    @pytest.mark.asyncio
    async def test_last_batch_has_no_token(self, snpedia, httpx_mock):
        httpx_mock.add_response(json={"query": {"categorymembers": []}})

        batch = await snpedia.list_variant_ids()

        assert batch.variant_ids == []
        assert batch.continue_token is None

    @pytest.mark.asyncio
    async def test_malformed_listing(self, snpedia, httpx_mock):
        httpx_mock.add_response(json={"query": {}})

        with pytest.raises(ExtractionError):
            await snpedia.list_variant_ids()


class TestClientLifecycle:
    def test_default_client_sends_user_agent(self):
        snpedia = SNPediaClient()

        assert "snpedia-harvest" in snpedia.http_client.headers["User-Agent"]

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        custom_client = httpx.AsyncClient()

        async with SNPediaClient(client=custom_client) as snpedia:
            assert snpedia.http_client is custom_client

        assert not custom_client.is_closed
        await custom_client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self):
        snpedia = SNPediaClient()

        await snpedia.close()

        assert snpedia.http_client.is_closed
