from datetime import date

import httpx
import pytest

from conftest import summary
from wiki_models import ErrorMarker, PageDetail


@pytest.mark.asyncio
async def test_get_page_details_parses_summary(fake):
    fake.summaries["Python_(programming_language)"] = summary(
        "Python_(programming_language)", description="General-purpose programming language"
    )
    client = fake.client()

    detail = await client.get_page_details("en", "Python_(programming_language)")

    assert isinstance(detail, PageDetail)
    assert detail.title == "Python (programming language)"
    assert detail.description == "General-purpose programming language"
    assert detail.content_urls.desktop.page == "https://en.wikipedia.org/wiki/Python_(programming_language)"
    await client.close()


@pytest.mark.asyncio
async def test_get_page_details_percent_encodes_title(fake):
    fake.summaries["AC/DC"] = summary("AC/DC")
    client = fake.client()

    detail = await client.get_page_details("en", "AC/DC")

    assert detail.title == "AC/DC"
    raw_path = fake.requests[0].url.raw_path.decode("ascii")
    assert raw_path == "/api/rest_v1/page/summary/AC%2FDC"
    assert fake.requests[0].url.host == "en.wikipedia.org"
    await client.close()


@pytest.mark.asyncio
async def test_get_page_details_uses_language_host(fake):
    fake.summaries["Lisboa"] = summary("Lisboa")
    client = fake.client()

    await client.get_page_details("pt", "Lisboa")

    assert fake.requests[0].url.host == "pt.wikipedia.org"
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 500, 503])
async def test_get_page_details_http_error_is_marker(fake, status):
    fake.summaries["Broken"] = status
    client = fake.client()

    detail = await client.get_page_details("en", "Broken")

    assert detail == ErrorMarker(status=status)
    await client.close()


@pytest.mark.asyncio
async def test_get_page_details_network_error_is_marker(fake):
    fake.summaries["Offline"] = httpx.ConnectError("connection refused")
    client = fake.client()

    detail = await client.get_page_details("en", "Offline")

    assert isinstance(detail, ErrorMarker)
    assert detail.status is None
    assert "connection refused" in detail.message
    await client.close()


@pytest.mark.asyncio
async def test_get_page_details_malformed_body_is_marker(fake):
    fake.summaries["Garbled"] = httpx.Response(200, content=b"<html>oops</html>")
    fake.summaries["List"] = httpx.Response(200, json=["not", "an", "object"])
    client = fake.client()

    assert isinstance(await client.get_page_details("en", "Garbled"), ErrorMarker)
    assert isinstance(await client.get_page_details("en", "List"), ErrorMarker)
    await client.close()


@pytest.mark.asyncio
async def test_get_top_viewed_response_url(fake):
    fake.pageviews[date(2024, 3, 31)] = [{"article": "Python", "views": 10}]
    client = fake.client()

    response = await client.get_top_viewed_response("de", date(2024, 3, 31))

    assert response.status_code == 200
    assert str(fake.requests[0].url) == (
        "https://wikimedia.org/api/rest_v1/metrics/pageviews/top/de.wikipedia.org/all-access/2024/03/31"
    )
    await client.close()


SEARCH_PAYLOAD = {
    "query": {
        "pages": {
            "200": {
                "pageid": 200,
                "title": "Monty Python",
                "index": 2,
                "extract": "<p>British comedy troupe.</p>",
                "canonicalurl": "https://en.wikipedia.org/wiki/Monty_Python",
            },
            "100": {
                "pageid": 100,
                "title": "Python (programming language)",
                "index": 1,
                "extract": "",
                "pageprops": {"wikibase-shortdesc": "General-purpose programming language"},
                "terms": {"alias": ["Python language", "Python3"]},
                "thumbnail": {"source": "https://upload.wikimedia.org/thumb/python-logo.png"},
                "canonicalurl": "https://en.wikipedia.org/wiki/Python_(programming_language)",
            },
        }
    }
}


@pytest.mark.asyncio
async def test_search_maps_pages_in_rank_order(fake):
    fake.search_payload = SEARCH_PAYLOAD
    client = fake.client()

    result = await client.search("python", "en")

    assert result.status == "success"
    assert [a.title for a in result.data] == ["Python (programming language)", "Monty Python"]
    first, second = result.data
    assert first.index == 0
    assert first.text == "General-purpose programming language"
    assert first.tags == ["Python language", "Python3"]
    assert first.image == "https://upload.wikimedia.org/thumb/python-logo.png"
    assert second.text == "British comedy troupe."
    assert second.image == ""
    assert second.link == "https://en.wikipedia.org/wiki/Monty_Python"

    request = fake.requests[0]
    assert request.url.host == "en.wikipedia.org"
    assert request.url.params["gsrsearch"] == "python"
    assert request.url.params["generator"] == "search"
    await client.close()


@pytest.mark.asyncio
async def test_search_without_hits(fake):
    fake.search_payload = {"batchcomplete": ""}
    client = fake.client()

    result = await client.search("qwxzzy", "en")

    assert result.status == "no_results"
    assert result.data == []
    await client.close()


@pytest.mark.asyncio
async def test_search_empty_term_makes_no_request(fake):
    client = fake.client()

    result = await client.search("   ", "en")

    assert result.status == "error"
    assert fake.requests == []
    await client.close()


@pytest.mark.asyncio
async def test_search_http_error(fake):
    fake.search_payload = 502
    client = fake.client()

    result = await client.search("python", "en")

    assert result.status == "error"
    assert result.message == "HTTP 502"
    await client.close()


@pytest.mark.asyncio
async def test_search_api_error_payload(fake):
    fake.search_payload = {"error": {"code": "badvalue", "info": "Unrecognized value"}}
    client = fake.client()

    result = await client.search("python", "en")

    assert result.status == "error"
    assert result.message == "Unrecognized value"
    await client.close()


@pytest.mark.asyncio
async def test_search_tolerates_odd_optional_sections(fake):
    fake.search_payload = {
        "query": {
            "pages": {
                "1": {
                    "title": "Lisboa",
                    "index": 1,
                    "pageprops": [],
                    "terms": "alias",
                    "thumbnail": None,
                    "canonicalurl": "https://pt.wikipedia.org/wiki/Lisboa",
                },
                "2": {"title": "Porto", "index": "2", "extract": 42, "terms": {"alias": [3]}},
                "3": {"title": "Braga", "index": 3, "pageprops": {"wikibase-shortdesc": "Cidade"}},
            }
        }
    }
    client = fake.client()

    result = await client.search("cidade", "pt")

    assert result.status == "success"
    assert [a.title for a in result.data] == ["Lisboa", "Braga"]
    assert [a.index for a in result.data] == [0, 1]
    lisboa, braga = result.data
    assert lisboa.text == ""
    assert lisboa.tags == []
    assert lisboa.image == ""
    assert braga.text == "Cidade"
    await client.close()


@pytest.mark.asyncio
async def test_search_query_section_not_an_object(fake):
    fake.search_payload = {"query": ["pages"]}
    client = fake.client()

    result = await client.search("python", "en")

    assert result.status == "no_results"
    await client.close()
