import httpx
import logging
from datetime import date
from typing import Dict, List, Optional, Union
from urllib.parse import quote

from pydantic import ValidationError

import wiki_settings
from wiki_models import ErrorMarker, PageDetail, SearchArticle, SearchResult
from wiki_utils import strip_html_tags

logger = logging.getLogger(__name__)


class WikiClient:
    """Thin async wrapper around the Wikipedia REST/Action APIs and Wikimedia pageviews."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = wiki_settings.REQUEST_TIMEOUT):
        self.client = client or httpx.AsyncClient(headers={
            "User-Agent": wiki_settings.USER_AGENT
        }, timeout=timeout)

    async def get_page_details(self, language: str, title: str) -> Union[PageDetail, ErrorMarker]:
        """
        Fetches the REST summary of a single page.

        Never raises: non-2xx responses, network failures and malformed bodies
        come back as an ErrorMarker so the caller can skip the page.
        """
        url = wiki_settings.SUMMARY_URL.format(lang=language, page=quote(title, safe=""))

        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch page details for {title}: {e}")
            return ErrorMarker(message=str(e) or type(e).__name__)

        if not response.is_success:
            logger.warning(f"Failed to fetch page details for {title}: {response.status_code}")
            return ErrorMarker(status=response.status_code)

        try:
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            return PageDetail.model_validate(data)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Malformed page details for {title}: {e}")
            return ErrorMarker(status=response.status_code, message=str(e))

    async def get_top_viewed_response(self, language: str, day: date) -> httpx.Response:
        """
        Requests the most viewed pages of `day`.

        The raw response is returned so the caller can tell "not aggregated yet"
        (404) apart from real failures. Network errors propagate as httpx.HTTPError.
        """
        url = wiki_settings.PAGEVIEWS_TOP_URL.format(
            lang=language,
            year=day.strftime("%Y"),
            month=day.strftime("%m"),
            day=day.strftime("%d"),
        )
        return await self.client.get(url)

    async def search(self, term: str, language: str) -> SearchResult:
        """
        Full-text search over one language edition. One request, no caching.
        """
        if not term or not term.strip():
            return SearchResult(status="error", message="Search term cannot be empty")

        params = {"gsrsearch": term.strip(), **wiki_settings.SEARCH_PARAMS}

        try:
            response = await self.client.get(wiki_settings.SEARCH_URL.format(lang=language), params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Search API error: HTTP {e.response.status_code}")
            return SearchResult(status="error", message=f"HTTP {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Search API error: {e}")
            return SearchResult(status="error", message=str(e) or type(e).__name__)

        if not isinstance(data, dict):
            logger.error(f"Search API returned an unexpected payload for {term!r}")
            return SearchResult(status="error", message="Unexpected search response")

        if "error" in data:
            info = data["error"].get("info", "Unknown search error") if isinstance(data["error"], dict) else str(data["error"])
            logger.warning(f"Search API returned an error for {term!r}: {info}")
            return SearchResult(status="error", message=info)

        articles = self._parse_search_pages(_as_dict(_as_dict(data.get("query")).get("pages")))
        if not articles:
            return SearchResult(status="no_results")
        return SearchResult(status="success", data=articles)

    @staticmethod
    def _parse_search_pages(pages: Dict) -> List[SearchArticle]:
        # The generator returns pages keyed by pageid; "index" holds the search rank
        ordered = sorted(
            (page for page in pages.values() if isinstance(page, dict) and page.get("title")),
            key=lambda page: page["index"] if isinstance(page.get("index"), int) else 0,
        )

        results = []
        for page in ordered:
            extract = page.get("extract")
            shortdesc = _as_dict(page.get("pageprops")).get("wikibase-shortdesc")
            text = strip_html_tags(extract if isinstance(extract, str) else None) or (
                shortdesc if isinstance(shortdesc, str) else ""
            )
            aliases = _as_dict(page.get("terms")).get("alias")
            try:
                results.append(SearchArticle(
                    index=len(results),
                    title=page["title"],
                    text=text,
                    tags=aliases if isinstance(aliases, list) else [],
                    link=page.get("canonicalurl") or "/",
                    image=_as_dict(page.get("thumbnail")).get("source") or "",
                ))
            except ValidationError as e:
                logger.warning(f"Skipping malformed search result {page.get('title')!r}: {e}")
        return results

    async def close(self):
        await self.client.aclose()


def _as_dict(value) -> Dict:
    # Optional sections of the search payload are only trusted when they are objects
    return value if isinstance(value, dict) else {}
