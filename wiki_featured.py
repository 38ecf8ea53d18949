import asyncio
import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple, Union

import httpx

import wiki_settings
from wiki_cache import FeaturedArticlesCache
from wiki_client import WikiClient
from wiki_errors import NoDataForDate, TransportError
from wiki_models import FeaturedArticle, FetchResult, PageDetail, PageViewItem, ResolvedDate
from wiki_utils import (
    BannedPageFilter,
    Classification,
    classify,
    classify_pageviews,
    extract_article_text,
    extract_article_url,
    extract_image_url,
    format_view_count,
    normalize_date,
    normalize_image_url,
    previous_day,
)

logger = logging.getLogger(__name__)


def parse_ranked_pages(data) -> List[PageViewItem]:
    """Pulls the ranked {article, views} list out of a pageviews 'top' payload."""
    if not isinstance(data, dict):
        raise ValueError("pageviews payload is not an object")

    items = data.get("items") or []
    if not items:
        return []
    if not isinstance(items[0], dict):
        raise ValueError("pageviews item is not an object")

    articles = items[0].get("articles") or []
    pages = []
    for entry in articles:
        if isinstance(entry, dict) and entry.get("article"):
            pages.append(PageViewItem(article=entry["article"], views=int(entry.get("views") or 0)))
    return pages


class FeaturedDateResolver:
    """
    Walks back one calendar day at a time until the pageviews aggregation
    has data, giving up after `max_retries` steps.
    """

    def __init__(self, client: WikiClient, max_retries: int = wiki_settings.MAX_RETRIES,
                 retry_backoff: float = wiki_settings.RETRY_BACKOFF):
        self.client = client
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff

    async def resolve(self, language: str, start: date) -> ResolvedDate:
        """
        Raises NoDataForDate once the retry budget is spent and TransportError
        on any failure other than "not aggregated yet".
        """
        day = start
        attempts = 0

        while True:
            try:
                response = await self.client.get_top_viewed_response(language, day)
            except httpx.HTTPError as e:
                logger.error(f"Featured posts fetch failed for {day}: {e}")
                raise TransportError(str(e) or type(e).__name__) from e

            classification = classify_pageviews(response)
            if classification is Classification.TRANSPORT_ERROR:
                logger.error(f"Featured posts fetch failed for {day}: HTTP {response.status_code}")
                raise TransportError(f"HTTP {response.status_code}: {response.reason_phrase}", response.status_code)

            pages: List[PageViewItem] = []
            if classification is Classification.OK:
                try:
                    pages = parse_ranked_pages(response.json())
                except ValueError as e:
                    logger.error(f"Malformed pageviews payload for {day}: {e}")
                    raise TransportError(f"Malformed pageviews payload: {e}", response.status_code) from e

                if pages:
                    return ResolvedDate(resolved=day, pages=pages)

            if attempts >= self.max_retries:
                logger.warning(f"Max retries reached for {start}, giving up at {day}")
                raise NoDataForDate(start, attempts)

            delay = self.retry_backoff * (1 + attempts)
            logger.info(f"No top viewed data for {day}, trying the day before in {delay:.1f}s")
            await asyncio.sleep(delay)
            day = previous_day(day)
            attempts += 1


class ArticleEnricher:
    """Turns a bare pageviews ranking into ranked, fully described articles."""

    def __init__(self, client: WikiClient, banned: BannedPageFilter,
                 image_width: int = wiki_settings.IMAGE_WIDTH):
        self.client = client
        self.banned = banned
        self.image_width = image_width

    async def enrich(self, language: str, ranked_pages: Sequence[PageViewItem],
                     max_articles: int = wiki_settings.MAX_ARTICLES) -> List[FeaturedArticle]:
        candidates = [page for page in ranked_pages[:max_articles] if self.banned.is_allowed(page.article)]
        if not candidates:
            return []

        # Settle every lookup; one slow or failing page must not sink the others
        details = await asyncio.gather(
            *(self.client.get_page_details(language, page.article) for page in candidates),
            return_exceptions=True,
        )

        articles = []
        for page, detail in zip(candidates, details):
            if isinstance(detail, BaseException):
                logger.warning(f"Failed to fetch details for article {page.article}: {detail}")
                continue

            classification = classify(detail)
            if classification is not Classification.OK:
                logger.warning(f"Skipping article {page.article}: {classification.value}")
                continue

            articles.append(self._build_article(len(articles) + 1, page, detail))

        return articles

    def _build_article(self, rank: int, page: PageViewItem, detail: PageDetail) -> FeaturedArticle:
        image = extract_image_url(detail)
        return FeaturedArticle(
            rank=rank,
            title=detail.title,
            text=extract_article_text(detail),
            link=extract_article_url(detail),
            image=normalize_image_url(image, self.image_width) if image else None,
            views=page.views,
            views_formatted=format_view_count(page.views),
        )


class FeaturedArticlesService:
    """
    Entry point for "trending articles for a date".

    fetch() always returns a FetchResult; concurrent calls for the same
    (language, date) share one in-flight resolution.
    """

    def __init__(self, client: WikiClient, cache: FeaturedArticlesCache,
                 banned: Optional[BannedPageFilter] = None,
                 max_retries: int = wiki_settings.MAX_RETRIES,
                 retry_backoff: float = wiki_settings.RETRY_BACKOFF,
                 max_articles: int = wiki_settings.MAX_ARTICLES,
                 image_width: int = wiki_settings.IMAGE_WIDTH):
        self.cache = cache
        self.max_articles = max_articles
        self.resolver = FeaturedDateResolver(client, max_retries=max_retries, retry_backoff=retry_backoff)
        self.enricher = ArticleEnricher(
            client,
            banned or BannedPageFilter(wiki_settings.load_banned_pages()),
            image_width=image_width,
        )
        self._in_flight: Dict[Tuple[str, date], asyncio.Task] = {}

    async def fetch(self, requested: Union[date, datetime, str], language: str) -> FetchResult:
        try:
            day = normalize_date(requested)
        except (TypeError, ValueError) as e:
            return FetchResult.error(f"Invalid date {requested!r}: {e}")

        key = (language, day)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch(day, language))
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))
        else:
            logger.info(f"Joining in-flight resolution for {language}:{day}")

        # Shielded so one abandoned caller does not cancel the shared resolution
        return await asyncio.shield(task)

    async def _fetch(self, day: date, language: str) -> FetchResult:
        try:
            return await self._resolve(day, language)
        except Exception as e:
            logger.error(f"Featured articles fetch failed for {language}:{day}: {e}")
            return FetchResult.error(str(e) or type(e).__name__)

    async def _resolve(self, day: date, language: str) -> FetchResult:
        cached = self.cache.get(language, day)
        if cached:
            logger.info(f"Cache hit for {language}:{day}")
            return FetchResult.success(cached)

        try:
            resolved = await self.resolver.resolve(language, day)
        except NoDataForDate as e:
            return FetchResult.no_data(str(e))
        except TransportError as e:
            return FetchResult.error(str(e))

        articles = await self.enricher.enrich(language, resolved.pages, self.max_articles)
        if not articles:
            return FetchResult.no_data("No articles found")

        if resolved.resolved != day:
            logger.info(f"Featured articles for {language}:{day} resolved to {resolved.resolved}")

        # Keyed by the requested day, not the one that actually had data
        self.cache.put(language, day, articles)
        return FetchResult.success(articles)
