import enum
import logging
import re
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional, Sequence, Union

import httpx

from wiki_models import ErrorMarker, PageDetail

logger = logging.getLogger(__name__)

_WIDTH_MARKER = re.compile(r"(\d+)px-")
_HTML_TAG = re.compile(r"<[^>]+>")


def normalize_image_url(url: Optional[str], target_width: int = 400) -> Optional[str]:
    """
    Rewrites the width token of a Wikimedia thumbnail URL.

    .../thumb/a/ab/Foo.jpg/320px-Foo.jpg -> .../thumb/a/ab/Foo.jpg/400px-Foo.jpg

    URLs without a width marker come back unchanged.
    """
    if not url:
        return url

    try:
        if "px-" not in url:
            return url

        prefix, sep, filename = url.rpartition("/")
        match = _WIDTH_MARKER.search(filename)
        if not match:
            return url

        new_filename = f"{filename[:match.start()]}{target_width}px-{filename[match.end():]}"
        return f"{prefix}{sep}{new_filename}"
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Failed to normalize image URL {url!r}: {e}")
        return url


class Classification(enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    TRANSPORT_ERROR = "transport_error"


def classify(response: Union[PageDetail, ErrorMarker, None]) -> Classification:
    """Decides whether a page summary lookup produced usable data."""
    if response is None:
        return Classification.NOT_FOUND

    if isinstance(response, ErrorMarker):
        if response.status == 404:
            return Classification.NOT_FOUND
        return Classification.TRANSPORT_ERROR

    if not response.title or "not found" in response.title.lower():
        return Classification.NOT_FOUND

    return Classification.OK


def classify_pageviews(response: httpx.Response) -> Classification:
    # 404 is how the aggregation service says "not published yet"
    if response.status_code == 404:
        return Classification.NOT_FOUND
    if not response.is_success:
        return Classification.TRANSPORT_ERROR
    return Classification.OK


class BannedPageFilter:
    """
    Drops meta/non-article pages from the trending ranking.

    Entries ending in ":" are namespaces and ban every title under them.
    A trailing "*" turns any other entry into a prefix ("Portal:Current_*").
    Everything else bans exactly that title.
    """

    def __init__(self, denylist: Iterable[str]):
        prefixes, titles = [], set()
        for entry in denylist:
            if entry.endswith("*"):
                entry = entry[:-1]
                if entry:
                    prefixes.append(entry)
            elif entry.endswith(":"):
                prefixes.append(entry)
            elif entry:
                titles.add(entry)
        self.prefixes = tuple(prefixes)
        self.titles = frozenset(titles)

    def is_allowed(self, title: Optional[str]) -> bool:
        if not title:
            return False
        return title not in self.titles and not title.startswith(self.prefixes)


# Ordered extraction strategies; the first one returning a value wins.

def _extract(detail: PageDetail) -> Optional[str]:
    return detail.extract


def _description(detail: PageDetail) -> Optional[str]:
    return detail.description


def _desktop_url(detail: PageDetail) -> Optional[str]:
    if detail.content_urls and detail.content_urls.desktop:
        return detail.content_urls.desktop.page
    return None


def _canonical_url(detail: PageDetail) -> Optional[str]:
    return detail.canonicalurl


def _thumbnail(detail: PageDetail) -> Optional[str]:
    return detail.thumbnail.source if detail.thumbnail else None


TEXT_STRATEGIES: Sequence[Callable[[PageDetail], Optional[str]]] = (_extract, _description)
LINK_STRATEGIES: Sequence[Callable[[PageDetail], Optional[str]]] = (_desktop_url, _canonical_url)
IMAGE_STRATEGIES: Sequence[Callable[[PageDetail], Optional[str]]] = (_thumbnail,)


def first_present(detail: PageDetail, strategies: Sequence[Callable], default=None):
    for strategy in strategies:
        value = strategy(detail)
        if value:
            return value
    return default


def extract_article_text(detail: PageDetail) -> str:
    return first_present(detail, TEXT_STRATEGIES, "")


def extract_article_url(detail: PageDetail) -> str:
    return first_present(detail, LINK_STRATEGIES, "/")


def extract_image_url(detail: PageDetail) -> Optional[str]:
    return first_present(detail, IMAGE_STRATEGIES)


def format_view_count(views) -> str:
    """1000 -> '1,000'; anything that isn't an int renders as '0'."""
    if not isinstance(views, int) or isinstance(views, bool):
        return "0"
    return f"{views:,}"


def strip_html_tags(text: Optional[str]) -> str:
    if not text:
        return ""
    return _HTML_TAG.sub("", text).strip()


def normalize_date(value: Union[date, datetime, str]) -> date:
    """Reduces a date, datetime or ISO string to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value).date()


def previous_day(day: date) -> date:
    return day - timedelta(days=1)


def date_key(day: date) -> str:
    return day.strftime("%Y-%m-%d")
