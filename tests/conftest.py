from datetime import date
from urllib.parse import unquote

import httpx
import pytest

from wiki_cache import FeaturedArticlesCache, MemoryStore
from wiki_client import WikiClient

SUMMARY_PREFIX = "/api/rest_v1/page/summary/"
PAGEVIEWS_PREFIX = "/api/rest_v1/metrics/pageviews/top/"


def summary(title, **extra):
    payload = {
        "title": title.replace("_", " "),
        "extract": f"{title} extract",
        "thumbnail": {"source": f"https://upload.wikimedia.org/wikipedia/commons/thumb/a/ab/{title}.jpg/320px-{title}.jpg"},
        "content_urls": {"desktop": {"page": f"https://en.wikipedia.org/wiki/{title}"}},
    }
    payload.update(extra)
    return payload


def ranking(*titles, views=1000):
    return [{"article": t, "views": views - i, "rank": i + 1} for i, t in enumerate(titles)]


class FakeWikimedia:
    """
    Routes requests to canned pageviews rankings and page summaries.

    Values may be a payload, an int status code, or an exception to raise.
    Unknown dates and titles answer 404.
    """

    def __init__(self):
        self.pageviews = {}
        self.summaries = {}
        self.search_payload = {}
        self.requests = []

    @property
    def pageview_dates(self):
        return [self._pageviews_date(r) for r in self.requests if self._pageviews_date(r)]

    @property
    def summary_titles(self):
        return [self._summary_title(r) for r in self.requests if self._summary_title(r)]

    @staticmethod
    def _raw_path(request):
        return request.url.raw_path.decode("ascii").split("?")[0]

    def _pageviews_date(self, request):
        path = self._raw_path(request)
        if not path.startswith(PAGEVIEWS_PREFIX):
            return None
        year, month, day = path.rstrip("/").split("/")[-3:]
        return date(int(year), int(month), int(day))

    def _summary_title(self, request):
        path = self._raw_path(request)
        if not path.startswith(SUMMARY_PREFIX):
            return None
        return unquote(path[len(SUMMARY_PREFIX):])

    @staticmethod
    def _respond(value, wrap):
        if value is None:
            return httpx.Response(404, json={"title": "Not found."})
        if isinstance(value, Exception):
            raise value
        if isinstance(value, int):
            return httpx.Response(value, json={"title": "Error"})
        if isinstance(value, httpx.Response):
            return value
        return httpx.Response(200, json=wrap(value))

    def handler(self, request):
        self.requests.append(request)

        day = self._pageviews_date(request)
        if day is not None:
            return self._respond(
                self.pageviews.get(day),
                lambda articles: {"items": [{"project": "en.wikipedia", "articles": articles}]},
            )

        title = self._summary_title(request)
        if title is not None:
            return self._respond(self.summaries.get(title), lambda payload: payload)

        if request.url.path == "/w/api.php":
            return self._respond(self.search_payload, lambda payload: payload)

        return httpx.Response(404)

    def client(self):
        return WikiClient(client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)))


@pytest.fixture
def fake():
    return FakeWikimedia()


@pytest.fixture
def cache():
    return FeaturedArticlesCache(MemoryStore())
