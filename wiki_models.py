from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class FeaturedArticle(_Record):
    rank: int
    title: str
    text: str = ""
    link: str = "/"
    image: Optional[str] = None
    views: int
    views_formatted: str = Field(alias="viewsFormatted")


class FetchResult(_Record):
    status: Literal["success", "no_data", "error"]
    data: Optional[List[FeaturedArticle]] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, articles: List[FeaturedArticle]) -> "FetchResult":
        # An empty success is reported as no_data
        if not articles:
            return cls.no_data()
        return cls(status="success", data=list(articles))

    @classmethod
    def no_data(cls, message: Optional[str] = None) -> "FetchResult":
        return cls(status="no_data", message=message)

    @classmethod
    def error(cls, message: str) -> "FetchResult":
        return cls(status="error", message=message)


class PageViewItem(_Record):
    """One entry of the pageviews 'top' ranking, in source order."""

    article: str
    views: int = 0


class ResolvedDate(_Record):
    resolved: date
    pages: List[PageViewItem]


# --- Page summary payload ---

class Thumbnail(_Record):
    source: Optional[str] = None


class DesktopUrls(_Record):
    page: Optional[str] = None


class ContentUrls(_Record):
    desktop: Optional[DesktopUrls] = None


class PageDetail(_Record):
    title: Optional[str] = None
    thumbnail: Optional[Thumbnail] = None
    extract: Optional[str] = None
    description: Optional[str] = None
    content_urls: Optional[ContentUrls] = None
    canonicalurl: Optional[str] = None


class ErrorMarker(_Record):
    """Returned instead of a PageDetail when the summary lookup failed."""

    status: Optional[int] = None
    message: Optional[str] = None


# --- Search ---

class SearchArticle(_Record):
    index: int
    title: str
    text: str = ""
    tags: List[str] = Field(default_factory=list)
    link: str = "/"
    image: str = ""


class SearchResult(_Record):
    status: Literal["success", "no_results", "error"]
    data: List[SearchArticle] = Field(default_factory=list)
    message: Optional[str] = None
