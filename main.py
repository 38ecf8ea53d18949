from fastapi import FastAPI, HTTPException, Query
from wiki_cache import FeaturedArticlesCache, FileStore
from wiki_client import WikiClient
from wiki_featured import FeaturedArticlesService
from wiki_models import FetchResult, SearchResult
from datetime import date
from typing import Optional
import logging
import wiki_settings

# Configure logging
logging.basicConfig(level=wiki_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="WikiTrends")

# Shared client and services
wiki_client = WikiClient()
featured_cache = FeaturedArticlesCache(FileStore(wiki_settings.CACHE_DIR, wiki_settings.CACHE_MAX_BYTES))
featured_service = FeaturedArticlesService(wiki_client, featured_cache)


def _check_language(lang: str) -> str:
    if lang not in wiki_settings.supported_language_codes():
        raise HTTPException(status_code=400, detail=f"Unsupported language: {lang}")
    return lang

@app.on_event("shutdown")
async def shutdown_event():
    await wiki_client.close()

@app.get("/api/featured", response_model=FetchResult, response_model_exclude_none=True)
async def featured(requested_date: Optional[date] = Query(None, alias="date"), lang: str = wiki_settings.DEFAULT_LANGUAGE):
    """
    Get the most viewed articles for a date (defaults to today).
    Falls back to earlier days while the pageviews data is not published yet.
    """
    language = _check_language(lang)
    requested = requested_date or today()
    return await featured_service.fetch(requested, language)

@app.get("/api/search", response_model=SearchResult, response_model_exclude_none=True)
async def search(q: str = Query(..., min_length=1), lang: str = wiki_settings.DEFAULT_LANGUAGE):
    """
    Full-text search in one language edition.
    """
    language = _check_language(lang)
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search term cannot be empty")
    return await wiki_client.search(q, language)

@app.get("/api/languages")
async def languages():
    return {"languages": wiki_settings.SUPPORTED_LANGUAGES, "default": wiki_settings.DEFAULT_LANGUAGE}

@app.delete("/api/cache")
async def clear_cache():
    """
    Drop every cached featured articles entry.
    """
    cleared = featured_cache.clear()
    logger.info(f"Cleared {cleared} featured cache entries")
    return {"cleared": cleared}


def today() -> date:
    return date.today()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
