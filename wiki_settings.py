import os
from typing import List

from dotenv import load_dotenv

# Local .env overrides for development
load_dotenv()

# --- HTTP ---
USER_AGENT = os.getenv(
    "WIKITRENDS_USER_AGENT",
    "WikiTrends/1.0 (https://github.com/yourusername/wikitrends; wikitrends@example.com)",
)
REQUEST_TIMEOUT = float(os.getenv("WIKITRENDS_REQUEST_TIMEOUT", "10"))

# --- Endpoints ({lang} is filled in per request) ---
SEARCH_URL = "https://{lang}.wikipedia.org/w/api.php"
SUMMARY_URL = "https://{lang}.wikipedia.org/api/rest_v1/page/summary/{page}"
PAGEVIEWS_TOP_URL = (
    "https://wikimedia.org/api/rest_v1/metrics/pageviews/top/"
    "{lang}.wikipedia.org/all-access/{year}/{month}/{day}"
)

SEARCH_PARAMS = {
    "format": "json",
    "action": "query",
    "generator": "search",
    "gsrnamespace": 0,
    "gsrlimit": 10,
    "prop": "pageimages|extracts|pageterms|info|pageprops",
    "inprop": "url",
    "pilimit": "max",
    "exintro": 1,
    "explaintext": 1,
    "exsentences": 2,
    "exlimit": "max",
    "pithumbsize": 500,
}

# --- Featured articles pipeline ---
# Pageviews data lags by a day or more, so the resolver walks back this many days
MAX_RETRIES = int(os.getenv("WIKITRENDS_MAX_RETRIES", "10"))
RETRY_BACKOFF = float(os.getenv("WIKITRENDS_RETRY_BACKOFF", "1.0"))
MAX_ARTICLES = int(os.getenv("WIKITRENDS_MAX_ARTICLES", "50"))
IMAGE_WIDTH = int(os.getenv("WIKITRENDS_IMAGE_WIDTH", "400"))

# --- Cache ---
CACHE_DIR = os.getenv("WIKITRENDS_CACHE_DIR", os.path.join(".cache", "featured"))
CACHE_MAX_BYTES = int(os.getenv("WIKITRENDS_CACHE_MAX_BYTES", str(5 * 1024 * 1024)))

# --- Languages ---
SUPPORTED_LANGUAGES = [
    {"name": "English", "value": "en"},
    {"name": "Português", "value": "pt"},
    {"name": "Español", "value": "es"},
    {"name": "Français", "value": "fr"},
    {"name": "Italiano", "value": "it"},
    {"name": "Deutsch", "value": "de"},
]
DEFAULT_LANGUAGE = os.getenv("WIKITRENDS_DEFAULT_LANGUAGE", "en")

LOG_LEVEL = os.getenv("WIKITRENDS_LOG_LEVEL", "INFO")

# Meta pages, help pages and a few perennially overrepresented non-articles.
# Entries ending in ":" or "*" match as a title prefix ("File:" drops every file
# page). Other entries match the whole title only.
DEFAULT_BANNED_PAGES = [
    "Wikipedia:Portada",
    "Main_Page",
    "Special:Search",
    "Wikipédia:Página_principal",
    "Especial:Pesquisar",
    "Wikipedia:Featured_pictures",
    "Wikipédia:Accueil_principal",
    "Portal:Current_events",
    "Wikipedia:Hauptseite",
    "Pagina_principale",
    "Help:IPA/English",
    "CEO",
    "Video_hosting_service",
    "F5_Networks",
    "File:",
    "Ficheiro:",
    "Help:",
    "Ajuda:",
]


def load_banned_pages() -> List[str]:
    """
    Returns the denylist for this deployment.

    WIKITRENDS_BANNED_PAGES_FILE (one title per line, '#' comments allowed)
    wins over WIKITRENDS_BANNED_PAGES (comma-separated), which wins over the
    built-in list.
    """
    path = os.getenv("WIKITRENDS_BANNED_PAGES_FILE")
    if path:
        with open(path, "r", encoding="utf-8") as f:
            return [
                line.strip()
                for line in f
                if line.strip() and not line.strip().startswith("#")
            ]

    raw = os.getenv("WIKITRENDS_BANNED_PAGES")
    if raw:
        return [title.strip() for title in raw.split(",") if title.strip()]

    return list(DEFAULT_BANNED_PAGES)


def supported_language_codes() -> List[str]:
    return [lang["value"] for lang in SUPPORTED_LANGUAGES]
