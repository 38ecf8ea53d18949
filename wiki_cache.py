import json
import logging
import os
from datetime import date, datetime
from typing import Dict, List, Optional, Union
from urllib.parse import quote, unquote

from pydantic import ValidationError

from wiki_errors import CacheUnavailable
from wiki_models import FeaturedArticle
from wiki_utils import date_key, normalize_date

logger = logging.getLogger(__name__)

CACHE_PREFIX = "wiki_featured_"


class MemoryStore:
    """In-process key-value store with an optional byte quota."""

    def __init__(self, max_bytes: Optional[int] = None):
        self.max_bytes = max_bytes
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.max_bytes is not None:
            used = sum(len(v.encode("utf-8")) for k, v in self._data.items() if k != key)
            if used + len(value.encode("utf-8")) > self.max_bytes:
                raise CacheUnavailable(f"Store quota of {self.max_bytes} bytes exceeded")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class FileStore:
    """
    Key-value store backed by one JSON file per key in a directory.

    Like browser-local storage it is size limited: writes that would push
    the directory past max_bytes raise CacheUnavailable.
    """

    SUFFIX = ".json"

    def __init__(self, directory: str, max_bytes: Optional[int] = None):
        self.directory = directory
        self.max_bytes = max_bytes

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, quote(key, safe="") + self.SUFFIX)

    def _used_bytes(self, exclude: str) -> int:
        # Only committed entries count; stray .tmp files are not part of the store
        total = 0
        with os.scandir(self.directory) as entries:
            for entry in entries:
                if entry.is_file() and entry.name.endswith(self.SUFFIX) and entry.path != exclude:
                    total += entry.stat().st_size
        return total

    def get(self, key: str) -> Optional[str]:
        """
        Returns the stored text, or None when the key is absent.

        Raises UnicodeDecodeError (a ValueError) when the file is not valid UTF-8.
        """
        try:
            with open(self._path(key), "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheUnavailable(f"Cannot read {key}: {e}") from e
        return raw.decode("utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path + ".tmp"
        encoded = value.encode("utf-8")
        try:
            os.makedirs(self.directory, exist_ok=True)
            if self.max_bytes is not None and self._used_bytes(path) + len(encoded) > self.max_bytes:
                raise CacheUnavailable(f"Store quota of {self.max_bytes} bytes exceeded")

            with open(tmp_path, "wb") as f:
                f.write(encoded)
            os.replace(tmp_path, path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise CacheUnavailable(f"Cannot write {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheUnavailable(f"Cannot delete {key}: {e}") from e

    def keys(self) -> List[str]:
        if not os.path.isdir(self.directory):
            return []
        return [
            unquote(name[: -len(self.SUFFIX)])
            for name in os.listdir(self.directory)
            if name.endswith(self.SUFFIX)
        ]


class FeaturedArticlesCache:
    """
    Best-effort cache of enriched featured articles keyed by (language, day).

    Storage problems are logged and reported as misses / False, never raised.
    """

    def __init__(self, store):
        self.store = store

    @staticmethod
    def key(language: str, day: Union[date, datetime, str]) -> str:
        if not language or not day:
            raise ValueError("Language and date are required for cache key")
        return f"{CACHE_PREFIX}{language}:{date_key(normalize_date(day))}"

    def get(self, language: str, day: Union[date, datetime, str]) -> Optional[List[FeaturedArticle]]:
        cache_key = self.key(language, day)
        try:
            raw = self.store.get(cache_key)
        except CacheUnavailable as e:
            logger.warning(f"Error reading cache for {cache_key}: {e}")
            return None
        except UnicodeDecodeError as e:
            logger.warning(f"Invalid cache data for {cache_key}, clearing: {e}")
            self._discard(cache_key)
            return None

        if raw is None:
            return None

        try:
            parsed = json.loads(raw)
            if not isinstance(parsed, list):
                raise ValueError(f"expected a list, got {type(parsed).__name__}")
            return [FeaturedArticle.model_validate(item) for item in parsed]
        except (ValueError, ValidationError) as e:
            logger.warning(f"Invalid cache data for {cache_key}, clearing: {e}")
            self._discard(cache_key)
            return None

    def put(self, language: str, day: Union[date, datetime, str], articles: List[FeaturedArticle]) -> bool:
        cache_key = self.key(language, day)
        if not isinstance(articles, list):
            logger.warning("Cannot cache non-list articles data")
            return False

        serialized = json.dumps([a.model_dump(by_alias=True) for a in articles])
        try:
            self.store.set(cache_key, serialized)
        except CacheUnavailable as e:
            logger.warning(f"Error storing cache for {cache_key}: {e}")
            return False
        return True

    def clear(self) -> int:
        """Removes every featured articles entry. Returns how many were removed."""
        cleared = 0
        try:
            for cache_key in self.store.keys():
                if cache_key.startswith(CACHE_PREFIX):
                    self.store.delete(cache_key)
                    cleared += 1
        except CacheUnavailable as e:
            logger.warning(f"Error clearing cache: {e}")
        return cleared

    def _discard(self, cache_key: str) -> None:
        try:
            self.store.delete(cache_key)
        except CacheUnavailable as e:
            logger.warning(f"Could not discard {cache_key}: {e}")
