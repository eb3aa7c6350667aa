"""Persistent key/value stores and the cache-backed metadata reader.

``CachedDataService`` reads and writes backend metadata through a
``KeyValueStore`` and is a no-op when caching is disabled. Values are kept
as plain JSON (the backend's own camelCase shape) and re-validated into
models on read; an entry that no longer validates counts as a miss.

Cache key structure::

    GraphAPICache                      -> [GraphModel, ...]
    GraphAPIStructureCache{graphName}  -> GraphStructure
    FeaturesCache                      -> [FeatureModel, ...]
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ValidationError

from acumate.core.ir import FeatureModel, GraphModel, GraphStructure

from .constants import FEATURES_CACHE, GRAPH_API_CACHE, GRAPH_API_STRUCTURE_CACHE_PREFIX

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def update(self, key: str, value: Any) -> None: ...


class MemoryStore:
    """In-process store; lives as long as the object."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def update(self, key: str, value: Any) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)

    def clear(self) -> None:
        self._data.clear()


class JsonFileStore:
    """Store persisted as one JSON document, surviving across runs.

    The file is read lazily on first access and rewritten atomically on
    every update. An unreadable or corrupt file is treated as empty.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            self._data = {}
            if self.path.exists():
                try:
                    loaded = json.loads(self.path.read_text(encoding="utf-8"))
                    if isinstance(loaded, dict):
                        self._data = loaded
                    else:
                        logger.warning("Ignoring cache file %s: not a JSON object", self.path)
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning("Ignoring unreadable cache file %s: %s", self.path, e)
        return self._data

    def _flush(self) -> None:
        data = self._load()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".cache-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Any | None:
        return self._load().get(key)

    def update(self, key: str, value: Any) -> None:
        data = self._load()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
        self._flush()

    def keys(self) -> list[str]:
        return list(self._load())

    def clear(self) -> None:
        self._data = {}
        if self.path.exists():
            self.path.unlink()


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True)
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


class CachedDataService:
    """Reads and writes backend metadata through a persistent store.

    Args:
        store: Backing key/value store
        use_cache: When False every read misses and every write is skipped
    """

    def __init__(self, store: KeyValueStore, *, use_cache: bool = True) -> None:
        self.cache = store
        self.use_cache = use_cache

    def store(self, key: str, value: Any) -> None:
        if not self.use_cache or value is None:
            return
        try:
            self.cache.update(key, _dump(value))
        except OSError as e:
            logger.warning("Cache write for %s failed: %s", key, e)

    def _read(self, key: str) -> Any | None:
        if not self.use_cache:
            return None
        return self.cache.get(key)

    def get_graphs(self) -> list[GraphModel] | None:
        raw = self._read(GRAPH_API_CACHE)
        if not isinstance(raw, list):
            return None
        try:
            return [GraphModel.model_validate(item) for item in raw]
        except ValidationError as e:
            logger.debug("Discarding cached graphs: %s", e)
            return None

    def get_graph_structure(self, graph_name: str) -> GraphStructure | None:
        raw = self._read(GRAPH_API_STRUCTURE_CACHE_PREFIX + graph_name)
        if not isinstance(raw, dict):
            return None
        try:
            return GraphStructure.model_validate(raw)
        except ValidationError as e:
            logger.debug("Discarding cached structure for %s: %s", graph_name, e)
            return None

    def get_features(self) -> list[FeatureModel] | None:
        raw = self._read(FEATURES_CACHE)
        if not isinstance(raw, list):
            return None
        try:
            return [FeatureModel.model_validate(item) for item in raw]
        except ValidationError as e:
            logger.debug("Discarding cached features: %s", e)
            return None
