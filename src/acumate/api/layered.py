"""Layered metadata service: persistent cache in front of the backend client.

On a cache miss, concurrent requests for the same key share one backend
fetch. The fetch task is registered in the in-flight map before the first
suspension point and removed when it settles, so at most one request per
key is ever outstanding. A successful, non-empty result is written to the
persistent cache exactly once.

Failures reach every waiter of the shared task; each waiter logs it and
gets ``None`` (no backend metadata). The next call starts a fresh fetch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from acumate.core.ir import FeatureModel, GraphModel, GraphStructure

from .cache import CachedDataService
from .client import MetadataClient
from .constants import FEATURES_CACHE, GRAPH_API_CACHE, GRAPH_API_STRUCTURE_CACHE_PREFIX

logger = logging.getLogger(__name__)


class LayeredDataService:
    """Cache-first, single-flight access to backend metadata.

    Args:
        cache_service: Persistent cache reader/writer
        api_client: Backend client used on a miss
    """

    def __init__(self, cache_service: CachedDataService, api_client: MetadataClient) -> None:
        self.cache_service = cache_service
        self.api_client = api_client
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    @property
    def inflight_keys(self) -> list[str]:
        return list(self._inflight)

    async def get_graphs(self) -> list[GraphModel] | None:
        return await self._get(
            GRAPH_API_CACHE, self.cache_service.get_graphs, self.api_client.get_graphs
        )

    async def get_graph_structure(self, graph_name: str) -> GraphStructure | None:
        return await self._get(
            GRAPH_API_STRUCTURE_CACHE_PREFIX + graph_name,
            lambda: self.cache_service.get_graph_structure(graph_name),
            lambda: self.api_client.get_graph_structure(graph_name),
        )

    async def get_features(self) -> list[FeatureModel] | None:
        return await self._get(
            FEATURES_CACHE, self.cache_service.get_features, self.api_client.get_features
        )

    async def _get(
        self,
        key: str,
        read_cache: Callable[[], Any | None],
        fetch: Callable[[], Awaitable[Any | None]],
    ) -> Any | None:
        cached = read_cache()
        if cached:
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch(key, fetch))
            self._inflight[key] = task

        try:
            # shield: a cancelled waiter must not cancel the shared fetch
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Backend metadata request %s failed: %s", key, e)
            return None

    async def _fetch(self, key: str, fetch: Callable[[], Awaitable[Any | None]]) -> Any | None:
        try:
            result = await fetch()
            if result:
                self.cache_service.store(key, result)
            return result
        finally:
            self._inflight.pop(key, None)
