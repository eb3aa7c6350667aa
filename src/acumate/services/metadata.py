"""
Metadata caches for graphs and features, owned by an ``AcuMateContext``.

Each service keeps the last successful list in memory and shares one
in-flight request between concurrent callers. Entries without a name are
dropped. A failing request is logged and reported as ``None`` so callers
treat it as "no backend metadata".
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from acumate.core.backend_metadata import normalize_meta_name
from acumate.core.ir import FeatureModel, GraphModel

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _ListMetadataService(ABC, Generic[T]):
    """Memoized, single-flight fetch of one backend list."""

    label = "metadata"

    def __init__(self, fetch: Callable[[], Awaitable[list[T] | None]] | None) -> None:
        self._fetch = fetch
        self._cached: list[T] | None = None
        self._inflight: asyncio.Task[list[T] | None] | None = None

    @abstractmethod
    def _keep(self, item: T) -> bool:
        """Whether a fetched item is kept in the cache."""

    @property
    def cached(self) -> list[T] | None:
        return self._cached

    async def get(self) -> list[T] | None:
        if self._cached is not None:
            return self._cached
        if self._fetch is None:
            return None

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._load(self._fetch))
        return await asyncio.shield(self._inflight)

    async def _load(self, fetch: Callable[[], Awaitable[list[T] | None]]) -> list[T] | None:
        try:
            items = await fetch()
        except Exception as e:
            logger.error("Error fetching %s: %s", self.label, e)
            return None
        finally:
            self._inflight = None

        if not isinstance(items, list):
            return None
        self._cached = [item for item in items if item is not None and self._keep(item)]
        return self._cached

    def prime(self, items: list[T] | None) -> None:
        self._cached = items

    def clear(self) -> None:
        self._cached = None


class GraphMetadataService(_ListMetadataService[GraphModel]):
    """Graphs available on the connected backend."""

    label = "graph metadata"

    def _keep(self, item: GraphModel) -> bool:
        return bool(item.name)

    async def graph_names(self) -> set[str]:
        graphs = await self.get() or []
        return {graph.name for graph in graphs if graph.name}


class FeatureMetadataService(_ListMetadataService[FeatureModel]):
    """Feature switches reported by the connected backend."""

    label = "feature metadata"

    def _keep(self, item: FeatureModel) -> bool:
        return bool(item.feature_name)

    async def disabled_features(self) -> set[str]:
        """Normalized names of features the backend reports as disabled."""
        features = await self.get() or []
        disabled: set[str] = set()
        for feature in features:
            if feature.enabled:
                continue
            normalized = normalize_meta_name(feature.feature_name)
            if normalized:
                disabled.add(normalized)
        return disabled


def feature_keys(feature_name: str) -> set[str]:
    """
    Lookup keys for a ``@featureInstalled`` name.

    ``PX.Objects.CS.FeaturesSet+Inventory`` matches a backend feature named
    either by the full string or by the part after the last ``+``.
    """
    keys: set[str] = set()
    full = normalize_meta_name(feature_name)
    if full:
        keys.add(full)
        short = normalize_meta_name(full.rsplit("+", 1)[-1])
        if short:
            keys.add(short)
    return keys


def is_feature_disabled(features: list[str], disabled: set[str]) -> bool:
    """True when any of ``features`` is in the disabled set."""
    if not disabled:
        return False
    return any(feature_keys(name) & disabled for name in features)
