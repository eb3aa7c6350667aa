"""
Runtime context shared by validation passes.

``AcuMateContext`` owns every long-lived object a pass needs: the manifest,
the source collector with its parse cache, and the backend metadata stack
(persistent store -> cached reader -> layered service -> metadata
services). Nothing here is module-level state; tests build their own
context with in-memory stores and fake clients.
"""

from __future__ import annotations

import logging
from pathlib import Path

from acumate.api.cache import CachedDataService, JsonFileStore, KeyValueStore
from acumate.api.client import AcuMateApiClient, MetadataClient
from acumate.api.layered import LayeredDataService
from acumate.core.collector import SourcePropertyCollector
from acumate.core.ir import GraphStructure
from acumate.core.manifest import MANIFEST_FILENAME, AcuMateManifest, load_manifest
from acumate.core.screen_html import ScreenHtmlCache
from acumate.services.metadata import FeatureMetadataService, GraphMetadataService

logger = logging.getLogger(__name__)


class AcuMateContext:
    """
    Owns the source and screen HTML caches plus the backend metadata services for one run.

    Args:
        manifest: Parsed configuration
        store: Persistent cache store (defaults to the manifest's JSON file)
        api_client: Backend client (defaults to an httpx client from the manifest)
    """

    def __init__(
        self,
        manifest: AcuMateManifest | None = None,
        *,
        store: KeyValueStore | None = None,
        api_client: MetadataClient | None = None,
    ) -> None:
        self.manifest = manifest or AcuMateManifest()
        backend = self.manifest.backend

        self.collector = SourcePropertyCollector()
        self.screen_html = ScreenHtmlCache()
        self.store = store if store is not None else JsonFileStore(self.manifest.cache_path)
        self.cache_service = CachedDataService(self.store, use_cache=backend.use_cache)
        self.api_client = api_client if api_client is not None else AcuMateApiClient(backend)
        self.data_service = LayeredDataService(self.cache_service, self.api_client)

        self.graphs = GraphMetadataService(
            self.data_service.get_graphs if self.use_backend else None
        )
        self.features = FeatureMetadataService(
            self.data_service.get_features if self.use_backend else None
        )

    @classmethod
    def load(cls, config_path: Path | None = None) -> AcuMateContext:
        """
        Build a context from ``acumate.toml``.

        Raises:
            ConfigError: If the manifest is invalid
        """
        path = config_path or Path.cwd() / MANIFEST_FILENAME
        manifest = load_manifest(path)
        logger.debug("Loaded manifest from %s (backend=%s)", path, manifest.backend.use_backend)
        return cls(manifest)

    @property
    def use_backend(self) -> bool:
        return self.manifest.backend.use_backend

    async def get_graph_structure(self, graph_name: str) -> GraphStructure | None:
        if not self.use_backend or not graph_name:
            return None
        return await self.data_service.get_graph_structure(graph_name)

    def clear_cache(self) -> None:
        """Forget in-memory metadata and drop the persistent cache."""
        self.graphs.clear()
        self.features.clear()
        self.collector.cache.invalidate()
        self.screen_html.invalidate()
        clear = getattr(self.store, "clear", None)
        if clear is not None:
            clear()
