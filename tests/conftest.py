"""Shared pytest fixtures for AcuMate tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from acumate.api.cache import MemoryStore
from acumate.context import AcuMateContext
from acumate.core.ir import FeatureModel, GraphModel, GraphStructure
from acumate.core.manifest import AcuMateManifest, BackendConfig


class FakeMetadataClient:
    """In-memory backend: returns canned metadata and counts requests."""

    def __init__(
        self,
        graphs: list[GraphModel] | None = None,
        structures: dict[str, GraphStructure] | None = None,
        features: list[FeatureModel] | None = None,
    ):
        self.graphs = graphs
        self.structures = structures or {}
        self.features = features
        self.calls: list[tuple[str, Any]] = []

    async def get_graphs(self) -> list[GraphModel] | None:
        self.calls.append(("graphs", None))
        return self.graphs

    async def get_graph_structure(self, graph_name: str) -> GraphStructure | None:
        self.calls.append(("structure", graph_name))
        return self.structures.get(graph_name)

    async def get_features(self) -> list[FeatureModel] | None:
        self.calls.append(("features", None))
        return self.features


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def screens_dir(fixtures_dir: Path) -> Path:
    return fixtures_dir / "screens"


@pytest.fixture
def make_context(tmp_path: Path):
    """
    Build a context around a fake backend and an in-memory store.

    The fake client is reachable as ``context.api_client``; its ``calls``
    list records every request.
    """

    def _make(
        graphs: list[GraphModel] | None = None,
        structures: dict[str, GraphStructure] | None = None,
        features: list[FeatureModel] | None = None,
        use_backend: bool = True,
    ) -> AcuMateContext:
        manifest = AcuMateManifest(
            root=tmp_path,
            backend=BackendConfig(url="http://localhost/Site/", use_backend=use_backend),
        )
        client = FakeMetadataClient(graphs, structures, features)
        return AcuMateContext(manifest, store=MemoryStore(), api_client=client)

    return _make
