"""Tests for the runtime context."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from acumate.api.cache import JsonFileStore
from acumate.context import AcuMateContext
from acumate.core.errors import ConfigError
from acumate.core.ir import FeatureModel, GraphModel, GraphStructure


def _run(coro: Any) -> Any:
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestMetadataAccess:
    def test_graphs_are_fetched_once(self, make_context):
        context = make_context(graphs=[GraphModel(name="G"), GraphModel(name=None)])
        first = _run(context.graphs.get())
        second = _run(context.graphs.get())
        assert [graph.name for graph in first] == ["G"]
        assert second == first
        assert context.api_client.calls == [("graphs", None)]

    def test_graph_structure(self, make_context):
        structure = GraphStructure(name="G")
        context = make_context(structures={"G": structure})
        assert _run(context.get_graph_structure("G")) == structure
        assert _run(context.get_graph_structure("")) is None

    def test_backend_disabled(self, make_context):
        context = make_context(
            graphs=[GraphModel(name="G")],
            structures={"G": GraphStructure(name="G")},
            features=[FeatureModel(feature_name="F", enabled=False)],
            use_backend=False,
        )
        assert context.use_backend is False
        assert _run(context.graphs.get()) is None
        assert _run(context.features.disabled_features()) == set()
        assert _run(context.get_graph_structure("G")) is None
        assert context.api_client.calls == []

    def test_contexts_do_not_share_caches(self, make_context):
        first = make_context(graphs=[GraphModel(name="First")])
        second = make_context(graphs=[GraphModel(name="Second")])
        assert [graph.name for graph in _run(first.graphs.get())] == ["First"]
        assert [graph.name for graph in _run(second.graphs.get())] == ["Second"]
        assert second.api_client.calls == [("graphs", None)]

    def test_clear_cache_forgets_metadata(self, make_context):
        context = make_context(graphs=[GraphModel(name="G")])
        _run(context.graphs.get())
        context.clear_cache()
        assert context.graphs.cached is None
        assert context.store.keys() == []
        _run(context.graphs.get())
        assert context.api_client.calls == [("graphs", None), ("graphs", None)]


class TestLoad:
    def test_load_defaults_to_json_store(self, tmp_path: Path):
        (tmp_path / "acumate.toml").write_text('[cache]\npath = "meta.json"\n', encoding="utf-8")
        context = AcuMateContext.load(tmp_path / "acumate.toml")
        assert isinstance(context.store, JsonFileStore)
        assert context.store.path == (tmp_path / "meta.json").resolve()
        assert context.use_backend is False

    def test_load_invalid_manifest(self, tmp_path: Path):
        (tmp_path / "acumate.toml").write_text("not toml ===", encoding="utf-8")
        with pytest.raises(ConfigError):
            AcuMateContext.load(tmp_path / "acumate.toml")
