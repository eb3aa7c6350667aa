"""Tests for the graph and feature metadata services."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest

from acumate.core.ir import FeatureModel, GraphModel
from acumate.services.metadata import (
    FeatureMetadataService,
    GraphMetadataService,
    _ListMetadataService,
    feature_keys,
    is_feature_disabled,
)


def _run(coro: Any) -> Any:
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestListMetadataService:
    def test_keep_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            _ListMetadataService(None)


class TestGraphMetadataService:
    def test_drops_nameless_entries_and_caches(self) -> None:
        fetch = AsyncMock(return_value=[GraphModel(name="A"), GraphModel(text="no name"), None])
        service = GraphMetadataService(fetch)
        assert [g.name for g in _run(service.get())] == ["A"]
        assert [g.name for g in _run(service.get())] == ["A"]
        fetch.assert_awaited_once()
        assert _run(service.graph_names()) == {"A"}

    def test_without_fetch(self) -> None:
        service = GraphMetadataService(None)
        assert _run(service.get()) is None
        assert _run(service.graph_names()) == set()

    def test_failure_is_not_cached(self) -> None:
        fetch = AsyncMock(side_effect=[RuntimeError("boom"), [GraphModel(name="A")]])
        service = GraphMetadataService(fetch)
        assert _run(service.get()) is None
        assert service.cached is None
        assert [g.name for g in _run(service.get())] == ["A"]

    def test_none_result_is_not_cached(self) -> None:
        fetch = AsyncMock(side_effect=[None, [GraphModel(name="A")]])
        service = GraphMetadataService(fetch)
        assert _run(service.get()) is None
        assert _run(service.graph_names()) == {"A"}

    def test_concurrent_callers_share_fetch(self) -> None:
        async def slow() -> list[GraphModel]:
            await asyncio.sleep(0.01)
            return [GraphModel(name="A")]

        fetch = AsyncMock(side_effect=slow)
        service = GraphMetadataService(fetch)

        async def go() -> list[Any]:
            return await asyncio.gather(service.get(), service.get(), service.get())

        results = _run(go())
        assert fetch.await_count == 1
        assert all(result is results[0] for result in results)

    def test_prime_and_clear(self) -> None:
        fetch = AsyncMock(return_value=[GraphModel(name="Fetched")])
        service = GraphMetadataService(fetch)
        service.prime([GraphModel(name="Primed")])
        assert [g.name for g in _run(service.get())] == ["Primed"]
        service.clear()
        assert [g.name for g in _run(service.get())] == ["Fetched"]


class TestFeatureMetadataService:
    def test_disabled_features_are_normalized(self) -> None:
        fetch = AsyncMock(
            return_value=[
                FeatureModel(feature_name="PX.Objects.CS.FeaturesSet+Inventory", enabled=False),
                FeatureModel(feature_name="Multicurrency", enabled=True),
                FeatureModel(feature_name=" DistributionModule ", enabled=False),
                FeatureModel(enabled=False),
            ]
        )
        service = FeatureMetadataService(fetch)
        assert _run(service.disabled_features()) == {
            "px.objects.cs.featuresset+inventory",
            "distributionmodule",
        }

    def test_no_backend_means_nothing_disabled(self) -> None:
        assert _run(FeatureMetadataService(None).disabled_features()) == set()


class TestFeatureMatching:
    def test_feature_keys(self) -> None:
        assert feature_keys("PX.Objects.CS.FeaturesSet+Inventory") == {
            "px.objects.cs.featuresset+inventory",
            "inventory",
        }
        assert feature_keys("Inventory") == {"inventory"}
        assert feature_keys("  ") == set()

    def test_full_name_or_suffix_matches(self) -> None:
        assert is_feature_disabled(["PX.Objects.CS.FeaturesSet+Inventory"], {"inventory"})
        assert is_feature_disabled(
            ["PX.Objects.CS.FeaturesSet+Inventory"], {"px.objects.cs.featuresset+inventory"}
        )
        assert not is_feature_disabled(["PX.Objects.CS.FeaturesSet+Inventory"], {"other"})
        assert not is_feature_disabled(["Inventory"], set())
        assert not is_feature_disabled([], {"inventory"})
