"""
HTTP client for the backend metadata service.

Each request optionally logs in first and logs out afterwards, as the
backend's cookie-based session API expects. Transport and HTTP failures are
raised as ``BackendError``; the caching layer decides what to do with them.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from acumate.core.errors import make_backend_error
from acumate.core.ir import FeatureModel, GraphModel, GraphStructure
from acumate.core.manifest import BackendConfig

from .constants import (
    AUTH_ENDPOINT,
    FEATURES_ROUTE,
    GRAPH_API_ROUTE,
    GRAPH_API_STRUCTURE_ROUTE,
    LOGOUT_ENDPOINT,
)

logger = logging.getLogger(__name__)


class MetadataClient(Protocol):
    """Source of backend metadata; results may be absent."""

    async def get_graphs(self) -> list[GraphModel] | None: ...

    async def get_graph_structure(self, graph_name: str) -> GraphStructure | None: ...

    async def get_features(self) -> list[FeatureModel] | None: ...


class AcuMateApiClient:
    """
    httpx-based backend client.

    Args:
        config: Backend connection settings
        client: Optional httpx client. A short-lived one is created per
            request when not provided.
    """

    def __init__(self, config: BackendConfig, *, client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = client

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.url,
            timeout=self.config.timeout,
            headers={"Content-Type": "application/json"},
        )

    async def _login(self, client: httpx.AsyncClient) -> None:
        payload = {
            "name": self.config.login,
            "password": self.config.password,
            "tenant": self.config.tenant,
        }
        response = await client.post(AUTH_ENDPOINT, json=payload)
        if response.status_code not in (200, 204):
            raise make_backend_error(
                f"Authentication rejected (HTTP {response.status_code})", AUTH_ENDPOINT
            )

    async def _logout(self, client: httpx.AsyncClient) -> None:
        try:
            await client.post(LOGOUT_ENDPOINT)
        except httpx.HTTPError as e:
            logger.debug("Logout failed: %s", e)

    async def _get_json(self, route: str) -> Any | None:
        """
        GET a route and decode its JSON body.

        Returns:
            Decoded JSON, or None when the backend is disabled

        Raises:
            BackendError: On transport errors, rejected login or non-success status
        """
        if not self.config.use_backend:
            return None

        close_client = self._client is None
        client = self._client or self._new_client()
        try:
            if self.config.use_authentication:
                await self._login(client)
            try:
                logger.debug("GET %s", route)
                response = await client.get(route)
                response.raise_for_status()
                return response.json()
            finally:
                if self.config.use_authentication:
                    await self._logout(client)
        except httpx.HTTPStatusError as e:
            raise make_backend_error(
                f"Backend returned HTTP {e.response.status_code}", route
            ) from e
        except httpx.HTTPError as e:
            raise make_backend_error(f"Backend request failed: {e}", route) from e
        except ValueError as e:
            raise make_backend_error(f"Backend returned invalid JSON: {e}", route) from e
        finally:
            if close_client:
                await client.aclose()

    async def get_graphs(self) -> list[GraphModel] | None:
        data = await self._get_json(GRAPH_API_ROUTE)
        return _parse_list(GraphModel, data, GRAPH_API_ROUTE)

    async def get_graph_structure(self, graph_name: str) -> GraphStructure | None:
        route = GRAPH_API_STRUCTURE_ROUTE + quote(graph_name, safe="")
        data = await self._get_json(route)
        if data is None:
            return None
        try:
            return GraphStructure.model_validate(data)
        except ValidationError as e:
            raise make_backend_error(f"Unexpected graph structure payload: {e}", route) from e

    async def get_features(self) -> list[FeatureModel] | None:
        data = await self._get_json(FEATURES_ROUTE)
        return _parse_list(FeatureModel, data, FEATURES_ROUTE)


def _parse_list(model: type, data: Any, route: str) -> list | None:
    if data is None:
        return None
    if not isinstance(data, list):
        raise make_backend_error("Expected a JSON array", route)
    try:
        return [model.model_validate(item) for item in data if isinstance(item, dict)]
    except ValidationError as e:
        raise make_backend_error(f"Unexpected payload: {e}", route) from e
