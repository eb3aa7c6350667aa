"""
Backend metadata types for AcuMate IR.

Shapes returned by the backend graph metadata endpoints. Field names follow
the backend's camelCase JSON; unknown keys are ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class BaseMetaItem(BaseModel):
    """Common base for backend metadata records."""

    name: str | None = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GraphModel(BaseMetaItem):
    """A graph (screen business logic class) exposed by the backend."""

    text: str | None = None


class FieldMeta(BaseMetaItem):
    """A field of a backend view."""

    is_key: bool | None = Field(default=None, alias="isKey")
    display_name: str | None = Field(default=None, alias="displayName")
    type_name: str | None = Field(default=None, alias="typeName")
    extension: str | None = None


class ViewMeta(BaseMetaItem):
    """A data view of a backend graph."""

    cache_type: str | None = Field(default=None, alias="cacheType")
    cache_name: str | None = Field(default=None, alias="cacheName")
    extension: str | None = None
    fields: dict[str, FieldMeta | None] | None = None


class ActionMeta(BaseMetaItem):
    """An action of a backend graph."""

    display_name: str | None = Field(default=None, alias="displayName")


class GraphStructure(BaseMetaItem):
    """Structural description of one graph: its views and actions."""

    views: dict[str, ViewMeta | None] | None = None
    actions: list[ActionMeta | None] | None = None


class FeatureModel(BaseModel):
    """A backend feature switch."""

    feature_name: str | None = Field(default=None, alias="featureName")
    enabled: bool = True

    model_config = ConfigDict(populate_by_name=True, extra="ignore")
