"""Backend metadata access: HTTP client, persistent cache, layered single-flight service."""

from .cache import CachedDataService, JsonFileStore, KeyValueStore, MemoryStore
from .client import AcuMateApiClient, MetadataClient
from .layered import LayeredDataService

__all__ = [
    "AcuMateApiClient",
    "CachedDataService",
    "JsonFileStore",
    "KeyValueStore",
    "LayeredDataService",
    "MemoryStore",
    "MetadataClient",
]
