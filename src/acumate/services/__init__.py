from .metadata import FeatureMetadataService, GraphMetadataService

__all__ = ["FeatureMetadataService", "GraphMetadataService"]
