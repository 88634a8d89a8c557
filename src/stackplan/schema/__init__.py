"""Resource type schemas."""

from .registry import SUPPORTED_RESOURCE_TYPES, ResourceSchema, SchemaRegistry, build_registry

__all__ = ["SUPPORTED_RESOURCE_TYPES", "ResourceSchema", "SchemaRegistry", "build_registry"]
