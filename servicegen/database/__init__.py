"""Database stage: schema introspection, entity metadata, repositories and baseline."""

from .baseline import SchemaBaselineGenerator
from .introspector import IntrospectionResult, SchemaIntrospector
from .metadata import EntityMetadata
from .repositories import RepositoryGenerator, RepositoryReport

__all__ = [
    "EntityMetadata",
    "IntrospectionResult",
    "RepositoryGenerator",
    "RepositoryReport",
    "SchemaBaselineGenerator",
    "SchemaIntrospector",
]
