"""Package dependency graph construction and traversal."""

from typings_engine.graph.dependency_graph import (
    build_dependency_graph,
    dangling_reference_warning,
    get_direct_dependents,
    is_known,
)

__all__ = [
    "build_dependency_graph",
    "dangling_reference_warning",
    "get_direct_dependents",
    "is_known",
]
