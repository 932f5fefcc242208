"""Package dependency graph construction and traversal using NetworkX.

This module builds a directed graph from a :class:`PackageIndex`, where
edges point **from** a dependency **to** the package that depends on it
(i.e. ``dependency -> dependent``).  Successors of a node are therefore
its direct dependents, which is the direction change propagation follows.

Unlike a build DAG, the package graph may legitimately contain cycles
(packages that depend on each other through dev-dependencies), so traversals
over it track a visited set instead of requiring acyclicity.
"""

from __future__ import annotations

import logging

import networkx as nx

from typings_engine.index.package_index import PackageIndex

logger = logging.getLogger(__name__)

# Node attribute set to False for names that are depended on but absent
# from the index (e.g. a deleted package that is still referenced).
KNOWN_ATTR = "known"


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------


def build_dependency_graph(index: PackageIndex) -> nx.DiGraph:
    """Build a directed graph of package directories from *index*.

    Every indexed directory becomes a node with ``known=True``.  Every
    declared dependency adds an edge ``dependency -> package``; a
    dependency that is not itself indexed is still added, with
    ``known=False``, so that its dependents remain reachable.
    Self-references are ignored.

    Parameters
    ----------
    index:
        The fully loaded package index.

    Returns
    -------
    nx.DiGraph
        A directed graph keyed by directory name.
    """
    graph = nx.DiGraph()

    for name in index.directory_names():
        graph.add_node(name, **{KNOWN_ATTR: True})

    for name in index.directory_names():
        for dependency in sorted(index.dependencies_of(name)):
            if dependency == name:
                continue
            if dependency not in graph:
                graph.add_node(dependency, **{KNOWN_ATTR: False})
            graph.add_edge(dependency, name)

    logger.debug(
        "Built dependency graph with %d node(s) and %d edge(s).",
        graph.number_of_nodes(),
        graph.number_of_edges(),
    )
    return graph


def is_known(graph: nx.DiGraph, name: str) -> bool:
    """Return ``True`` if *name* is an indexed package in *graph*."""
    return name in graph and bool(graph.nodes[name].get(KNOWN_ATTR, False))


# ---------------------------------------------------------------------------
# Traversal helpers
# ---------------------------------------------------------------------------


def get_direct_dependents(graph: nx.DiGraph, name: str) -> set[str]:
    """Return the packages that declare a direct dependency on *name*."""
    if name not in graph:
        return set()
    return set(graph.successors(name))


# ---------------------------------------------------------------------------
# Warnings
# ---------------------------------------------------------------------------


def dangling_reference_warning(dependent: str, dependency: str) -> str:
    return f"Package '{dependent}' depends on '{dependency}', which is not in the package index."

