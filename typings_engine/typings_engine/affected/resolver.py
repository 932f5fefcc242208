"""Compute the packages affected by a change set.

Directly affected packages are the directories of every added or deleted
package; version information stops here.  Their dependents are found by
a breadth-first walk over the dependency graph's ``dependency ->
dependent`` edges.  The walk is deterministic, side-effect free, and
terminates on cyclic graphs.
"""

from __future__ import annotations

import logging
from collections import deque

import networkx as nx

from typings_engine.graph.dependency_graph import (
    dangling_reference_warning,
    get_direct_dependents,
    is_known,
)
from typings_engine.models.changes import AffectedResult, PackageChangeSet

logger = logging.getLogger(__name__)


def collect_dependents(graph: nx.DiGraph, seeds: set[str]) -> tuple[set[str], list[str]]:
    """Walk reverse-dependency edges from *seeds*.

    Returns
    -------
    tuple[set[str], list[str]]
        Every visited node (seeds included) and the dangling-reference
        warnings met on the way, sorted and de-duplicated.  A dangling
        reference is an edge from a dependency that is not an indexed
        package to a package declaring it.
    """
    visited: set[str] = set(seeds)
    warnings: set[str] = set()
    queue: deque[str] = deque(sorted(seeds))

    while queue:
        current = queue.popleft()
        dependents = sorted(get_direct_dependents(graph, current))
        if dependents and not is_known(graph, current):
            for dependent in dependents:
                warnings.add(dangling_reference_warning(dependent, current))
        for dependent in dependents:
            if dependent in visited:
                continue
            visited.add(dependent)
            queue.append(dependent)

    return visited, sorted(warnings)


def get_affected_packages(
    change_set: PackageChangeSet,
    graph: nx.DiGraph,
    snapshot: str = "",
) -> AffectedResult:
    """Resolve the directly changed packages and everything depending on them.

    Parameters
    ----------
    change_set:
        Additions and deletions from the change classifier.
    graph:
        The dependency graph of the snapshot being evaluated.
    snapshot:
        Identifier of that snapshot (a path or commit), carried into the
        result for reporting.

    Returns
    -------
    AffectedResult
        ``package_names`` holds the directly changed directories,
        ``dependents`` the rest of the transitive closure, and
        ``warnings`` any dangling references met during the walk.
    """
    package_names = change_set.directory_names()
    visited, warnings = collect_dependents(graph, package_names)
    dependents = visited - package_names

    for warning in warnings:
        logger.warning("%s", warning)
    logger.debug(
        "Snapshot %s: %d changed package(s), %d dependent(s).",
        snapshot or "(unnamed)",
        len(package_names),
        len(dependents),
    )
    return AffectedResult(
        snapshot=snapshot,
        package_names=package_names,
        dependents=dependents,
        warnings=warnings,
    )
