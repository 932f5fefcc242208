"""Unit tests for typings_engine.affected.resolver."""

from __future__ import annotations

import logging

import networkx as nx
import pytest

from typings_engine.affected.resolver import collect_dependents, get_affected_packages
from typings_engine.graph.dependency_graph import build_dependency_graph
from typings_engine.index.package_index import PackageIndex
from typings_engine.models.changes import PackageChangeSet
from typings_engine.models.package import PackageIdentity, PackageVersion
from typings_engine.models.typings_package import TypingsPackage

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _graph(edges: dict[str, list[str]]) -> nx.DiGraph:
    """Build a graph from ``{package: [dependencies]}``."""
    packages = [
        TypingsPackage(directory_name=name, version=PackageVersion(1, 0), dependencies=frozenset(deps))
        for name, deps in edges.items()
    ]
    return build_dependency_graph(PackageIndex(packages))


def _changed(*names: str, deleted: tuple[str, ...] = ()) -> PackageChangeSet:
    change_set = PackageChangeSet()
    for name in names:
        change_set.record_addition(PackageIdentity(name))
    for name in deleted:
        change_set.record_deletion(PackageIdentity(name))
    return change_set


# ---------------------------------------------------------------------------
# collect_dependents
# ---------------------------------------------------------------------------


class TestCollectDependents:
    def test_includes_seeds(self):
        visited, warnings = collect_dependents(_graph({"A": ["B"], "B": []}), {"B"})
        assert visited == {"A", "B"}
        assert warnings == []

    def test_seed_not_in_graph(self):
        visited, warnings = collect_dependents(_graph({"A": []}), {"new"})
        assert visited == {"new"}
        assert warnings == []

    def test_cycle_terminates(self):
        graph = _graph({"A": ["B"], "B": ["C"], "C": ["A"]})
        visited, _ = collect_dependents(graph, {"A"})
        assert visited == {"A", "B", "C"}


# ---------------------------------------------------------------------------
# get_affected_packages
# ---------------------------------------------------------------------------


class TestGetAffectedPackages:
    def test_transitive_chain(self):
        """A depends on B depends on C; changing C affects A and B."""
        graph = _graph({"A": ["B"], "B": ["C"], "C": []})
        result = get_affected_packages(_changed("C"), graph)
        assert result.ok
        assert result.package_names == {"C"}
        assert result.dependents == {"A", "B"}

    def test_diamond_counted_once(self):
        graph = _graph({"top": ["left", "right"], "left": ["base"], "right": ["base"], "base": []})
        result = get_affected_packages(_changed("base"), graph)
        assert result.dependents == {"left", "right", "top"}

    def test_changed_packages_excluded_from_dependents(self):
        graph = _graph({"A": ["B"], "B": []})
        result = get_affected_packages(_changed("A", "B"), graph)
        assert result.package_names == {"A", "B"}
        assert result.dependents == set()

    def test_cycle_through_seed(self):
        graph = _graph({"A": ["B"], "B": ["A"], "X": ["A"]})
        result = get_affected_packages(_changed("A"), graph)
        assert result.package_names == {"A"}
        assert result.dependents == {"B", "X"}

    def test_unrelated_packages_untouched(self):
        graph = _graph({"A": ["B"], "B": [], "Z": []})
        result = get_affected_packages(_changed("B"), graph)
        assert "Z" not in result.dependents

    def test_versions_collapse_to_directory(self):
        change_set = PackageChangeSet()
        change_set.record_addition(PackageIdentity("foo", PackageVersion(2)))
        change_set.record_deletion(PackageIdentity("foo"))
        result = get_affected_packages(change_set, _graph({"foo": []}))
        assert result.package_names == {"foo"}

    def test_deleted_package_with_dependents_warns(self, caplog: pytest.LogCaptureFixture):
        # "gone" was deleted but "user" still declares it.
        graph = _graph({"user": ["gone"], "top": ["user"]})
        with caplog.at_level(logging.WARNING, logger="typings_engine.affected.resolver"):
            result = get_affected_packages(_changed(deleted=("gone",)), graph, snapshot="abc123")
        assert result.ok
        assert result.snapshot == "abc123"
        assert result.dependents == {"user", "top"}
        assert result.warnings == ["Package 'user' depends on 'gone', which is not in the package index."]
        assert "depends on 'gone'" in caplog.text

    def test_deterministic(self):
        graph = _graph({"A": ["C"], "B": ["C"], "C": [], "D": ["A", "B"]})
        first = get_affected_packages(_changed("C"), graph)
        second = get_affected_packages(_changed("C"), graph)
        assert first == second
