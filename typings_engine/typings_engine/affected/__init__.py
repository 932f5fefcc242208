"""Affected-set resolution over the package dependency graph."""

from typings_engine.affected.resolver import collect_dependents, get_affected_packages

__all__ = ["collect_dependents", "get_affected_packages"]
