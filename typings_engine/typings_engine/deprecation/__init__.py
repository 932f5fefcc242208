"""Validation of not-needed (deprecated) package records."""

from typings_engine.deprecation.validator import (
    check_not_needed_package,
    check_not_needed_packages,
    get_not_needed_packages,
    validate_deprecations,
)

__all__ = [
    "check_not_needed_package",
    "check_not_needed_packages",
    "get_not_needed_packages",
    "validate_deprecations",
]
