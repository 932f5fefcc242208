"""Git integration for change detection."""

from __future__ import annotations

from typings_engine.git.git_client import (
    GitClientError,
    ensure_source_branch,
    get_current_sha,
    get_git_diff,
    parse_name_status,
    validate_repo,
)

__all__ = [
    "GitClientError",
    "ensure_source_branch",
    "get_current_sha",
    "get_git_diff",
    "parse_name_status",
    "validate_repo",
]
