"""Classification of file-level diffs into package-level changes."""

from typings_engine.diff.change_classifier import (
    classify_changes,
    is_package_path,
    package_id_from_path,
    unexpected_file_error,
)

__all__ = [
    "classify_changes",
    "is_package_path",
    "package_id_from_path",
    "unexpected_file_error",
]
