"""Thin git client that lists file-level changes against the source branch.

All interaction with the ``git`` binary is done through :func:`subprocess.run`
with explicit timeouts and structured error handling so that callers receive
:class:`GitClientError` exceptions with descriptive messages rather than raw
subprocess failures.

CI checkouts are usually shallow: the pull request head is fetched on its
own and the source branch does not exist locally.  :func:`get_git_diff`
detects that case and fetches the branch before diffing, so it must keep
working on both full and shallow clones.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

from typings_engine.models.changes import Added, Deleted, FileChange, Modified, Renamed

logger = logging.getLogger(__name__)

_SUBPROCESS_TIMEOUT = 120  # seconds; fetches on large monorepos are slow

# Without this git octal-escapes and quotes non-ASCII paths.
_DIFF_COMMAND = ["-c", "core.quotePath=false", "diff"]

# ---------------------------------------------------------------------------
# Git ref validation
# ---------------------------------------------------------------------------

_GIT_REF_RE = re.compile(r"^[a-zA-Z0-9_./@~^{}\-]+$")


def _validate_git_ref(ref: str) -> None:
    """Reject refs containing spaces or shell metacharacters.

    Raises
    ------
    ValueError
        If *ref* is empty or does not match the expected pattern.
    """
    if not ref:
        raise ValueError("Git ref cannot be empty")
    if ref.startswith("-") or not _GIT_REF_RE.match(ref):
        raise ValueError(f"Invalid git ref: {ref!r}")


class GitClientError(Exception):
    """Raised when a git operation fails or the repository is invalid."""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _run_git(args: list[str], repo_path: Path) -> str:
    """Execute ``git <args>`` in *repo_path* and return its stdout.

    Raises
    ------
    GitClientError
        On non-zero exit, timeout, or if the process cannot be started.
    """
    cmd = ["git", *args]
    logger.info("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            cwd=repo_path,
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=True,
            timeout=_SUBPROCESS_TIMEOUT,
        )
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise GitClientError(f"git command failed: {' '.join(cmd)}\n" f"Exit code {exc.returncode}: {stderr}") from exc
    except subprocess.TimeoutExpired as exc:
        raise GitClientError(f"git command timed out after {_SUBPROCESS_TIMEOUT}s: {' '.join(cmd)}") from exc
    except FileNotFoundError as exc:
        raise GitClientError("git executable not found. Ensure git is installed and on PATH.") from exc
    logger.debug("%s", result.stdout)
    return result.stdout


def parse_name_status(output: str) -> list[FileChange]:
    """Parse ``git diff --name-status`` output, preserving line order.

    Rename and copy lines carry a similarity score (``R100``) and two
    paths.  Copies are reported as additions of the destination; any
    status other than A, D, R or C is treated as a content modification.
    """
    changes: list[FileChange] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        if len(parts) < 2:
            logger.warning("Skipping unparseable diff line: %s", line)
            continue
        status_char = parts[0][0]
        path = parts[1].strip()
        if status_char in ("R", "C"):
            if len(parts) < 3:
                logger.warning("Skipping unparseable diff line: %s", line)
                continue
            destination = parts[2].strip()
            if status_char == "R":
                changes.append(Renamed(source=path, path=destination))
            else:
                changes.append(Added(path=destination))
        elif status_char == "A":
            changes.append(Added(path=path))
        elif status_char == "D":
            changes.append(Deleted(path=path))
        else:
            changes.append(Modified(path=path))
    return changes


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_repo(repo_path: Path) -> None:
    """Verify that *repo_path* is the root of a git repository.

    Raises
    ------
    GitClientError
        If the ``.git`` entry does not exist or the path is not a directory.
    """
    if not repo_path.is_dir():
        raise GitClientError(f"Repository path does not exist: {repo_path}")
    if not (repo_path / ".git").exists():
        raise GitClientError(f"Not a git repository (no .git directory): {repo_path}")


def ensure_source_branch(repo_path: Path, source_branch: str, source_remote: str) -> None:
    """Make *source_branch* available locally, fetching it on shallow clones."""
    _validate_git_ref(source_branch)
    _validate_git_ref(source_remote)
    try:
        _run_git(["rev-parse", "--verify", source_branch], repo_path)
        # Full clone: the branch already exists.
    except GitClientError:
        logger.info("Source branch %s not found locally; assuming a shallow clone", source_branch)
        _run_git(["fetch", source_remote, source_branch], repo_path)
        _run_git(["branch", source_branch, "FETCH_HEAD"], repo_path)


def get_git_diff(
    repo_path: Path,
    source_branch: str = "master",
    source_remote: str = "origin",
) -> list[FileChange]:
    """Return the file-level changes between *source_branch* and the working tree.

    When the diff is empty the checkout is most likely the source branch
    itself, so the last commit on it is diffed instead.

    Parameters
    ----------
    repo_path:
        Root of the git repository.
    source_branch:
        Branch the change-set is compared against.
    source_remote:
        Remote to fetch *source_branch* from on shallow clones.
    """
    ensure_source_branch(repo_path, source_branch, source_remote)

    diff = _run_git([*_DIFF_COMMAND, source_branch, "--name-status"], repo_path).strip()
    if not diff:
        diff = _run_git([*_DIFF_COMMAND, f"{source_branch}~1", "--name-status"], repo_path).strip()
    return parse_name_status(diff)


def get_current_sha(repo_path: Path) -> str:
    """Return the full SHA of the current HEAD commit.

    Raises
    ------
    GitClientError
        If the repository has no commits or git fails.
    """
    return _run_git(["rev-parse", "HEAD"], repo_path).strip()
