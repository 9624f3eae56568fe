"""
Submission discovery for web-page assignments.

Each immediate subdirectory of the submissions root is one student's
submission. HTML and CSS files are located recursively; submissions that
lack either are flagged so they never reach the browser.
"""

from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from .config import (
    IGNORED_DIRS,
    MARKUP_EXTENSIONS,
    MISSING_MARKUP_FLAG,
    MISSING_STYLESHEET_FLAG,
    STYLESHEET_EXTENSIONS,
)
from .models import Submission


def find_submissions(submissions_dir: Path) -> list[Submission]:
    """
    Find all student submission directories.

    Args:
        submissions_dir: Path to directory containing student folders.

    Returns:
        List of Submission objects, sorted by folder name.

    Raises:
        FileNotFoundError: If the submissions directory doesn't exist.
        NotADirectoryError: If the path is not a directory.
        PermissionError: If the directory cannot be read.
    """
    if not submissions_dir.exists():
        raise FileNotFoundError(f"Submissions directory not found: {submissions_dir}")
    if not submissions_dir.is_dir():
        raise NotADirectoryError(f"Submissions path is not a directory: {submissions_dir}")

    # Materialize the listing first so an unreadable root fails before any result
    entries = sorted(submissions_dir.iterdir())

    submissions: list[Submission] = []
    for item in entries:
        # Skip hidden entries like .git and .DS_Store, and tooling folders
        if item.name.startswith(".") or item.name in IGNORED_DIRS:
            continue
        if not item.is_dir():
            continue

        markup_files = _find_files(item, MARKUP_EXTENSIONS)
        stylesheet_files = _find_files(item, STYLESHEET_EXTENSIONS)

        flags: list[str] = []
        if not markup_files:
            flags.append(MISSING_MARKUP_FLAG)
        if not stylesheet_files:
            flags.append(MISSING_STYLESHEET_FLAG)

        submissions.append(
            Submission(
                name=item.name,
                root=str(item.resolve()),
                markup_files=[str(p) for p in markup_files],
                stylesheet_files=[str(p) for p in stylesheet_files],
                flags=flags,
            )
        )

    return submissions


def _find_files(submission_path: Path, extensions: list[str]) -> list[Path]:
    """
    Recursively collect files with the given extensions.

    Files under hidden folders or dependency folders are ignored. Results are
    ordered shallowest first, then by path, so the entry page is stable across
    runs and platforms.

    Args:
        submission_path: Root of one submission.
        extensions: Lowercase suffixes to match (e.g. [".html"]).

    Returns:
        Matching absolute paths.
    """
    matches: list[tuple[int, str, Path]] = []
    for path in submission_path.rglob("*"):
        if path.suffix.lower() not in extensions or not path.is_file():
            continue
        rel_parts = path.relative_to(submission_path).parts
        if any(part.startswith(".") or part in IGNORED_DIRS for part in rel_parts):
            continue
        matches.append((len(rel_parts), "/".join(rel_parts), path.resolve()))

    matches.sort(key=lambda m: (m[0], m[1]))
    return [m[2] for m in matches]


def build_submission_lookup(submissions: list[Submission]) -> Mapping[str, Submission]:
    """
    Build the read-only name -> submission mapping used to serve rendered pages.

    Only submissions that have an entry page are included.

    Args:
        submissions: Output of find_submissions.

    Returns:
        Immutable mapping from submission name to its Submission.
    """
    return MappingProxyType({s.name: s for s in submissions if s.entry_point is not None})
