"""
Fetches the submissions repository provided by the facilitator.
"""

import shutil
import subprocess
from pathlib import Path


class RepositoryCloneError(RuntimeError):
    """Raised when the submissions repository cannot be cloned."""


def clone_repository(repo_url: str, dest: Path, timeout_seconds: int = 300) -> Path:
    """
    Clone a repository of student submissions into a fresh directory.

    Any previous checkout at ``dest`` is removed first so each run grades a
    clean copy.

    Args:
        repo_url: Git URL of the submissions repository.
        dest: Local directory to clone into.
        timeout_seconds: Maximum time allowed for the clone.

    Returns:
        The destination path.

    Raises:
        RepositoryCloneError: If git fails, times out or is not installed.
    """
    if dest.exists():
        shutil.rmtree(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)

    print(f"Cloning {repo_url} into {dest}...")
    try:
        result = subprocess.run(
            ["git", "clone", "--depth", "1", repo_url, str(dest)],
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise RepositoryCloneError(f"git clone timed out after {timeout_seconds}s") from e
    except FileNotFoundError as e:
        raise RepositoryCloneError("git executable not found") from e

    if result.returncode != 0:
        raise RepositoryCloneError(f"git clone failed: {result.stderr.strip()}")

    print("  Cloned student repo")
    return dest
