"""
Version information for the SLI Builder.

The released version is BASE_VERSION; when running from a git checkout the
short commit hash is appended as a local version label.
"""

import subprocess
import sys
from pathlib import Path
from typing import Optional


BASE_VERSION = "0.1.0"


def _git(*args: str) -> Optional[str]:
    """Run a git command in the repository root; None when git is unavailable."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=Path(__file__).parent.parent,
            capture_output=True,
            text=True,
            timeout=5
        )
    except (subprocess.TimeoutExpired, subprocess.SubprocessError, FileNotFoundError):
        return None

    if result.returncode != 0:
        return None
    return result.stdout.strip()


def get_git_commit_hash(short: bool = True) -> Optional[str]:
    if short:
        return _git("rev-parse", "--short", "HEAD")
    return _git("rev-parse", "HEAD")


def get_version(include_commit: bool = True) -> str:
    """
    Version string, e.g. ``0.1.0`` or ``0.1.0+3f9c2ab`` inside a checkout.
    """
    commit = get_git_commit_hash() if include_commit else None
    return f"{BASE_VERSION}+{commit}" if commit else BASE_VERSION


def get_version_info() -> dict:
    commit_hash = get_git_commit_hash(short=False)
    return {
        "version": get_version(),
        "base_version": BASE_VERSION,
        "commit_hash": commit_hash,
        "branch": _git("rev-parse", "--abbrev-ref", "HEAD"),
        "python_version": sys.version.split()[0],
        "git_available": commit_hash is not None
    }


__version__ = BASE_VERSION
