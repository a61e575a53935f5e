"""Source revision lookup for provenance references."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path


def current_revision(repo_dir: Path | None = None) -> str | None:
    git_path = shutil.which("git")
    if git_path is None:
        return None
    try:
        completed = subprocess.run(
            [git_path, "rev-parse", "HEAD"],
            cwd=str(repo_dir) if repo_dir is not None else None,
            check=True,
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    revision = completed.stdout.strip()
    return revision or None
