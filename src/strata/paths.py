"""Path helpers: project-root detection and the on-disk storage layout.

Layout:
    ~/.strata/
    ├── STRATA.md          # Global context, always loaded
    └── strata.toml        # User settings

    <project>/.strata/
    └── strata.toml        # Workspace settings
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

logger = logging.getLogger(__name__)

AGENT_DIR = ".strata"
SETTINGS_FILENAME = "strata.toml"
VCS_MARKER = ".git"


def find_project_root(
    start_dir: str | Path,
    *,
    quiet: bool = False,
    log: logging.Logger | None = None,
) -> Path | None:
    """Walk up from start_dir, return the nearest directory containing .git/.

    A missing marker is expected and never logged. Other errors are logged
    (unless ``quiet``) and the walk moves on to the parent.
    """
    current = Path(os.path.abspath(start_dir))
    while True:
        marker = current / VCS_MARKER
        try:
            if stat.S_ISDIR(os.lstat(marker).st_mode):
                return current
        except FileNotFoundError:
            pass
        except OSError as e:
            if not quiet:
                (log or logger).warning("Error checking for %s directory at %s: %s", VCS_MARKER, marker, e)
        parent = current.parent
        if parent == current:
            return None
        current = parent


def candidate_path(directory: str | Path, filename: str) -> str:
    return os.path.join(str(directory), filename)


class Storage:
    """Resolves per-user and per-project storage locations."""

    def __init__(self, project_root: str | Path) -> None:
        self.project_root = Path(project_root)

    @staticmethod
    def global_dir(home: Path, agent_dir: str = AGENT_DIR) -> Path:
        return Path(os.path.abspath(home)) / agent_dir

    @staticmethod
    def global_settings_path(home: Path) -> Path:
        return Storage.global_dir(home) / SETTINGS_FILENAME

    @staticmethod
    def global_context_path(home: Path, filename: str, agent_dir: str = AGENT_DIR) -> str:
        return candidate_path(Storage.global_dir(home, agent_dir), filename)

    @property
    def project_dir(self) -> Path:
        return self.project_root / AGENT_DIR

    @property
    def workspace_settings_path(self) -> Path:
        return self.project_dir / SETTINGS_FILENAME
