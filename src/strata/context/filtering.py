"""Ignore-rule filtering for the downward context-file search."""

from __future__ import annotations

import functools
import logging
import os
from pathlib import Path

import pathspec

from strata.config import DEFAULT_MEMORY_FILE_FILTERING_OPTIONS, FileFilteringOptions

logger = logging.getLogger(__name__)

GIT_IGNORE_FILE = ".gitignore"
TOOL_IGNORE_FILE = ".strataignore"


@functools.lru_cache(maxsize=32)
def compile_patterns(patterns: tuple[str, ...]) -> pathspec.GitIgnoreSpec:
    return pathspec.GitIgnoreSpec.from_lines(patterns)


def _read_patterns(path: Path) -> list[str]:
    try:
        lines = path.read_text(encoding="utf-8", errors="ignore").splitlines()
    except FileNotFoundError:
        return []
    except OSError as e:
        logger.warning("Could not read ignore file %s: %s", path, e)
        return []
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]


class FileDiscoveryService:
    """Answers "should this path be skipped?" for one project root.

    Ignore files are read once, from the project root only.
    """

    def __init__(self, project_root: str | Path) -> None:
        self.project_root = Path(os.path.abspath(project_root))
        git_patterns = _read_patterns(self.project_root / GIT_IGNORE_FILE)
        git_patterns += _read_patterns(self.project_root / ".git" / "info" / "exclude")
        self._git_spec = pathspec.GitIgnoreSpec.from_lines(git_patterns)
        self._tool_spec = pathspec.GitIgnoreSpec.from_lines(
            _read_patterns(self.project_root / TOOL_IGNORE_FILE)
        )

    def _relative(self, path: str | Path) -> str | None:
        try:
            rel = Path(os.path.abspath(path)).relative_to(self.project_root)
        except ValueError:
            return None
        return rel.as_posix()

    def should_ignore(
        self,
        path: str | Path,
        options: FileFilteringOptions = DEFAULT_MEMORY_FILE_FILTERING_OPTIONS,
        *,
        is_dir: bool = False,
    ) -> bool:
        rel = self._relative(path)
        if not rel or rel == ".":
            return False
        candidate = f"{rel}/" if is_dir else rel

        if options.respect_git_ignore:
            if rel == ".git" or rel.startswith(".git/"):
                return True
            if self._git_spec.match_file(candidate):
                return True
        if options.respect_tool_ignore and self._tool_spec.match_file(candidate):
            return True
        if options.custom_ignore_patterns:
            custom = compile_patterns(tuple(options.custom_ignore_patterns))
            if custom.match_file(candidate):
                return True
        return False
