"""Breadth-first downward search for context files."""

from __future__ import annotations

import asyncio
import logging
import os
from collections import deque

from strata.config import DEFAULT_MEMORY_FILE_FILTERING_OPTIONS, FileFilteringOptions
from strata.context.filtering import FileDiscoveryService

logger = logging.getLogger(__name__)


def _bfs(
    start_dir: str,
    filename: str,
    max_dirs: int,
    file_service: FileDiscoveryService | None,
    filtering: FileFilteringOptions,
    debug: bool,
) -> list[str]:
    found: list[str] = []
    queue: deque[str] = deque([start_dir])
    visited: set[str] = set()
    scanned = 0

    while queue and scanned < max_dirs:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        scanned += 1
        if debug:
            logger.debug("Scanning [%d/%d]: %s", scanned, max_dirs, current)

        try:
            with os.scandir(current) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            # Unreadable directories are skipped.
            if debug:
                logger.debug("Skipping %s: %s", current, e)
            continue

        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                continue
            if file_service and file_service.should_ignore(entry.path, filtering, is_dir=is_dir):
                continue
            if is_dir:
                queue.append(entry.path)
            elif entry.name == filename:
                found.append(entry.path)

    return found


async def bfs_file_search(
    start_dir: str,
    *,
    filename: str,
    max_dirs: int = 200,
    file_service: FileDiscoveryService | None = None,
    filtering: FileFilteringOptions = DEFAULT_MEMORY_FILE_FILTERING_OPTIONS,
    debug: bool = False,
) -> list[str]:
    """Find files named ``filename`` below ``start_dir``, visiting at most ``max_dirs`` directories."""
    return await asyncio.to_thread(
        _bfs, os.path.abspath(start_dir), filename, max_dirs, file_service, filtering, debug
    )
