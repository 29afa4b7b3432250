"""Context-file discovery across the global, environment and JIT tiers.

Tiers:
    global       ~/.strata/<filename>, always probed, no trust check
    environment  each trusted root, probed exactly at the root
    jit          target path up to the deepest trusted root containing it
    extension    caller-supplied paths, unioned in without trust checks

``load_server_hierarchical_memory`` is the richer startup variant: per
working directory it walks upward to the project root's parent and searches
downward with a bounded BFS.

Upward-stop policies differ: the environment tier stops at the
supplied root, the hierarchical variant stops at the parent of the project
root (or of home). They are separate code paths.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Container, Iterable, Sequence
from pathlib import Path

from strata.batch import DIRECTORY_SCAN_LIMIT, Failed, run_bounded
from strata.config import ContextConfig, FileFilteringOptions, HostEnvironment
from strata.context.filtering import FileDiscoveryService
from strata.context.imports import ImportProcessor, expand_imports
from strata.context.loader import ContextFileLoader
from strata.context.models import (
    ContextFile,
    Found,
    HierarchicalMemory,
    LoadedFile,
    MemoryLoadResult,
)
from strata.context.search import bfs_file_search
from strata.paths import Storage, candidate_path, find_project_root

logger = logging.getLogger(__name__)


def _is_readable(path: str) -> bool:
    return os.access(path, os.R_OK) and os.path.isfile(path)


def _is_within(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def _text_of(content: object) -> str | None:
    if isinstance(content, Found):
        return content.text
    if isinstance(content, str):
        return content
    return None


def concatenate_instructions(
    files: Iterable[LoadedFile | ContextFile],
    display_base_dir: str | Path,
) -> str:
    """Format files as ``--- Context from: ... ---`` blocks separated by a blank line.

    Files with absent or whitespace-only content are skipped. Absolute paths
    are shown relative to ``display_base_dir``.
    """
    blocks: list[str] = []
    for item in files:
        text = _text_of(item.content)
        if text is None or not text.strip():
            continue
        display = (
            os.path.relpath(item.path, str(display_base_dir))
            if os.path.isabs(item.path)
            else item.path
        )
        blocks.append(
            f"--- Context from: {display} ---\n{text.strip()}\n--- End of Context from: {display} ---"
        )
    return "\n\n".join(blocks)


class MemoryDiscovery:
    """Finds and loads context files for one host environment."""

    def __init__(
        self,
        config: ContextConfig,
        env: HostEnvironment,
        *,
        import_processor: ImportProcessor = expand_imports,
        file_service: FileDiscoveryService | None = None,
        logger: logging.Logger = logger,
    ) -> None:
        self.config = config
        self.env = env
        self.file_service = file_service
        self._log = logger
        self.loader = ContextFileLoader(
            env,
            import_format=config.import_format,
            import_processor=import_processor,
            logger=logger,
        )

    # ── Path helpers ─────────────────────────────────────────

    @property
    def resolved_home(self) -> str:
        return os.path.abspath(self.env.home)

    @property
    def global_dir(self) -> str:
        return str(Storage.global_dir(self.env.home, self.config.agent_dir))

    def _debug(self, msg: str, *args: object) -> None:
        if self.env.debug:
            self._log.debug(msg, *args)

    async def _probe(self, path: str) -> bool:
        return await asyncio.to_thread(_is_readable, path)

    async def _load(self, paths: Sequence[str], import_format: str | None = None) -> MemoryLoadResult:
        contents = await self.loader.read_files(paths, import_format)
        return MemoryLoadResult.from_context_files(contents)

    # ── Global tier ──────────────────────────────────────────

    async def load_global_memory(self) -> MemoryLoadResult:
        candidates = [
            Storage.global_context_path(self.env.home, name, self.config.agent_dir)
            for name in self.config.filenames
        ]
        readable = await asyncio.gather(*(self._probe(p) for p in candidates))
        found = [p for p, ok in zip(candidates, readable) if ok]
        for p in found:
            self._debug("Found global context file: %s", p)
        return await self._load(found)

    # ── Upward scan primitive ────────────────────────────────

    async def find_upward_context_files(self, start_dir: str, stop_dir: str) -> list[str]:
        """Probe every filename from start_dir up to stop_dir, inclusive.

        Result is root-to-leaf; within a directory, filename-set order.
        The walk ends without probing if it reaches the global storage dir.
        """
        current = os.path.abspath(start_dir)
        stop = os.path.abspath(stop_dir)
        global_dir = self.global_dir
        self._debug("Starting upward search from %s stopping at %s", current, stop)

        upward: list[str] = []
        while True:
            if current == global_dir:
                break

            candidates = [candidate_path(current, name) for name in self.config.filenames]
            readable = await asyncio.gather(*(self._probe(p) for p in candidates))
            upward[:0] = [p for p, ok in zip(candidates, readable) if ok]

            parent = os.path.dirname(current)
            if current == stop or parent == current:
                break
            current = parent
        return upward

    # ── Environment tier ─────────────────────────────────────

    async def load_environment_memory(
        self,
        trusted_roots: Sequence[str | Path],
        extension_paths: Sequence[str] = (),
    ) -> MemoryLoadResult:
        roots = [os.path.abspath(r) for r in trusted_roots]
        for root in roots:
            self._debug("Loading environment memory for trusted root: %s (stopping here)", root)

        outcomes = await run_bounded(
            [(lambda r=root: self.find_upward_context_files(r, r)) for root in roots],
            DIRECTORY_SCAN_LIMIT,
        )
        all_paths: set[str] = set()
        for root, outcome in zip(roots, outcomes):
            if isinstance(outcome, Failed):
                self._log.error("Error discovering files in %s: %s", root, outcome.error)
                continue
            all_paths.update(outcome.value)
        all_paths.update(extension_paths)

        return await self._load(sorted(all_paths))

    # ── JIT tier ─────────────────────────────────────────────

    def _deepest_trusted_root(self, target: str, trusted_roots: Sequence[str | Path]) -> str | None:
        best: str | None = None
        for root in trusted_roots:
            resolved = os.path.abspath(root)
            if _is_within(target, resolved) and (best is None or len(resolved) > len(best)):
                best = resolved
        return best

    async def load_jit_subdirectory_memory(
        self,
        target_path: str | Path,
        trusted_roots: Sequence[str | Path],
        already_loaded: Container[str],
    ) -> MemoryLoadResult:
        target = os.path.abspath(target_path)
        root = self._deepest_trusted_root(target, trusted_roots)
        if root is None:
            self._debug("JIT memory skipped: %s is not in any trusted root", target)
            return MemoryLoadResult()

        self._debug("Loading JIT memory for %s (trusted root: %s)", target, root)
        candidates = await self.find_upward_context_files(target, root)
        new_paths = [p for p in candidates if p not in already_loaded]
        if not new_paths:
            return MemoryLoadResult()

        self._debug("Found new JIT memory files: %s", new_paths)
        return await self._load(new_paths)

    # ── Hierarchical server-side discovery ───────────────────

    async def _file_service_for(self, root: str) -> FileDiscoveryService | None:
        """Ignore rules for the downward search; None (no filtering) if they cannot be built."""
        if self.file_service is not None:
            return self.file_service
        try:
            return await asyncio.to_thread(FileDiscoveryService, root)
        except Exception as e:
            self._log.warning("Ignoring unusable ignore rules under %s: %s", root, e)
            return None

    async def _paths_for_directory(
        self,
        directory: str,
        extension_paths: Sequence[str],
        folder_trust: bool,
        filtering: FileFilteringOptions,
        max_dirs: int,
    ) -> list[str]:
        home = self.resolved_home
        resolved_dir = os.path.abspath(directory) if directory else home
        found: dict[str, None] = {}

        project_root: Path | None = None
        file_service: FileDiscoveryService | None = None
        if resolved_dir != home and folder_trust:
            project_root = await asyncio.to_thread(
                find_project_root, resolved_dir, quiet=self.env.is_test, log=self._log
            )
            self._debug("Determined project root: %s", project_root or "None")
            file_service = await self._file_service_for(str(project_root or resolved_dir))
        stop_dir = os.path.dirname(str(project_root) if project_root else home)

        for name in self.config.filenames:
            global_path = Storage.global_context_path(self.env.home, name, self.config.agent_dir)
            if await self._probe(global_path):
                found[global_path] = None
                self._debug("Found readable global %s: %s", name, global_path)

            if resolved_dir == home:
                # Home is never treated as a project: no upward/downward scan.
                home_path = candidate_path(home, name)
                if home_path != global_path and await self._probe(home_path):
                    found[home_path] = None
                continue
            if not folder_trust:
                continue

            self._debug("Searching for %s starting from %s", name, resolved_dir)
            upward: list[str] = []
            current = resolved_dir
            while current != os.path.dirname(current):
                if current == self.global_dir:
                    break
                path = candidate_path(current, name)
                if path != global_path and await self._probe(path):
                    upward.insert(0, path)
                if current == stop_dir:
                    break
                current = os.path.dirname(current)
            found.update(dict.fromkeys(upward))

            downward = await bfs_file_search(
                resolved_dir,
                filename=name,
                max_dirs=max_dirs,
                file_service=file_service,
                filtering=filtering,
                debug=self.env.debug,
            )
            found.update(dict.fromkeys(sorted(downward)))

        found.update(dict.fromkeys(extension_paths))
        return list(found)

    async def load_server_hierarchical_memory(
        self,
        cwd: str | Path,
        include_directories: Sequence[str | Path] = (),
        extension_paths: Sequence[str] = (),
        *,
        folder_trust: bool = True,
        import_format: str | None = None,
        filtering: FileFilteringOptions | None = None,
        max_dirs: int | None = None,
    ) -> HierarchicalMemory:
        cwd = str(cwd)
        fmt = import_format or self.config.import_format
        self._debug("Loading server hierarchical memory for CWD: %s (import format: %s)", cwd, fmt)

        if filtering is None:
            filtering = self.config.filtering
        if max_dirs is None:
            max_dirs = self.config.max_dirs

        directories = list(dict.fromkeys([*(str(d) for d in include_directories), cwd]))
        outcomes = await run_bounded(
            [
                (
                    lambda d=d: self._paths_for_directory(
                        d, extension_paths, folder_trust, filtering, max_dirs
                    )
                )
                for d in directories
            ],
            DIRECTORY_SCAN_LIMIT,
        )

        paths: dict[str, None] = {}
        for directory, outcome in zip(directories, outcomes):
            if isinstance(outcome, Failed):
                self._log.error("Error discovering files in %s: %s", directory, outcome.error)
                continue
            paths.update(dict.fromkeys(outcome.value))

        if not paths:
            self._debug("No context files found in hierarchy")
            return HierarchicalMemory()

        self._debug("Final ordered context paths to read: %s", list(paths))
        contents = await self.loader.read_files(list(paths), fmt)
        combined = concatenate_instructions(contents, cwd)
        if combined:
            self._debug("Combined instructions length: %d", len(combined))
        return HierarchicalMemory(
            memory_content=combined,
            file_count=sum(1 for c in contents if isinstance(c.content, Found)),
        )
