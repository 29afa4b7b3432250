"""Session-scoped context state: which files the agent has already seen."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from strata.context.discovery import MemoryDiscovery, concatenate_instructions
from strata.context.models import MemoryLoadResult

logger = logging.getLogger(__name__)


class ContextManager:
    """Wraps MemoryDiscovery with a ledger of loaded paths.

    The ledger only grows through the load methods and is cleared by reset().
    Discovery I/O is not cached: every call re-scans.
    """

    def __init__(self, discovery: MemoryDiscovery, working_dir: str | Path) -> None:
        self.discovery = discovery
        self.working_dir = str(working_dir)
        self._loaded_paths: set[str] = set()
        self._global_memory = ""
        self._environment_memory = ""

    @property
    def loaded_paths(self) -> frozenset[str]:
        return frozenset(self._loaded_paths)

    @property
    def global_memory(self) -> str:
        return self._global_memory

    @property
    def environment_memory(self) -> str:
        return self._environment_memory

    def _record(self, result: MemoryLoadResult) -> str:
        self._loaded_paths.update(result.paths)
        return concatenate_instructions(result.files, self.working_dir)

    async def load_global_memory(self) -> str:
        result = await self.discovery.load_global_memory()
        self._global_memory = self._record(result)
        return self._global_memory

    async def load_environment_memory(
        self,
        trusted_roots: Sequence[str | Path],
        extension_paths: Sequence[str] = (),
    ) -> str:
        result = await self.discovery.load_environment_memory(trusted_roots, extension_paths)
        self._environment_memory = self._record(result)
        return self._environment_memory

    async def discover_context(
        self, target_path: str | Path, trusted_roots: Sequence[str | Path]
    ) -> str:
        """Load context files for a newly entered path; "" if nothing new."""
        result = await self.discovery.load_jit_subdirectory_memory(
            target_path, trusted_roots, self._loaded_paths
        )
        if not result.files:
            return ""
        logger.info("Discovered %d new context file(s) for %s", len(result.files), target_path)
        return self._record(result)

    def reset(self) -> None:
        self._loaded_paths.clear()
        self._global_memory = ""
        self._environment_memory = ""
