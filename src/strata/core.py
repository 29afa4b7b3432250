"""Strata session facade.

Responsibilities:
1. Startup context: global + environment tiers into ``user_memory``
2. JIT context: new files when the agent enters a subdirectory
3. Hierarchical startup context for server-style callers
4. End-of-session summary via the configured model client
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from strata.config import StrataConfig
from strata.context.discovery import MemoryDiscovery
from strata.context.manager import ContextManager
from strata.context.models import HierarchicalMemory
from strata.summary.utils import generate_and_save_summary

if TYPE_CHECKING:
    from strata.context.filtering import FileDiscoveryService
    from strata.providers.base import ModelClient
    from strata.summary.utils import ChatRecorder

logger = logging.getLogger(__name__)


class Strata:
    """One agent session's view of its context files."""

    def __init__(
        self,
        config: StrataConfig,
        *,
        file_service: FileDiscoveryService | None = None,
        model_client: ModelClient | None = None,
    ) -> None:
        self.config = config
        self.discovery = MemoryDiscovery(config.context, config.env, file_service=file_service)
        self.context = ContextManager(self.discovery, config.cwd)
        self.model_client = model_client
        self.user_memory = ""
        self.context_file_count = 0

    @property
    def workspace_directories(self) -> list[Path]:
        dirs = [self.config.cwd, *self.config.context.include_directories]
        return list(dict.fromkeys(Path(os.path.abspath(d)) for d in dirs))

    # ── Context memory ───────────────────────────────────────

    async def refresh_context_memory(self, force: bool = False) -> str:
        """Load global + environment memory. Existing memory is kept unless forced."""
        if self.user_memory and not force:
            return self.user_memory

        global_memory = await self.context.load_global_memory()
        environment_memory = ""
        if self.config.context.folder_trust:
            environment_memory = await self.context.load_environment_memory(
                [str(d) for d in self.workspace_directories],
                self.config.context.extension_paths,
            )
        else:
            logger.info("Folder is untrusted, skipping workspace context files")

        self.user_memory = "\n\n".join(p for p in (global_memory, environment_memory) if p)
        self.context_file_count = len(self.context.loaded_paths)
        logger.info("Loaded %d context file(s)", self.context_file_count)
        return self.user_memory

    async def enter_directory(self, path: str | Path) -> str:
        """Context for a path the agent starts working in; "" if nothing new."""
        if not self.config.context.folder_trust:
            return ""
        found = await self.context.discover_context(
            path, [str(d) for d in self.workspace_directories]
        )
        self.context_file_count = len(self.context.loaded_paths)
        return found

    async def load_startup_context(self) -> HierarchicalMemory:
        return await self.discovery.load_server_hierarchical_memory(
            self.config.cwd,
            self.config.context.include_directories,
            self.config.context.extension_paths,
            folder_trust=self.config.context.folder_trust,
        )

    def reset(self) -> None:
        self.context.reset()
        self.user_memory = ""
        self.context_file_count = 0

    # ── Session end ──────────────────────────────────────────

    async def summarize(self, recorder: ChatRecorder | None) -> None:
        if self.model_client is None:
            logger.debug("No model client configured, skipping session summary")
            return
        await generate_and_save_summary(
            recorder,
            self.model_client,
            max_messages=self.config.summary.max_messages,
            timeout=self.config.summary.timeout,
        )
