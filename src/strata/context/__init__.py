"""Hierarchical context files and the per-session record of which were loaded.

Layout searched:
    ~/.strata/STRATA.md                 # Global tier
    <trusted root>/STRATA.md            # Environment tier
    <trusted root>/sub/dir/STRATA.md    # JIT tier, loaded when the agent enters sub/dir

Every directory is probed once per configured filename (STRATA.md, AGENTS.md).
"""

from strata.context.discovery import MemoryDiscovery, concatenate_instructions
from strata.context.manager import ContextManager
from strata.context.models import (
    ContextFile,
    Found,
    HierarchicalMemory,
    LoadedFile,
    MemoryLoadResult,
    NotFound,
)

__all__ = [
    "ContextFile",
    "ContextManager",
    "Found",
    "HierarchicalMemory",
    "LoadedFile",
    "MemoryDiscovery",
    "MemoryLoadResult",
    "NotFound",
    "concatenate_instructions",
]
