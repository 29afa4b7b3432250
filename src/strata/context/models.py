"""Shared types for context-file discovery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Found:
    """The file was read; ``text`` is its import-expanded content."""

    text: str


@dataclass(frozen=True)
class NotFound:
    """The file was enumerated but could not be read (or vanished)."""

    reason: str = ""


FileContent = Union[Found, NotFound]


@dataclass(frozen=True)
class ContextFile:
    """A loader result for one path."""

    path: str
    content: FileContent


@dataclass(frozen=True)
class LoadedFile:
    """A context file surfaced by a discovery strategy."""

    path: str
    content: str


@dataclass
class MemoryLoadResult:
    files: list[LoadedFile] = field(default_factory=list)

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.files]

    @classmethod
    def from_context_files(cls, files: list[ContextFile]) -> MemoryLoadResult:
        return cls(
            files=[
                LoadedFile(path=f.path, content=f.content.text)
                for f in files
                if isinstance(f.content, Found)
            ]
        )


@dataclass
class HierarchicalMemory:
    """Concatenated startup context plus how many files contributed."""

    memory_content: str = ""
    file_count: int = 0
