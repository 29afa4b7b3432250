"""Model client protocol and shared types."""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable


class GenerationAborted(Exception):
    """Raised by a client that noticed its abort signal fire."""


@runtime_checkable
class ModelClient(Protocol):
    """Protocol that all model backends must implement."""

    @property
    def name(self) -> str: ...

    async def generate_content(self, prompt: str, *, abort_signal: asyncio.Event) -> str:
        """Run a single-turn completion and return the answer text.

        Implementations should stop waiting and raise GenerationAborted once
        ``abort_signal`` is set.
        """
        ...
