"""Single-turn Anthropic API model client, no tools."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from strata.providers.base import GenerationAborted

logger = logging.getLogger(__name__)


@dataclass
class AnthropicModelClient:
    """Direct Anthropic API via the `anthropic` SDK."""

    model: str = "claude-haiku-4-5"
    max_tokens: int = 256

    def __post_init__(self) -> None:
        try:
            import anthropic

            self._client = anthropic.Anthropic()
        except ImportError:
            raise ImportError(
                "anthropic package required. Install with: uv pip install 'strata[api]'"
            )

    @property
    def name(self) -> str:
        return "anthropic_api"

    async def generate_content(self, prompt: str, *, abort_signal: asyncio.Event) -> str:
        call = asyncio.ensure_future(
            asyncio.to_thread(
                self._client.messages.create,
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        )
        aborted = asyncio.ensure_future(abort_signal.wait())
        try:
            done, _ = await asyncio.wait({call, aborted}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            aborted.cancel()
            if not call.done():
                # The worker thread cannot be interrupted; its result is dropped.
                call.cancel()

        if call not in done:
            raise GenerationAborted(f"{self.name}: request aborted")

        response = call.result()
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
