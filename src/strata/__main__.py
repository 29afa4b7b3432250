"""Entry point: python -m strata [context|paths|summarize FILE]

- No args / "context": Print the hierarchical startup context for the CWD
- "paths":             List the context files loaded for this workspace
- "summarize FILE":    Summarize a JSON transcript with the Anthropic API
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

from strata.config import load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _run_context() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from strata.core import Strata

    memory = asyncio.run(Strata(config).load_startup_context())
    if memory.memory_content:
        print(memory.memory_content)
    print(f"\n({memory.file_count} context file(s))", file=sys.stderr)


def _run_paths() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from strata.core import Strata

    strata = Strata(config)
    asyncio.run(strata.refresh_context_memory())
    for path in sorted(strata.context.loaded_paths):
        print(path)


def _run_summarize(transcript: Path) -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from strata.providers.anthropic_api import AnthropicModelClient
    from strata.summary.service import ConversationMessage, SessionSummaryService

    records = json.loads(transcript.read_text(encoding="utf-8"))
    messages = [
        ConversationMessage(role=r.get("role") or "", content=r.get("content") or "")
        for r in records
    ]
    client = AnthropicModelClient(
        model=config.summary.model, max_tokens=config.summary.max_tokens
    )
    summary = asyncio.run(
        SessionSummaryService(client).generate_summary(
            messages,
            max_messages=config.summary.max_messages,
            timeout=config.summary.timeout,
        )
    )
    if summary is None:
        print("(no summary available)", file=sys.stderr)
        sys.exit(1)
    print(summary)


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "context"

    if cmd == "context":
        _run_context()
    elif cmd == "paths":
        _run_paths()
    elif cmd == "summarize" and len(sys.argv) > 2:
        _run_summarize(Path(sys.argv[2]))
    else:
        print("Usage: python -m strata [context|paths|summarize FILE]")
        print("  context         Print the startup context for the CWD (default)")
        print("  paths           List loaded context files")
        print("  summarize FILE  Summarize a JSON transcript")
        sys.exit(1)


if __name__ == "__main__":
    main()
