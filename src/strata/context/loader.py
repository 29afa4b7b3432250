"""Read context files and run them through import expansion."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from strata.batch import FILE_READ_LIMIT, Failed, run_bounded
from strata.config import HostEnvironment
from strata.context.imports import ImportProcessor, expand_imports
from strata.context.models import ContextFile, Found, NotFound

logger = logging.getLogger(__name__)


class ContextFileLoader:
    """Reads candidate paths, FILE_READ_LIMIT at a time. Never raises for a bad file."""

    def __init__(
        self,
        env: HostEnvironment,
        *,
        import_format: str = "tree",
        import_processor: ImportProcessor = expand_imports,
        logger: logging.Logger = logger,
    ) -> None:
        self.env = env
        self.import_format = import_format
        self._expand = import_processor
        self._log = logger

    def _read_one(self, path: str, import_format: str) -> ContextFile:
        try:
            raw = Path(path).read_text(encoding="utf-8")
            result = self._expand(
                raw, os.path.dirname(path), import_format, home=self.env.home, source=path
            )
        except FileNotFoundError:
            if self.env.debug:
                self._log.debug("Context file vanished before read: %s", path)
            return ContextFile(path, NotFound("not found"))
        except Exception as e:
            if not self.env.is_test:
                self._log.warning("Could not read context file at %s: %s", path, e)
            return ContextFile(path, NotFound(str(e)))

        if self.env.debug:
            self._log.debug(
                "Read and processed imports: %s (length: %d)", path, len(result.content)
            )
        return ContextFile(path, Found(result.content))

    async def read_files(
        self, paths: Sequence[str], import_format: str | None = None
    ) -> list[ContextFile]:
        fmt = import_format or self.import_format
        units = [
            (lambda p=path: asyncio.to_thread(self._read_one, p, fmt)) for path in paths
        ]
        outcomes = await run_bounded(units, FILE_READ_LIMIT)

        files: list[ContextFile] = []
        for path, outcome in zip(paths, outcomes):
            if isinstance(outcome, Failed):
                # _read_one catches everything; this only fires if the worker itself fails.
                self._log.error("Unexpected error processing %s: %s", path, outcome.error)
                files.append(ContextFile(path, NotFound(str(outcome.error))))
            else:
                files.append(outcome.value)
        return files
