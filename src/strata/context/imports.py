"""Expansion of ``@path/to/file.md`` import directives inside context files.

Two output formats:

- ``tree``: each directive is replaced in place by the imported content,
  wrapped in ``<!-- Imported from: ... -->`` markers. Nested imports expand
  recursively.
- ``flat``: the root content is kept as written and every imported file is
  appended once as a ``--- File: ... ---`` block.

Bad imports (missing, unreadable, circular, too deep) leave an HTML comment
in place of the directive. Expansion never raises for them.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

MAX_IMPORT_DEPTH = 5

IMPORT_RE = re.compile(r"(?<![\w`@])@((?:~/|\.{1,2}/|/)?[^\s`'\"<>()\[\]]+\.md)\b")
FENCE_RE = re.compile(r"^\s*(```|~~~)")


@dataclass
class ImportResult:
    content: str
    imported: list[str] = field(default_factory=list)


class ImportProcessor(Protocol):
    def __call__(
        self,
        text: str,
        base_dir: str,
        import_format: str = "tree",
        *,
        home: Path | None = None,
        source: str | None = None,
    ) -> ImportResult: ...


def _resolve(raw: str, base_dir: str, home: Path | None) -> str:
    if raw.startswith("~/"):
        root = str(home) if home is not None else os.path.expanduser("~")
        return os.path.abspath(os.path.join(root, raw[2:]))
    return os.path.abspath(os.path.join(base_dir, raw))


def _split_fenced(text: str) -> list[tuple[bool, str]]:
    """Split text into (is_code, chunk) runs so fenced blocks are left alone."""
    runs: list[tuple[bool, str]] = []
    buf: list[str] = []
    in_fence = False
    for line in text.splitlines(keepends=True):
        if FENCE_RE.match(line):
            if not in_fence:
                if buf:
                    runs.append((False, "".join(buf)))
                buf = [line]
                in_fence = True
            else:
                buf.append(line)
                runs.append((True, "".join(buf)))
                buf = []
                in_fence = False
            continue
        buf.append(line)
    if buf:
        runs.append((in_fence, "".join(buf)))
    return runs


class _Expander:
    def __init__(self, import_format: str, home: Path | None) -> None:
        self.import_format = import_format
        self.home = home
        self.imported: list[str] = []
        self.flat_blocks: list[str] = []

    def expand(self, text: str, base_dir: str, stack: tuple[str, ...]) -> str:
        out: list[str] = []
        for is_code, chunk in _split_fenced(text):
            if is_code:
                out.append(chunk)
            else:
                out.append(
                    IMPORT_RE.sub(lambda m: self._replace(m.group(1), base_dir, stack), chunk)
                )
        return "".join(out)

    def _replace(self, raw: str, base_dir: str, stack: tuple[str, ...]) -> str:
        target = _resolve(raw, base_dir, self.home)

        if target in stack:
            return f"<!-- Import skipped (circular): {raw} -->"
        if len(stack) > MAX_IMPORT_DEPTH:
            return f"<!-- Import skipped (max depth {MAX_IMPORT_DEPTH}): {raw} -->"
        try:
            with open(target, encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            return f"<!-- Import failed: {raw} - not found -->"
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Import of %s failed: %s", target, e)
            return f"<!-- Import failed: {raw} - {e.__class__.__name__} -->"

        expanded = self.expand(content, os.path.dirname(target), stack + (target,))

        if target not in self.imported:
            self.imported.append(target)
            if self.import_format == "flat":
                self.flat_blocks.append(
                    f"--- File: {target} ---\n{expanded.strip()}\n--- End of File: {target} ---"
                )

        if self.import_format == "flat":
            return f"@{raw}"
        return f"<!-- Imported from: {raw} -->\n{expanded.strip()}\n<!-- End of import from: {raw} -->"


def expand_imports(
    text: str,
    base_dir: str,
    import_format: str = "tree",
    *,
    home: Path | None = None,
    source: str | None = None,
) -> ImportResult:
    """Expand import directives in ``text``, resolving relative to ``base_dir``.

    ``source`` is the path of the file ``text`` came from; it seeds cycle
    detection so a file importing itself is reported as circular.
    """
    if import_format not in ("flat", "tree"):
        raise ValueError(f"Unknown import format: {import_format}")

    expander = _Expander(import_format, home)
    stack = (os.path.abspath(source),) if source else ()
    content = expander.expand(text, os.path.abspath(base_dir), stack)
    if import_format == "flat" and expander.flat_blocks:
        content = "\n\n".join([content.rstrip(), *expander.flat_blocks])
    return ImportResult(content=content, imported=list(expander.imported))
