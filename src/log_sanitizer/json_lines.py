"""JSON-aware line handling.

Object-shaped lines (``{...}``) are validated as JSON, then only their string
values are rewritten, each spliced back at its own position.  Keys, numbers
and layout stay byte-for-byte as they were, so ``1.10`` or ``1e400`` never go
through a float.  Anything that does not parse goes through the plain-text
rewriter instead.
"""

from __future__ import annotations
import json
import logging
import re
from typing import Callable

logger = logging.getLogger(__name__)

# One complete JSON string literal, escapes included
_STRING_RE = re.compile(r'"[^"\\]*(?:\\.[^"\\]*)*"')
# A literal followed by ':' is an object key
_KEY_SUFFIX_RE = re.compile(r"\s*:")


class JsonLineHandler:
    """Routes a line to JSON value rewriting or plain-text rewriting."""

    __slots__ = ("_rewrite", "_detect_json")

    def __init__(self, rewrite: Callable[[str], str], *, detect_json: bool = True) -> None:
        self._rewrite = rewrite
        self._detect_json = detect_json

    def handle(self, line: str) -> str:
        stripped = line.strip()
        if not stripped:
            return line
        if self._detect_json and stripped.startswith("{") and stripped.endswith("}"):
            try:
                # Validation only; numbers are kept as text
                json.loads(stripped, parse_int=str, parse_float=str, parse_constant=str)
            except (ValueError, RecursionError) as exc:
                # Best effort only: a value split across quotes can slip through
                logger.debug("Not valid JSON, rewriting as text: %s", exc)
            else:
                return self._rewrite_values(line)
        return self._rewrite(line)

    def _rewrite_values(self, line: str) -> str:
        """Rewrite every string value of a valid JSON line; keys are never touched."""
        pieces: list[str] = []
        last = 0
        for m in _STRING_RE.finditer(line):
            if _KEY_SUFFIX_RE.match(line, m.end()):
                continue
            value = json.loads(m.group())
            rewritten = self._rewrite(value)
            if rewritten == value:
                continue
            pieces.append(line[last:m.start()])
            pieces.append(json.dumps(rewritten, ensure_ascii=False))
            last = m.end()
        if not pieces:
            return line
        pieces.append(line[last:])
        return "".join(pieces)
