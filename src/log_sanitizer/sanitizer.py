"""LogSanitizer — the main API.

Usage:
    from log_sanitizer import LogSanitizer, SanitizationConfig

    with LogSanitizer() as sanitizer:        # one per run; fresh salt
        sanitizer.sanitize_line("login from 10.0.0.7")
        # "login from [IP4-3FA9C1]"

        sanitizer.process_file("app.log", "app_clean.log",
                               on_progress=lambda pct: print(f"{pct:.1f}%"))
        batch = sanitizer.process_directory("logs/", "clean/")
        print(batch.summary())

The same value gets the same token everywhere in a run, including across
files processed in parallel.  A new LogSanitizer (new salt) produces
unrelated tokens.
"""

from __future__ import annotations
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path

from .errors import SanitizerClosedError
from .files import ProgressCallback, process_directory, process_file
from .json_lines import JsonLineHandler
from .patterns import build_detectors
from .rewriter import ContentRewriter
from .tokens import TokenGenerator
from .types import BatchResult, PiiCategory, ProcessingResult


@dataclass
class SanitizationConfig:
    """Configuration for the LogSanitizer."""
    target_categories: set[PiiCategory] = field(default_factory=lambda: set(PiiCategory))
    # Used when hashing is off.  Only a bracketed placeholder is recognized
    # as already masked when a line is sanitized again.
    mask_placeholder: str = "[REDACTED]"
    enable_hashing: bool = True           # [CODE-XXXXXX] tokens instead of the placeholder
    # Per-run random salt; fix it only to correlate tokens across runs
    salt: str = field(default_factory=lambda: secrets.token_hex(16))
    allowed_extensions: set[str] = field(default_factory=lambda: {".log", ".txt"})
    detect_json: bool = True
    overwrite_output: bool = False
    max_workers: int | None = None        # None = os.cpu_count()


class LogSanitizer:
    """Pattern-based log sanitizer.

    Pipeline per line: JSON-aware handling -> ordered rewrite stages ->
    token generator.  Thread-safe: one instance is shared by all workers of
    a directory run.
    """

    def __init__(self, config: SanitizationConfig | None = None) -> None:
        self.config = config or SanitizationConfig()
        self.detectors = build_detectors(self.config.target_categories)
        self.tokens = TokenGenerator(
            self.config.salt,
            enable_hashing=self.config.enable_hashing,
            placeholder=self.config.mask_placeholder,
        )
        self.rewriter = ContentRewriter(self.detectors, self.tokens)
        self._lines = JsonLineHandler(self.rewriter.rewrite, detect_json=self.config.detect_json)
        self._closed = False

    def sanitize_line(self, text: str) -> str:
        """Sanitize a single line (JSON-aware when enabled)."""
        self._check_open()
        return self._lines.handle(text)

    def process_file(
        self,
        input_path: str | os.PathLike,
        output_path: str | os.PathLike,
        on_progress: ProgressCallback | None = None,
    ) -> ProcessingResult:
        """Sanitize one file; progress is reported per line in [0, 100]."""
        self._check_open()
        return process_file(
            self._lines.handle,
            input_path,
            output_path,
            overwrite=self.config.overwrite_output,
            on_progress=on_progress,
        )

    def process_directory(
        self,
        input_dir: str | os.PathLike,
        output_dir: str | os.PathLike,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """Sanitize all eligible files in a folder; progress is per completed file."""
        self._check_open()
        return process_directory(
            self._lines.handle,
            Path(input_dir),
            Path(output_dir),
            allowed_extensions=self.config.allowed_extensions,
            overwrite=self.config.overwrite_output,
            max_workers=self.config.max_workers,
            on_progress=on_progress,
        )

    def close(self) -> None:
        """Drop the token cache.  The instance can't be used afterwards."""
        self.tokens.clear()
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise SanitizerClosedError("LogSanitizer is closed")

    def __enter__(self) -> "LogSanitizer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
