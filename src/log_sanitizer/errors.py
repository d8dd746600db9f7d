"""Exceptions raised by the sanitizer.

Each one also derives from the matching builtin so callers can catch
``FileNotFoundError`` / ``FileExistsError`` / ``OSError`` as usual.
"""

from __future__ import annotations


class SanitizerError(Exception):
    """Base class for all sanitizer errors."""


class InputNotFoundError(SanitizerError, FileNotFoundError):
    """Input file or directory does not exist."""


class OutputConflictError(SanitizerError, FileExistsError):
    """Output already exists (or equals the input) and overwrite is off."""


class ProcessingIOError(SanitizerError, OSError):
    """Reading or writing failed part-way through a file."""


class SanitizerClosedError(SanitizerError, RuntimeError):
    """The engine was used after close()."""


class ConfigError(SanitizerError, ValueError):
    """Invalid configuration value."""
