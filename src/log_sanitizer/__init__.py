"""Log Sanitizer — deterministic PII and secret masking for log files."""

from .sanitizer import LogSanitizer, SanitizationConfig
from .tokens import TokenGenerator
from .config import create_sanitizer, load_config, load_from_yaml
from .errors import (
    SanitizerError, InputNotFoundError, OutputConflictError,
    ProcessingIOError, SanitizerClosedError, ConfigError,
)
from .types import PiiCategory, Detector, ProcessingResult, BatchResult

__all__ = [
    "LogSanitizer", "SanitizationConfig",
    "TokenGenerator",
    "create_sanitizer", "load_config", "load_from_yaml",
    "SanitizerError", "InputNotFoundError", "OutputConflictError",
    "ProcessingIOError", "SanitizerClosedError", "ConfigError",
    "PiiCategory", "Detector", "ProcessingResult", "BatchResult",
]
__version__ = "0.1.0"
