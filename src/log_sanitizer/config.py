"""YAML/dict config loader for log-sanitizer.

Supports loading from a YAML file or a plain dict (for embedding in a
larger tool config).

Example YAML:

    log_sanitizer:
      targets:                  # omit for all categories
        - ipv4
        - ipv6
        - email
        - connection_string_secret
      enable_hashing: true
      mask_placeholder: "[REDACTED]"
      salt: null                # null = random per run
      detect_json: true
      overwrite_output: false
      allowed_extensions: [.log, .txt]
      max_workers: 4
"""

from __future__ import annotations
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .sanitizer import LogSanitizer, SanitizationConfig
from .types import PiiCategory


def load_config(data: dict[str, Any]) -> SanitizationConfig:
    """Build a SanitizationConfig from a config dict (from YAML or inline)."""
    # Support nested under "log_sanitizer" key or flat
    if "log_sanitizer" in data:
        data = data["log_sanitizer"] or {}

    config = SanitizationConfig()
    if data.get("targets") is not None:
        config.target_categories = parse_categories(data["targets"])
    if data.get("mask_placeholder") is not None:
        config.mask_placeholder = str(data["mask_placeholder"])
    if data.get("salt") is not None:
        config.salt = str(data["salt"])
    if data.get("allowed_extensions") is not None:
        config.allowed_extensions = set(data["allowed_extensions"])
    config.enable_hashing = bool(data.get("enable_hashing", config.enable_hashing))
    config.detect_json = bool(data.get("detect_json", config.detect_json))
    config.overwrite_output = bool(data.get("overwrite_output", config.overwrite_output))

    workers = data.get("max_workers")
    if workers is not None:
        if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
            raise ConfigError(f"max_workers must be a positive integer, got {workers!r}")
        config.max_workers = workers
    return config


def parse_categories(names: str | list[str]) -> set[PiiCategory]:
    """Accept a list or a comma-separated string of category names."""
    if isinstance(names, str):
        names = [n for n in names.split(",") if n.strip()]
    try:
        return {PiiCategory.parse(n) for n in names}
    except ValueError as exc:
        valid = ", ".join(c.value for c in PiiCategory)
        raise ConfigError(f"{exc} (valid: {valid})") from exc


def load_from_yaml(path: str | Path) -> SanitizationConfig:
    """Load config from a YAML file."""
    import yaml
    with open(path) as f:
        return load_config(yaml.safe_load(f) or {})


def create_sanitizer(config: dict[str, Any] | SanitizationConfig | None = None) -> LogSanitizer:
    """Create a LogSanitizer from a config dict or a ready SanitizationConfig."""
    if isinstance(config, dict):
        config = load_config(config)
    return LogSanitizer(config)
