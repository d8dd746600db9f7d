"""CLI interface for log-sanitizer.

Usage:
    # Sanitize one file
    python -m log_sanitizer.cli file app.log app_clean.log

    # Sanitize every .log/.txt file in a folder (parallel)
    python -m log_sanitizer.cli --extensions .log,.txt dir logs/ clean/

    # Filter stdin -> stdout, only IPs and e-mails, static placeholder
    tail -f app.log | python -m log_sanitizer.cli --targets ipv4,email --no-hashing text

Options may also come from a YAML file (--config); flags given on the
command line win over the file.
"""

from __future__ import annotations
import argparse
import logging
import sys
import time

from .config import load_from_yaml, parse_categories
from .errors import SanitizerError
from .sanitizer import LogSanitizer, SanitizationConfig


def _build_config(args: argparse.Namespace) -> SanitizationConfig:
    config = load_from_yaml(args.config) if args.config else SanitizationConfig()
    if args.targets:
        config.target_categories = parse_categories(args.targets)
    if args.placeholder is not None:
        config.mask_placeholder = args.placeholder
    if args.no_hashing:
        config.enable_hashing = False
    if args.salt is not None:
        config.salt = args.salt
    if args.no_json:
        config.detect_json = False
    if args.overwrite:
        config.overwrite_output = True
    if args.extensions:
        config.allowed_extensions = {e for e in args.extensions.split(",") if e.strip()}
    if args.workers:
        config.max_workers = args.workers
    return config


def _print_progress(percent: float) -> None:
    sys.stderr.write(f"\rProgress: {percent:5.1f}%")
    sys.stderr.flush()


def cmd_file(args: argparse.Namespace, sanitizer: LogSanitizer) -> int:
    """Sanitize a single file."""
    started = time.perf_counter()
    sanitizer.process_file(args.input, args.output, on_progress=_print_progress)
    elapsed = time.perf_counter() - started
    sys.stderr.write(f"\nDone in {elapsed:.2f}s. Output: {args.output}\n")
    return 0


def cmd_dir(args: argparse.Namespace, sanitizer: LogSanitizer) -> int:
    """Sanitize all eligible files in a directory."""
    batch = sanitizer.process_directory(args.input, args.output, on_progress=_print_progress)
    if batch.total:
        sys.stderr.write("\n")
    sys.stdout.write(batch.summary() + "\n")
    return 1 if batch.failed else 0


def cmd_text(args: argparse.Namespace, sanitizer: LogSanitizer) -> int:
    """Sanitize stdin line by line to stdout."""
    for raw in sys.stdin:
        line = raw[:-1] if raw.endswith("\n") else raw
        sys.stdout.write(sanitizer.sanitize_line(line) + "\n")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="log_sanitizer",
        description="Mask PII and secrets in log files",
    )
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--targets", default="", help="Comma-separated PII categories (default: all)")
    parser.add_argument("--placeholder", default=None, help="Mask used when hashing is off")
    parser.add_argument("--no-hashing", action="store_true", help="Static placeholder instead of tokens")
    parser.add_argument("--salt", default=None, help="Fixed salt (default: random per run)")
    parser.add_argument("--no-json", action="store_true", help="Treat JSON lines as plain text")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite existing output")
    parser.add_argument("--extensions", default="", help="Comma-separated extensions for dir mode")
    parser.add_argument("--workers", type=int, default=0, help="Parallel files in dir mode")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    p_file = sub.add_parser("file", help="Sanitize one file")
    p_file.add_argument("input")
    p_file.add_argument("output")
    p_dir = sub.add_parser("dir", help="Sanitize a directory")
    p_dir.add_argument("input")
    p_dir.add_argument("output")
    sub.add_parser("text", help="Sanitize stdin to stdout")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    cmds = {
        "file": cmd_file,
        "dir": cmd_dir,
        "text": cmd_text,
    }
    try:
        with LogSanitizer(_build_config(args)) as sanitizer:
            return cmds[args.command](args, sanitizer)
    except SanitizerError as exc:
        sys.stderr.write(f"\nERROR: {exc}\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())
