"""File and directory processing.

Single files stream line by line through a line handler into a sibling
temp file that replaces the output only once the whole input has been
written, so a failure never leaves partial output behind (this is also
what makes in-place overwrite safe).

Directories fan out one file per worker thread.  Output names are planned
up front, before any worker starts, so two workers can never race for the
same destination.
"""

from __future__ import annotations
import logging
import os
import re
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Iterable

from .errors import InputNotFoundError, OutputConflictError, ProcessingIOError
from .types import BatchResult, ProcessingResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

SANITIZED_SUFFIX = "_sanitized"
_SANITIZED_STEM_RE = re.compile(rf"{SANITIZED_SUFFIX}(?:_\d+)?$", re.IGNORECASE)

# Encoding used for logs; undecodable bytes round-trip via surrogateescape
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


def process_file(
    handle_line: Callable[[str], str],
    input_path: str | Path,
    output_path: str | Path,
    *,
    overwrite: bool = False,
    on_progress: ProgressCallback | None = None,
) -> ProcessingResult:
    """Sanitize one file.  Raises on any failure."""
    source = Path(input_path)
    if not source.is_file():
        raise InputNotFoundError(f"Input file not found: {source}")

    source_real = source.resolve()
    target = Path(output_path)
    target_real = target.resolve()

    if os.path.normcase(source_real) == os.path.normcase(target_real):
        if not overwrite:
            raise OutputConflictError(
                f"Input and output are the same file: {source}. "
                "Enable overwrite to sanitize in place."
            )
    elif target.exists() and not overwrite:
        raise OutputConflictError(f"Output file already exists: {target}")

    try:
        total_bytes = source_real.stat().st_size
    except OSError as exc:
        raise ProcessingIOError(f"Cannot read {source}: {exc}") from exc
    try:
        target_real.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ProcessingIOError(f"Cannot create output directory for {target}: {exc}") from exc
    newline_len = len(os.linesep)

    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target_real.name}.", suffix=".tmp", dir=target_real.parent
        )
    except OSError as exc:
        raise ProcessingIOError(f"Cannot create temporary file next to {target}: {exc}") from exc

    try:
        with os.fdopen(fd, "w", encoding=_ENCODING, errors=_ERRORS) as writer, \
                open(source_real, encoding=_ENCODING, errors=_ERRORS, newline=None) as reader:
            processed = 0
            for raw in reader:
                line = raw[:-1] if raw.endswith("\n") else raw
                writer.write(handle_line(line))
                writer.write("\n")  # translated to os.linesep
                if on_progress is not None and total_bytes:
                    processed += len(line) + newline_len
                    on_progress(min(100.0, processed / total_bytes * 100))
        shutil.copymode(source_real, tmp_name)  # mkstemp creates 0600 files
        os.replace(tmp_name, target_real)
    except OSError as exc:
        _discard(tmp_name)
        raise ProcessingIOError(f"Failed to sanitize {source}: {exc}") from exc
    except BaseException:
        _discard(tmp_name)
        raise

    logger.info("Sanitized %s -> %s", source, target)
    return ProcessingResult(input_path=str(source), output_path=str(target))


def _discard(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


def process_directory(
    handle_line: Callable[[str], str],
    input_dir: str | Path,
    output_dir: str | Path,
    *,
    allowed_extensions: Iterable[str],
    overwrite: bool = False,
    max_workers: int | None = None,
    on_progress: ProgressCallback | None = None,
) -> BatchResult:
    """Sanitize every eligible top-level file of ``input_dir``.

    Per-file failures are recorded in the returned BatchResult; only a
    missing input directory fails the whole call.
    """
    source_dir = Path(input_dir)
    if not source_dir.is_dir():
        raise InputNotFoundError(f"Input directory not found: {source_dir}")
    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    inputs = select_inputs(source_dir, allowed_extensions)
    plan = plan_outputs(inputs, target_dir, overwrite=overwrite)
    batch = BatchResult()
    if not plan:
        logger.info("No eligible files in %s", source_dir)
        return batch

    workers = max_workers or os.cpu_count() or 1
    logger.info("Sanitizing %d file(s) from %s with %d worker(s)", len(plan), source_dir, workers)

    def _run(src: Path, dst: Path) -> ProcessingResult:
        return process_file(handle_line, src, dst, overwrite=overwrite)

    completed = 0
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="log-sanitizer") as pool:
        futures = {pool.submit(_run, src, dst): (src, dst) for src, dst in plan}
        for future in as_completed(futures):
            src, dst = futures[future]
            try:
                result = future.result()
            except Exception as exc:
                logger.warning("Failed to sanitize %s: %s", src, exc)
                result = ProcessingResult(
                    input_path=str(src), output_path=str(dst), success=False, error=str(exc)
                )
            batch.results.append(result)
            completed += 1
            if on_progress is not None:
                on_progress(completed / len(plan) * 100)

    batch.results.sort(key=lambda r: r.input_path)
    logger.info("Batch finished: %s", batch.summary().splitlines()[0])
    return batch


def select_inputs(source_dir: Path, allowed_extensions: Iterable[str]) -> list[Path]:
    """Top-level files with an allowed extension that aren't earlier output."""
    allowed = {_normalize_extension(e) for e in allowed_extensions}
    selected = []
    for path in sorted(source_dir.iterdir()):
        if not path.is_file():
            continue
        if path.suffix.lower() not in allowed:
            continue
        if _SANITIZED_STEM_RE.search(path.stem):
            logger.debug("Skipping already sanitized file %s", path.name)
            continue
        selected.append(path)
    return selected


def plan_outputs(
    inputs: Iterable[Path], target_dir: Path, *, overwrite: bool = False
) -> list[tuple[Path, Path]]:
    """Pick a destination per input that collides with nothing on disk or in the batch.

    Tries ``name.ext``, then ``name_sanitized.ext``, then
    ``name_sanitized_1.ext``, ``name_sanitized_2.ext``, ...
    With overwrite on, the plain name is always used.
    """
    reserved: set[Path] = set()
    plan = []
    for src in inputs:
        dst = target_dir / src.name
        if not overwrite:
            dst = _free_name(src, target_dir, reserved)
        reserved.add(dst)
        logger.debug("Planned %s -> %s", src.name, dst.name)
        plan.append((src, dst))
    return plan


def _free_name(src: Path, target_dir: Path, reserved: set[Path]) -> Path:
    def taken(p: Path) -> bool:
        return p in reserved or p.exists()

    candidate = target_dir / src.name
    if not taken(candidate):
        return candidate
    candidate = target_dir / f"{src.stem}{SANITIZED_SUFFIX}{src.suffix}"
    n = 1
    while taken(candidate):
        candidate = target_dir / f"{src.stem}{SANITIZED_SUFFIX}_{n}{src.suffix}"
        n += 1
    return candidate


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"
