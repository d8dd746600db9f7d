"""Tests for file/directory processing, config loading and the CLI."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import re
from pathlib import Path

import pytest

from log_sanitizer import (
    LogSanitizer, SanitizationConfig, PiiCategory,
    InputNotFoundError, OutputConflictError, ProcessingIOError, SanitizerClosedError, ConfigError,
    create_sanitizer, load_config, load_from_yaml,
)
from log_sanitizer import files
from log_sanitizer.cli import main


def make(**kwargs) -> LogSanitizer:
    kwargs.setdefault("enable_hashing", False)
    kwargs.setdefault("mask_placeholder", "***")
    return LogSanitizer(SanitizationConfig(**kwargs))


def leftovers(directory: Path) -> list[str]:
    return [p.name for p in directory.iterdir() if p.name.endswith(".tmp")]


# ── Single file ──────────────────────────────────────────────────────

def test_file_sanitized(tmp_path):
    src = tmp_path / "app.log"
    src.write_text("login from 10.0.0.7\nmail a@b.com\nplain line\n")
    out = tmp_path / "out" / "clean.log"

    result = make().process_file(src, out)

    assert result.success
    assert result.output_path == str(out)
    assert out.read_text().splitlines() == ["login from ***", "mail ***", "plain line"]
    assert leftovers(out.parent) == []


def test_file_preserves_line_count(tmp_path):
    src = tmp_path / "app.log"
    src.write_text("a\n\nb\n   \n")
    out = tmp_path / "clean.log"
    make().process_file(src, out)
    assert out.read_text().splitlines() == ["a", "", "b", "   "]


def test_empty_file(tmp_path):
    src = tmp_path / "empty.log"
    src.write_text("")
    out = tmp_path / "empty_out.log"
    progress = []

    make().process_file(src, out, on_progress=progress.append)

    assert out.exists()
    assert out.read_text() == ""
    assert progress == []


def test_missing_input(tmp_path):
    with pytest.raises(InputNotFoundError) as info:
        make().process_file(tmp_path / "nope.log", tmp_path / "out.log")
    assert isinstance(info.value, FileNotFoundError)


def test_existing_output_conflict(tmp_path):
    src = tmp_path / "app.log"
    src.write_text("10.0.0.1\n")
    out = tmp_path / "out.log"
    out.write_text("keep me\n")

    with pytest.raises(OutputConflictError):
        make().process_file(src, out)
    assert out.read_text() == "keep me\n"


def test_existing_output_overwrite(tmp_path):
    src = tmp_path / "app.log"
    src.write_text("10.0.0.1\n")
    out = tmp_path / "out.log"
    out.write_text("old\n")

    make(overwrite_output=True).process_file(src, out)
    assert out.read_text() == "***\n"


def test_same_path_requires_overwrite(tmp_path):
    src = tmp_path / "app.log"
    src.write_text("10.0.0.1\n")
    with pytest.raises(OutputConflictError):
        make().process_file(src, src)
    assert src.read_text() == "10.0.0.1\n"


def test_same_path_in_place(tmp_path):
    src = tmp_path / "app.log"
    src.write_text("from 10.0.0.1\nmail a@b.com\n")

    make(overwrite_output=True).process_file(src, tmp_path / "." / "app.log")

    assert src.read_text() == "from ***\nmail ***\n"
    assert leftovers(tmp_path) == []


def test_progress_monotonic_and_complete(tmp_path):
    src = tmp_path / "app.log"
    src.write_text("".join(f"line {i} from 10.0.0.{i}\n" for i in range(50)))
    progress = []

    make().process_file(src, tmp_path / "out.log", on_progress=progress.append)

    assert len(progress) == 50
    assert progress == sorted(progress)
    assert all(0 <= p <= 100 for p in progress)
    assert progress[-1] == pytest.approx(100.0)


def test_failure_leaves_no_partial_output(tmp_path):
    src = tmp_path / "app.log"
    src.write_text("one\ntwo\nthree\n")
    out = tmp_path / "out.log"

    def handle(line):
        if line == "two":
            raise RuntimeError("boom")
        return line

    with pytest.raises(RuntimeError):
        files.process_file(handle, src, out)
    assert not out.exists()
    assert leftovers(tmp_path) == []


def test_failure_in_place_keeps_original(tmp_path):
    src = tmp_path / "app.log"
    src.write_text("one\ntwo\n")

    def handle(line):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        files.process_file(handle, src, src, overwrite=True)
    assert src.read_text() == "one\ntwo\n"


def test_undecodable_bytes_round_trip(tmp_path):
    src = tmp_path / "app.log"
    src.write_bytes(b"bad \xff byte from 10.0.0.1\n")
    out = tmp_path / "out.log"

    make().process_file(src, out)
    assert out.read_bytes() == b"bad \xff byte from ***" + os.linesep.encode()


def test_input_vanishing_after_check_is_io_error(tmp_path, monkeypatch):
    # Passes the existence check, then is gone when its size is read
    monkeypatch.setattr(Path, "is_file", lambda self: True)
    out = tmp_path / "out.log"

    with pytest.raises(ProcessingIOError):
        files.process_file(lambda line: line, tmp_path / "gone.log", out)
    assert not out.exists()
    assert leftovers(tmp_path) == []


# ── Directory ────────────────────────────────────────────────────────

def test_directory_extension_filter(tmp_path):
    src = tmp_path / "logs"
    src.mkdir()
    (src / "a.log").write_text("10.0.0.1\n")
    (src / "b.txt").write_text("a@b.com\n")
    (src / "c.csv").write_text("10.0.0.2\n")
    (src / "nested").mkdir()
    (src / "nested" / "d.log").write_text("10.0.0.3\n")
    out = tmp_path / "clean"

    batch = make().process_directory(src, out)

    assert batch.total == 2
    assert len(batch.succeeded) == 2
    assert sorted(p.name for p in out.iterdir()) == ["a.log", "b.txt"]
    assert (out / "a.log").read_text() == "***\n"


def test_directory_custom_extensions(tmp_path):
    src = tmp_path / "logs"
    src.mkdir()
    (src / "a.log").write_text("x\n")
    (src / "c.CSV").write_text("y\n")

    batch = make(allowed_extensions={"csv"}).process_directory(src, tmp_path / "clean")
    assert [Path(r.input_path).name for r in batch.results] == ["c.CSV"]


def test_directory_skips_sanitized_outputs(tmp_path):
    src = tmp_path / "logs"
    src.mkdir()
    for name in ("app.log", "app_sanitized.log", "app_sanitized_3.log", "App_SANITIZED.txt"):
        (src / name).write_text("x\n")

    selected = files.select_inputs(src, {".log", ".txt"})
    assert [p.name for p in selected] == ["app.log"]


def test_directory_auto_increment(tmp_path):
    src = tmp_path / "logs"
    src.mkdir()
    (src / "app.log").write_text("10.0.0.1\n")
    out = tmp_path / "clean"
    out.mkdir()
    (out / "app.log").write_text("earlier\n")
    (out / "app_sanitized.log").write_text("earlier\n")

    batch = make().process_directory(src, out)

    assert batch.results[0].output_path == str(out / "app_sanitized_1.log")
    assert (out / "app_sanitized_1.log").read_text() == "***\n"
    assert (out / "app.log").read_text() == "earlier\n"


def test_directory_overwrite_reuses_name(tmp_path):
    src = tmp_path / "logs"
    src.mkdir()
    (src / "app.log").write_text("10.0.0.1\n")
    out = tmp_path / "clean"
    out.mkdir()
    (out / "app.log").write_text("earlier\n")

    make(overwrite_output=True).process_directory(src, out)
    assert (out / "app.log").read_text() == "***\n"
    assert sorted(p.name for p in out.iterdir()) == ["app.log"]


def test_plan_outputs_avoids_batch_collisions(tmp_path):
    inputs = [Path("x/app.log"), Path("y/app.log"), Path("z/app.log")]
    plan = files.plan_outputs(inputs, tmp_path)
    assert [dst.name for _, dst in plan] == ["app.log", "app_sanitized.log", "app_sanitized_1.log"]


def test_directory_missing(tmp_path):
    with pytest.raises(InputNotFoundError):
        make().process_directory(tmp_path / "missing", tmp_path / "out")


def test_directory_empty(tmp_path):
    src = tmp_path / "logs"
    src.mkdir()
    progress = []
    batch = make().process_directory(src, tmp_path / "out", on_progress=progress.append)
    assert batch.total == 0
    assert progress == []
    assert (tmp_path / "out").is_dir()


def test_directory_progress_per_file(tmp_path):
    src = tmp_path / "logs"
    src.mkdir()
    for i in range(4):
        (src / f"f{i}.log").write_text(f"10.0.0.{i}\n")
    progress = []

    make(max_workers=2).process_directory(src, tmp_path / "out", on_progress=progress.append)
    assert progress == [25.0, 50.0, 75.0, 100.0]


def test_directory_failure_isolated(tmp_path):
    src = tmp_path / "logs"
    src.mkdir()
    (src / "good.log").write_text("fine\n")
    (src / "bad.log").write_text("boom\n")
    out = tmp_path / "out"

    def handle(line):
        if line == "boom":
            raise RuntimeError("cannot handle line")
        return line

    batch = files.process_directory(handle, src, out, allowed_extensions={".log"})

    assert batch.total == 2
    assert len(batch.succeeded) == 1
    assert len(batch.failed) == 1
    failed = [r for r in batch.results if not r.success][0]
    assert failed.input_path.endswith("bad.log")
    assert "cannot handle line" in failed.error
    assert not (out / "bad.log").exists()
    assert (out / "good.log").read_text() == "fine\n"
    assert "1 succeeded, 1 failed" in batch.summary()


def test_directory_tokens_consistent_across_files(tmp_path):
    src = tmp_path / "logs"
    src.mkdir()
    for i in range(6):
        (src / f"f{i}.log").write_text("user admin@corp.local\n")
    out = tmp_path / "out"

    sanitizer = LogSanitizer(SanitizationConfig(max_workers=3))
    sanitizer.process_directory(src, out)

    contents = {p.read_text() for p in out.iterdir()}
    assert len(contents) == 1
    assert re.fullmatch(r"user \[EMAIL-[0-9A-F]{6}\]\n", contents.pop())


# ── Lifecycle & config ───────────────────────────────────────────────

def test_closed_sanitizer_rejects_work(tmp_path):
    sanitizer = make()
    sanitizer.sanitize_line("10.0.0.1")
    sanitizer.close()
    assert sanitizer.tokens.size == 0
    with pytest.raises(SanitizerClosedError):
        sanitizer.sanitize_line("10.0.0.1")
    with pytest.raises(SanitizerClosedError):
        sanitizer.process_directory(tmp_path, tmp_path / "out")


def test_context_manager_closes():
    with LogSanitizer() as sanitizer:
        sanitizer.sanitize_line("mail a@b.com")
    with pytest.raises(SanitizerClosedError):
        sanitizer.sanitize_line("x")


def test_fixed_salt_reproducible():
    a = LogSanitizer(SanitizationConfig(salt="shared")).sanitize_line("from 10.0.0.1")
    b = LogSanitizer(SanitizationConfig(salt="shared")).sanitize_line("from 10.0.0.1")
    assert a == b


def test_load_config_nested():
    config = load_config({
        "log_sanitizer": {
            "targets": ["ipv4", "email"],
            "enable_hashing": False,
            "mask_placeholder": "[X]",
            "max_workers": 2,
            "allowed_extensions": [".out"],
        }
    })
    assert config.target_categories == {PiiCategory.IPV4, PiiCategory.EMAIL}
    assert config.enable_hashing is False
    assert config.mask_placeholder == "[X]"
    assert config.max_workers == 2
    assert config.allowed_extensions == {".out"}
    assert config.detect_json is True


def test_load_config_comma_targets():
    config = load_config({"targets": "ipv4, ssn"})
    assert config.target_categories == {PiiCategory.IPV4, PiiCategory.SSN}


def test_load_config_rejects_unknown_category():
    with pytest.raises(ConfigError):
        load_config({"targets": ["ipv4", "passport"]})


def test_load_config_rejects_bad_workers():
    with pytest.raises(ConfigError):
        load_config({"max_workers": 0})
    with pytest.raises(ConfigError):
        load_config({"max_workers": "four"})


def test_load_from_yaml(tmp_path):
    path = tmp_path / "sanitizer.yaml"
    path.write_text(
        "log_sanitizer:\n"
        "  targets: [ipv4]\n"
        "  enable_hashing: false\n"
        "  mask_placeholder: '<ip>'\n"
    )
    sanitizer = create_sanitizer(load_from_yaml(path))
    assert sanitizer.sanitize_line("from 10.0.0.1 a@b.com") == "from <ip> a@b.com"


def test_create_sanitizer_from_dict():
    sanitizer = create_sanitizer({"targets": ["email"], "enable_hashing": False})
    assert sanitizer.sanitize_line("a@b.com 10.0.0.1") == "[REDACTED] 10.0.0.1"


# ── CLI ──────────────────────────────────────────────────────────────

def test_cli_file(tmp_path):
    src = tmp_path / "app.log"
    src.write_text("from 10.0.0.1\n")
    out = tmp_path / "out.log"
    code = main(["--targets", "ipv4", "--no-hashing", "--placeholder", "IP", "file", str(src), str(out)])
    assert code == 0
    assert out.read_text() == "from IP\n"


def test_cli_file_conflict_returns_error(tmp_path, capsys):
    src = tmp_path / "app.log"
    src.write_text("x\n")
    code = main(["file", str(src), str(src)])
    assert code == 1
    assert "ERROR" in capsys.readouterr().err


def test_cli_dir_summary(tmp_path, capsys):
    src = tmp_path / "logs"
    src.mkdir()
    (src / "a.log").write_text("10.0.0.1\n")
    (src / "b.log").write_text("10.0.0.2\n")
    code = main(["--workers", "2", "dir", str(src), str(tmp_path / "out")])
    assert code == 0
    assert "2 succeeded, 0 failed" in capsys.readouterr().out


def test_cli_bad_target_returns_error(tmp_path, capsys):
    code = main(["--targets", "passport", "text"])
    assert code == 1
    assert "passport" in capsys.readouterr().err


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
