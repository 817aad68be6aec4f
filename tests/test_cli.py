from pathlib import Path

import pytest

from mediasync.cli import main, sync_main
from mediasync.run_service import EXIT_INVALID_CONFIG, EXIT_RUNTIME_OR_CONFIG_ERROR, EXIT_SUCCESS


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_sync_with_positional_paths(tmp_path: Path, capsys) -> None:
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    _write(src / "a.txt", "X")
    _write(src / "sub" / "b.txt", "Y")

    exit_code = main(["sync", str(src), str(dst), "--log-dir", str(tmp_path / "logs"), "--verify-mode", "diff"])

    output = capsys.readouterr().out
    assert exit_code == EXIT_SUCCESS
    assert "total=2 same=2" in output
    assert "[diff]" in output
    assert (dst / "sub" / "b.txt").exists()


def test_sync_prompts_when_paths_are_missing(tmp_path: Path, monkeypatch, capsys) -> None:
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    _write(src / "a.txt", "X")
    answers = iter([str(src), str(dst)])
    monkeypatch.setattr("builtins.input", lambda prompt: next(answers))

    exit_code = main(["sync", "--log-dir", str(tmp_path / "logs")])

    assert exit_code == EXIT_SUCCESS
    assert (dst / "a.txt").exists()


def test_sync_blank_prompt_answer_fails(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.setattr("builtins.input", lambda prompt: "")

    exit_code = main(["sync", "--log-dir", str(tmp_path / "logs")])

    assert exit_code == EXIT_RUNTIME_OR_CONFIG_ERROR
    assert "required" in capsys.readouterr().err


@pytest.mark.parametrize("make_source", ["missing", "empty"])
def test_sync_invalid_source_exits_one(tmp_path: Path, capsys, make_source: str) -> None:
    src = tmp_path / "src"
    if make_source == "empty":
        (src / "nested").mkdir(parents=True)

    exit_code = main(["sync", str(src), str(tmp_path / "dst"), "--log-dir", str(tmp_path / "logs")])

    assert exit_code == EXIT_RUNTIME_OR_CONFIG_ERROR
    assert "Error:" in capsys.readouterr().err
    assert not (tmp_path / "dst").exists()


def test_sync_uncreatable_destination_exits_one(tmp_path: Path, capsys) -> None:
    src = tmp_path / "src"
    _write(src / "a.txt", "X")
    _write(tmp_path / "blocker", "file")

    exit_code = main(["sync", str(src), str(tmp_path / "blocker" / "dst"), "--log-dir", str(tmp_path / "logs")])

    assert exit_code == EXIT_RUNTIME_OR_CONFIG_ERROR


def test_copy_failures_still_exit_zero(tmp_path: Path, monkeypatch, capsys) -> None:
    src = tmp_path / "src"
    _write(src / "a.txt", "X")

    def refuse(*args, **kwargs):
        raise PermissionError("read-only")

    monkeypatch.setattr("mediasync.sync_engine.shutil.copy2", refuse)

    exit_code = sync_main([str(src), str(tmp_path / "dst"), "--log-dir", str(tmp_path / "logs")])

    output = capsys.readouterr().out
    assert exit_code == EXIT_SUCCESS
    assert "copy_failed=1" in output
    assert "copy-fail log:" in output


def test_sync_log_file_option_writes_rotating_log(tmp_path: Path, capsys) -> None:
    src = tmp_path / "src"
    _write(src / "a.txt", "X")
    log_file = tmp_path / "app" / "mediasync.log"

    exit_code = sync_main(
        [str(src), str(tmp_path / "dst"), "--log-dir", str(tmp_path / "logs"), "--log-file", str(log_file)]
    )

    assert exit_code == EXIT_SUCCESS
    assert "Run complete" in log_file.read_text(encoding="utf-8")


def _config(tmp_path: Path, src: Path, dst: Path) -> Path:
    config_file = tmp_path / "cfg.yaml"
    config_file.write_text(
        "\n".join(
            [
                "jobs:",
                "  - name: media",
                "    verifyMode: hashdeep",
                f"    logDir: {(tmp_path / 'logs').as_posix()}",
                "    pairs:",
                f"      - source: {src.as_posix()}",
                f"        destination: {dst.as_posix()}",
                "        excludes: ['*.tmp']",
            ]
        ),
        encoding="utf-8",
    )
    return config_file


def test_run_command_executes_config(tmp_path: Path, capsys) -> None:
    src = tmp_path / "camera"
    dst = tmp_path / "backup"
    _write(src / "a.jpg", "img")

    exit_code = main(["run", "--config", str(_config(tmp_path, src, dst))])

    assert exit_code == EXIT_SUCCESS
    assert "[hashdeep]" in capsys.readouterr().out
    assert (dst / "a.jpg").exists()


def test_validate_config_prints_job_summary(tmp_path: Path, capsys) -> None:
    exit_code = main(["validate-config", "--config", str(_config(tmp_path, tmp_path / "s", tmp_path / "d"))])

    output = capsys.readouterr().out
    assert exit_code == EXIT_SUCCESS
    assert "job=media" in output
    assert "pairs=1" in output
    assert "verifyMode=hashdeep" in output


def test_validate_config_reports_invalid(tmp_path: Path, capsys) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text("jobs: nope", encoding="utf-8")

    assert main(["validate-config", "--config", str(bad)]) == EXIT_INVALID_CONFIG
    assert "Invalid config" in capsys.readouterr().err


def test_list_prints_pairs(tmp_path: Path, capsys) -> None:
    src = tmp_path / "camera"
    dst = tmp_path / "backup"

    exit_code = main(["list", "--config", str(_config(tmp_path, src, dst))])

    output = capsys.readouterr().out
    assert exit_code == EXIT_SUCCESS
    assert "job: media (verifyMode=hashdeep)" in output
    assert f"{src} -> {dst} excludes=*.tmp" in output
