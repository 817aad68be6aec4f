from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TextIO

from mediasync.models import Outcome


TIMESTAMP_FORMAT = "%y-%j-%H%M%S"


def _log_names(prefix: str, stamp: str) -> tuple[str, str, str]:
    return (
        f"{prefix}_{stamp}.log",
        f"{prefix}-diff_{stamp}.log",
        f"{prefix}-copyfail_{stamp}.log",
    )


def _unused_stamp(log_dir: Path, prefix: str, stamp: str) -> str:
    candidate = stamp
    suffix = 0
    while any((log_dir / name).exists() for name in _log_names(prefix, candidate)):
        suffix += 1
        candidate = f"{stamp}-{suffix}"
    return candidate


class RunLog:
    """Main, diff and copy-fail logs for one run; append-only."""

    def __init__(self, main_path: Path, diff_path: Path, copy_fail_path: Path) -> None:
        self.main_path = main_path
        self.diff_path = diff_path
        self.copy_fail_path = copy_fail_path
        self._handles: list[TextIO] = []
        self._main: TextIO | None = None
        self._diff: TextIO | None = None
        self._copy_fail: TextIO | None = None

    @classmethod
    def create(cls, log_dir: Path, prefix: str = "mediasync", now: datetime | None = None) -> "RunLog":
        started = now or datetime.now()
        log_dir.mkdir(parents=True, exist_ok=True)
        stamp = _unused_stamp(log_dir, prefix, started.strftime(TIMESTAMP_FORMAT))
        main_name, diff_name, copy_fail_name = _log_names(prefix, stamp)
        run_log = cls(log_dir / main_name, log_dir / diff_name, log_dir / copy_fail_name)
        run_log.open(started)
        return run_log

    @property
    def paths(self) -> tuple[Path, Path, Path]:
        return self.main_path, self.diff_path, self.copy_fail_path

    def open(self, started: datetime) -> None:
        self._main = self.main_path.open("a", encoding="utf-8", errors="backslashreplace")
        self._diff = self.diff_path.open("a", encoding="utf-8", errors="backslashreplace")
        self._copy_fail = self.copy_fail_path.open("a", encoding="utf-8", errors="backslashreplace")
        self._handles = [self._main, self._diff, self._copy_fail]
        header = f"Comparison started at {started.isoformat(timespec='seconds')}"
        for handle in self._handles:
            self._write(handle, header)

    @staticmethod
    def _write(handle: TextIO, line: str) -> None:
        handle.write(line.replace("\n", " ") + "\n")
        handle.flush()

    def note(self, message: str) -> None:
        if self._main is None:
            raise RuntimeError("Run log is not open")
        self._write(self._main, message)

    def record(self, outcome: Outcome, relative_name: str) -> None:
        if self._main is None or self._diff is None or self._copy_fail is None:
            raise RuntimeError("Run log is not open")
        line = f"{outcome.value}: {relative_name}"
        self._write(self._main, line)
        if outcome is Outcome.DIFFERENT:
            self._write(self._diff, line)
        elif outcome is Outcome.COPY_FAILED:
            self._write(self._copy_fail, line)

    def close(self) -> None:
        for handle in self._handles:
            handle.close()
        self._handles = []
        self._main = self._diff = self._copy_fail = None

    def __enter__(self) -> "RunLog":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
