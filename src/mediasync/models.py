from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import os
from pathlib import Path


def display_path(path: Path) -> str:
    """POSIX form of `path` that is always valid UTF-8; undecodable bytes become \\xNN."""
    return os.fsencode(path.as_posix()).decode("utf-8", "backslashreplace")


class Outcome(str, Enum):
    SAME = "Same"
    DIFFERENT = "Different"
    MISSING = "Missing"
    COPY_FAILED = "CopyFailed"


@dataclass(slots=True)
class FileRecord:
    relative_path: Path
    source: Path
    destination: Path

    @property
    def log_name(self) -> str:
        return display_path(self.relative_path)


@dataclass(slots=True)
class DirectoryTally:
    total: int = 0
    same: int = 0
    different: int = 0
    copy_failed: int = 0
    missing: int = 0

    def record(self, outcome: Outcome) -> None:
        self.total += 1
        if outcome is Outcome.SAME:
            self.same += 1
        elif outcome is Outcome.DIFFERENT:
            self.different += 1
        elif outcome is Outcome.COPY_FAILED:
            self.copy_failed += 1
        else:
            self.missing += 1

    def describe(self) -> str:
        return (
            f"total={self.total} same={self.same} different={self.different} "
            f"copy_failed={self.copy_failed} missing={self.missing}"
        )


@dataclass(slots=True)
class RunCounters:
    overall: DirectoryTally = field(default_factory=DirectoryTally)
    directories: dict[str, DirectoryTally] = field(default_factory=dict)

    def record(self, directory: str, outcome: Outcome) -> DirectoryTally:
        tally = self.directories.setdefault(directory, DirectoryTally())
        tally.record(outcome)
        self.overall.record(outcome)
        return tally


@dataclass(frozen=True, slots=True)
class RunSummary:
    source_root: Path
    destination_root: Path
    strategy: str
    total: int
    same: int
    different: int
    copy_failed: int
    missing: int
    main_log: Path
    diff_log: Path
    copy_fail_log: Path
    directories: tuple[tuple[str, DirectoryTally], ...] = ()
    failed_directories: tuple[str, ...] = ()
    dry_run: bool = False

    @classmethod
    def from_counters(
        cls,
        counters: RunCounters,
        *,
        source_root: Path,
        destination_root: Path,
        strategy: str,
        logs: tuple[Path, Path, Path],
        failed_directories: list[str],
        dry_run: bool,
    ) -> "RunSummary":
        overall = counters.overall
        snapshot = tuple(
            (name, DirectoryTally(t.total, t.same, t.different, t.copy_failed, t.missing))
            for name, t in sorted(counters.directories.items())
        )
        return cls(
            source_root=source_root,
            destination_root=destination_root,
            strategy=strategy,
            total=overall.total,
            same=overall.same,
            different=overall.different,
            copy_failed=overall.copy_failed,
            missing=overall.missing,
            main_log=logs[0],
            diff_log=logs[1],
            copy_fail_log=logs[2],
            directories=snapshot,
            failed_directories=tuple(failed_directories),
            dry_run=dry_run,
        )

    def directory(self, name: str) -> DirectoryTally | None:
        for key, tally in self.directories:
            if key == name:
                return tally
        return None

    def describe(self) -> str:
        return (
            f"total={self.total} same={self.same} different={self.different} "
            f"copy_failed={self.copy_failed} missing={self.missing}"
        )
