from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pathspec


IGNORE_FILE_NAME = ".mediasyncignore"


def _read_patterns(path: Path) -> list[str]:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return []
    return [line for line in lines if line.strip() and not line.lstrip().startswith("#")]


class IgnoreEngine:
    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns = [pattern for pattern in patterns if pattern.strip()]
        self._spec = pathspec.PathSpec.from_lines("gitignore", self.patterns)

    def is_ignored(self, relative_path: Path, is_dir: bool = False) -> bool:
        if not self.patterns:
            return False
        unix_path = relative_path.as_posix()
        if unix_path in ("", "."):
            return False
        candidate = f"{unix_path}/" if is_dir and not unix_path.endswith("/") else unix_path
        return self._spec.match_file(candidate)


def build_ignore_engine(source_root: Path, excludes: Iterable[str] = ()) -> IgnoreEngine:
    patterns = list(excludes)
    patterns.extend(_read_patterns(source_root / IGNORE_FILE_NAME))
    return IgnoreEngine(patterns)
