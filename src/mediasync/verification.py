from __future__ import annotations

from abc import ABC, abstractmethod
from hashlib import md5, sha256
from pathlib import Path
from typing import Callable, Iterable

from mediasync.models import Outcome


CHUNK_SIZE = 1024 * 1024


def hash_file(path: Path, factory: Callable = sha256) -> str:
    digest = factory()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _same_bytes(left: Path, right: Path) -> bool:
    with left.open("rb") as left_handle, right.open("rb") as right_handle:
        while True:
            left_chunk = left_handle.read(CHUNK_SIZE)
            right_chunk = right_handle.read(CHUNK_SIZE)
            if left_chunk != right_chunk:
                return False
            if not left_chunk:
                return True


def _as_outcome(matches: bool) -> Outcome:
    return Outcome.SAME if matches else Outcome.DIFFERENT


class VerificationStrategy(ABC):
    name: str = ""

    def prepare(self, source_root: Path, destination_root: Path, relative_files: Iterable[Path]) -> None:
        """Called once per run, with the files the run covers, before the first comparison."""

    @abstractmethod
    def compare(self, source_file: Path, destination_file: Path, relative_path: Path) -> Outcome:
        raise NotImplementedError


class ByteSizeStrategy(VerificationStrategy):
    name = "size"

    def compare(self, source_file: Path, destination_file: Path, relative_path: Path) -> Outcome:
        return _as_outcome(source_file.stat().st_size == destination_file.stat().st_size)


class ContentDiffStrategy(VerificationStrategy):
    name = "diff"

    def compare(self, source_file: Path, destination_file: Path, relative_path: Path) -> Outcome:
        if source_file.stat().st_size != destination_file.stat().st_size:
            return Outcome.DIFFERENT
        return _as_outcome(_same_bytes(source_file, destination_file))


class HashManifestStrategy(VerificationStrategy):
    """Compare against a manifest of the source files a run covers.

    The source manifest is built up front in ``prepare``; destination digests
    are added to their own manifest as each pair is compared, so both are
    available for inspection once the run is over.
    """

    name = "hashdeep"

    def __init__(self, factory: Callable = md5) -> None:
        self._factory = factory
        self.source_manifest: dict[str, str] = {}
        self.destination_manifest: dict[str, str] = {}

    def prepare(self, source_root: Path, destination_root: Path, relative_files: Iterable[Path]) -> None:
        self.source_manifest = {}
        self.destination_manifest = {}
        for relative_path in relative_files:
            try:
                digest = hash_file(source_root / relative_path, self._factory)
            except OSError:
                continue
            self.source_manifest[relative_path.as_posix()] = digest

    def compare(self, source_file: Path, destination_file: Path, relative_path: Path) -> Outcome:
        key = relative_path.as_posix()
        expected = self.source_manifest.get(key)
        if expected is None:
            expected = hash_file(source_file, self._factory)
            self.source_manifest[key] = expected
        actual = hash_file(destination_file, self._factory)
        self.destination_manifest[key] = actual
        return _as_outcome(expected == actual)


class Sha256ChecksumStrategy(VerificationStrategy):
    name = "checksum"

    def compare(self, source_file: Path, destination_file: Path, relative_path: Path) -> Outcome:
        return _as_outcome(hash_file(source_file) == hash_file(destination_file))


STRATEGIES: dict[str, type[VerificationStrategy]] = {
    ByteSizeStrategy.name: ByteSizeStrategy,
    ContentDiffStrategy.name: ContentDiffStrategy,
    HashManifestStrategy.name: HashManifestStrategy,
    Sha256ChecksumStrategy.name: Sha256ChecksumStrategy,
}

ALIASES = {
    "file_size": "size",
    "bytesize": "size",
    "contentdiff": "diff",
    "md5": "hashdeep",
    "hashmanifest": "hashdeep",
    "sha256": "checksum",
    "sha256checksum": "checksum",
}


def normalize_strategy_name(name: str) -> str:
    key = name.strip().lower()
    key = ALIASES.get(key, key)
    if key not in STRATEGIES:
        raise ValueError(
            f"Unknown verify mode '{name}'; expected one of: {', '.join(STRATEGIES)}"
        )
    return key


def strategy_for(name: str) -> VerificationStrategy:
    return STRATEGIES[normalize_strategy_name(name)]()
