from pathlib import Path

import pytest

from mediasync.models import Outcome
from mediasync.verification import (
    ByteSizeStrategy,
    ContentDiffStrategy,
    HashManifestStrategy,
    Sha256ChecksumStrategy,
    normalize_strategy_name,
    strategy_for,
)


def _pair(tmp_path: Path, left: bytes, right: bytes) -> tuple[Path, Path]:
    source = tmp_path / "src.bin"
    destination = tmp_path / "dst.bin"
    source.write_bytes(left)
    destination.write_bytes(right)
    return source, destination


@pytest.mark.parametrize(
    "strategy", [ByteSizeStrategy(), ContentDiffStrategy(), Sha256ChecksumStrategy(), HashManifestStrategy()]
)
def test_identical_files_are_same(tmp_path: Path, strategy) -> None:
    source, destination = _pair(tmp_path, b"payload" * 1000, b"payload" * 1000)

    assert strategy.compare(source, destination, Path("src.bin")) is Outcome.SAME


def test_size_only_sees_length_changes(tmp_path: Path) -> None:
    source, destination = _pair(tmp_path, b"aaaa", b"aaab")
    assert ByteSizeStrategy().compare(source, destination, Path("x")) is Outcome.SAME

    source, destination = _pair(tmp_path, b"aaaa", b"aaaaa")
    assert ByteSizeStrategy().compare(source, destination, Path("x")) is Outcome.DIFFERENT


def test_content_diff_detects_late_byte_change(tmp_path: Path) -> None:
    size = 3 * 1024 * 1024
    source, destination = _pair(tmp_path, b"\0" * size, b"\0" * (size - 1) + b"\1")

    assert ContentDiffStrategy().compare(source, destination, Path("x")) is Outcome.DIFFERENT


def test_checksum_detects_same_size_change(tmp_path: Path) -> None:
    source, destination = _pair(tmp_path, b"abcd", b"abce")

    assert Sha256ChecksumStrategy().compare(source, destination, Path("x")) is Outcome.DIFFERENT


def test_hash_manifest_prepares_source_manifest(tmp_path: Path) -> None:
    source_root = tmp_path / "src"
    (source_root / "sub").mkdir(parents=True)
    (source_root / "sub" / "a.txt").write_text("A", encoding="utf-8")
    destination_root = tmp_path / "dst"
    (destination_root / "sub").mkdir(parents=True)
    (destination_root / "sub" / "a.txt").write_text("B", encoding="utf-8")

    strategy = HashManifestStrategy()
    strategy.prepare(source_root, destination_root, [Path("sub/a.txt")])

    assert list(strategy.source_manifest) == ["sub/a.txt"]
    outcome = strategy.compare(
        source_root / "sub" / "a.txt", destination_root / "sub" / "a.txt", Path("sub/a.txt")
    )
    assert outcome is Outcome.DIFFERENT
    assert strategy.destination_manifest["sub/a.txt"] != strategy.source_manifest["sub/a.txt"]


def test_missing_destination_raises_os_error(tmp_path: Path) -> None:
    source = tmp_path / "src.bin"
    source.write_bytes(b"x")

    with pytest.raises(OSError):
        Sha256ChecksumStrategy().compare(source, tmp_path / "absent", Path("absent"))


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("size", "size"),
        ("file_size", "size"),
        ("DIFF", "diff"),
        ("md5", "hashdeep"),
        ("sha256", "checksum"),
        (" checksum ", "checksum"),
    ],
)
def test_strategy_names_and_aliases(name: str, expected: str) -> None:
    assert normalize_strategy_name(name) == expected
    assert strategy_for(name).name == expected


def test_unknown_strategy_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown verify mode"):
        strategy_for("crc32")


def test_hash_manifest_hashes_only_the_files_it_is_given(tmp_path: Path) -> None:
    source_root = tmp_path / "src"
    (source_root / "cache").mkdir(parents=True)
    (source_root / "keep.txt").write_text("keep", encoding="utf-8")
    (source_root / "cache" / "big.bin").write_bytes(b"x" * 4096)

    strategy = HashManifestStrategy()
    strategy.prepare(source_root, tmp_path / "dst", [Path("keep.txt"), Path("gone.txt")])

    assert list(strategy.source_manifest) == ["keep.txt"]
