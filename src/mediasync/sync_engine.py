from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import shutil
import tempfile
from typing import Iterator

from mediasync.errors import DestinationUncreatable, InvalidMapping, InvalidSource
from mediasync.ignore_engine import IgnoreEngine, build_ignore_engine
from mediasync.models import FileRecord, Outcome, RunCounters, RunSummary, display_path
from mediasync.notifier import LogNotifier, Notifier, safe_notify
from mediasync.progress import ProgressTracker
from mediasync.run_log import RunLog
from mediasync.verification import VerificationStrategy, strategy_for


DEFAULT_PROGRESS_INTERVAL = 100


@dataclass(slots=True)
class SyncOptions:
    dry_run: bool = False
    overwrite_different: bool = False
    excludes: list[str] = field(default_factory=list)
    follow_symlinks: bool = False
    progress_percent: int | None = None
    log_dir: Path | None = None
    log_prefix: str = "mediasync"


def _validate_paths(source_root: Path, destination_root: Path) -> None:
    source_resolved = source_root.resolve()
    destination_resolved = destination_root.resolve()

    if source_resolved == destination_resolved:
        raise InvalidMapping(f"Source and destination are the same directory: {source_root}")

    if destination_resolved.is_relative_to(source_resolved):
        raise InvalidMapping(
            f"Destination is inside source, which would recurse: {destination_root}"
        )


def _walk(
    source_root: Path,
    ignore: IgnoreEngine,
    follow_symlinks: bool,
    skip: frozenset[Path] = frozenset(),
) -> Iterator[tuple[Path, list[Path]]]:
    """Yield ``(relative_dir, relative_files)`` for every kept directory.

    Only regular files are listed; excluded directories are pruned.
    """
    for root_str, dirs, files in os.walk(source_root, topdown=True, followlinks=follow_symlinks):
        root = Path(root_str)
        root_rel = root.relative_to(source_root)

        dirs[:] = sorted(
            name for name in dirs if not ignore.is_ignored(root_rel / name, is_dir=True)
        )

        kept_files: list[Path] = []
        for file_name in sorted(files):
            rel_path = root_rel / file_name
            if rel_path in skip or ignore.is_ignored(rel_path):
                continue
            if not (root / file_name).is_file():
                continue
            kept_files.append(rel_path)

        yield root_rel, kept_files


def _scan_source(
    source_root: Path, ignore: IgnoreEngine, follow_symlinks: bool
) -> tuple[list[Path], list[Path]]:
    directories: list[Path] = []
    files: list[Path] = []
    for relative_dir, relative_files in _walk(source_root, ignore, follow_symlinks):
        directories.append(relative_dir)
        files.extend(relative_files)
    return directories, files


def _create_directories(
    destination_root: Path, relative_dirs: list[Path], log: logging.Logger
) -> list[str]:
    failed: list[str] = []
    for relative_dir in relative_dirs:
        target = destination_root / relative_dir
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            failed.append(display_path(relative_dir))
            log.warning("Could not create destination directory %s: %s", target, exc)
    return failed


def _copy_file(source_file: Path, destination_file: Path) -> None:
    destination_file.parent.mkdir(exist_ok=True)
    with tempfile.NamedTemporaryFile(
        delete=False, dir=str(destination_file.parent), prefix=".mediasync-"
    ) as tmp:
        tmp_path = Path(tmp.name)
    try:
        shutil.copy2(source_file, tmp_path)
        tmp_path.replace(destination_file)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def _verify(strategy: VerificationStrategy, record: FileRecord, log: logging.Logger) -> Outcome:
    try:
        return strategy.compare(record.source, record.destination, record.relative_path)
    except OSError as exc:
        log.warning("Verification error for %s: %s", record.log_name, exc)
        if not record.destination.exists():
            return Outcome.MISSING
        return Outcome.DIFFERENT


def _copy_and_verify(
    record: FileRecord, strategy: VerificationStrategy, log: logging.Logger
) -> Outcome:
    try:
        _copy_file(record.source, record.destination)
    except OSError as exc:
        log.warning("Copy failed for %s: %s", record.log_name, exc)
        return Outcome.COPY_FAILED
    return _verify(strategy, record, log)


def process_file(
    record: FileRecord,
    strategy: VerificationStrategy,
    options: SyncOptions,
    log: logging.Logger,
) -> Outcome:
    if not record.destination.exists():
        if options.dry_run:
            return Outcome.MISSING
        return _copy_and_verify(record, strategy, log)

    outcome = _verify(strategy, record, log)
    if outcome is Outcome.DIFFERENT and options.overwrite_different and not options.dry_run:
        log.info("Overwriting differing destination file %s", record.log_name)
        return _copy_and_verify(record, strategy, log)
    return outcome


def _log_paths_inside(source_root: Path, run_log: RunLog) -> frozenset[Path]:
    source_resolved = source_root.resolve()
    inside: set[Path] = set()
    for path in run_log.paths:
        resolved = path.resolve()
        if resolved.is_relative_to(source_resolved):
            inside.add(resolved.relative_to(source_resolved))
    return frozenset(inside)


def run_sync(
    source_root: Path | str,
    destination_root: Path | str,
    strategy: VerificationStrategy | str = "size",
    progress_interval_files: int = DEFAULT_PROGRESS_INTERVAL,
    *,
    options: SyncOptions | None = None,
    notifier: Notifier | None = None,
    logger: logging.Logger | None = None,
) -> RunSummary:
    log = logger or logging.getLogger("mediasync.engine")
    opts = options or SyncOptions()
    notify_sink = notifier or LogNotifier()
    verifier = strategy_for(strategy) if isinstance(strategy, str) else strategy

    source_root = Path(source_root).expanduser()
    destination_root = Path(destination_root).expanduser()

    if not source_root.exists() or not source_root.is_dir():
        raise InvalidSource(f"Source directory does not exist or is not a directory: {source_root}")

    _validate_paths(source_root, destination_root)

    ignore = build_ignore_engine(source_root, opts.excludes)
    directories, source_files = _scan_source(source_root, ignore, opts.follow_symlinks)
    total = len(source_files)
    if total == 0:
        raise InvalidSource(f"Source directory contains no files to compare: {source_root}")

    tracker = ProgressTracker(total, progress_interval_files, opts.progress_percent)

    failed_directories: list[str] = []
    if not opts.dry_run:
        try:
            destination_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DestinationUncreatable(
                f"Cannot create destination directory {destination_root}: {exc}"
            ) from exc
        log.info("Creating directory structure under %s", destination_root)
        failed_directories = _create_directories(destination_root, directories, log)

    verifier.prepare(source_root, destination_root, source_files)
    counters = RunCounters()
    log_dir = opts.log_dir if opts.log_dir is not None else Path.cwd()

    with RunLog.create(log_dir, prefix=opts.log_prefix) as run_log:
        run_log.note(
            f"Source: {source_root} Destination: {destination_root} "
            f"Verify: {verifier.name} Files: {total}"
            + (" (dry run)" if opts.dry_run else "")
        )
        for failed in failed_directories:
            run_log.note(f"Directory not created: {failed}")
        safe_notify(
            notify_sink,
            f"mediasync started: {total} files, {source_root} -> {destination_root}",
            log,
        )

        skip = _log_paths_inside(source_root, run_log)
        for relative_dir, relative_files in _walk(source_root, ignore, opts.follow_symlinks, skip):
            if not relative_files:
                continue
            directory_name = display_path(relative_dir)
            for relative_path in relative_files:
                record = FileRecord(
                    relative_path=relative_path,
                    source=source_root / relative_path,
                    destination=destination_root / relative_path,
                )
                outcome = process_file(record, verifier, opts, log)
                run_log.record(outcome, record.log_name)
                counters.record(directory_name, outcome)

                progress = tracker.advance()
                if progress:
                    safe_notify(notify_sink, f"mediasync progress: {progress}", log)

            tally = counters.directories[directory_name]
            run_log.note(f"Directory {directory_name}: {tally.describe()}")
            log.info("Directory %s complete: %s", directory_name, tally.describe())

        summary = RunSummary.from_counters(
            counters,
            source_root=source_root,
            destination_root=destination_root,
            strategy=verifier.name,
            logs=run_log.paths,
            failed_directories=failed_directories,
            dry_run=opts.dry_run,
        )
        run_log.note(f"Comparison finished: {summary.describe()}")

    log.info("Run complete for %s -> %s: %s", source_root, destination_root, summary.describe())
    safe_notify(
        notify_sink,
        f"mediasync finished: {summary.describe()}. Log: {summary.main_log}",
        log,
    )
    return summary
