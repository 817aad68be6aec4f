from __future__ import annotations

import argparse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import shlex
import sys

from mediasync.config import get_job, load_config, select_pairs
from mediasync.errors import SyncError
from mediasync.models import RunSummary
from mediasync.notifier import CommandNotifier, LogNotifier, Notifier
from mediasync.run_service import (
    EXIT_INVALID_CONFIG,
    EXIT_RUNTIME_OR_CONFIG_ERROR,
    EXIT_SUCCESS,
    run_sync_jobs,
)
from mediasync.sync_engine import DEFAULT_PROGRESS_INTERVAL, SyncOptions, run_sync
from mediasync.verification import STRATEGIES, ALIASES, strategy_for


LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def configure_logging(level: int = logging.INFO, log_file: Path | None = None) -> logging.Logger:
    logger = logging.getLogger("mediasync")
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def _add_sync_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("source", nargs="?", type=Path)
    parser.add_argument("destination", nargs="?", type=Path)
    parser.add_argument(
        "--verify-mode",
        default="size",
        choices=sorted([*STRATEGIES, *ALIASES]),
        help="size (fastest), diff, hashdeep or checksum (slowest, strongest)",
    )
    parser.add_argument("--progress-interval", type=int, default=DEFAULT_PROGRESS_INTERVAL)
    parser.add_argument("--progress-percent", type=int, default=None)
    parser.add_argument("--log-dir", type=Path, default=None, help="Where the run logs go (default: cwd)")
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument(
        "--overwrite-different",
        action="store_true",
        help="Replace existing destination files that do not verify",
    )
    parser.add_argument("--exclude", action="append", default=[], metavar="PATTERN")
    parser.add_argument("--follow-symlinks", action="store_true")
    parser.add_argument(
        "--notify-command",
        default=None,
        help="Command run with each notification appended, e.g. 'ntfy publish mediasync'",
    )
    parser.add_argument("--notify-timeout", type=float, default=10.0)
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mediasync", description="Copy missing files and verify a mirror")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Sync and verify one source/destination pair")
    _add_sync_arguments(sync_parser)

    run_parser = subparsers.add_parser("run", help="Run sync jobs from a config file")
    run_parser.add_argument("--config", required=True, type=Path)
    run_parser.add_argument("--job", help="Run only one job by name")
    run_parser.add_argument("--pair", help="Run only one pair (full source path or unique folder name)")
    run_parser.add_argument("--dry-run", action="store_true")
    run_parser.add_argument("--stop-on-error", action="store_true")
    run_parser.add_argument("--log-file", type=Path, default=None)

    validate_parser = subparsers.add_parser("validate-config", help="Validate config")
    validate_parser.add_argument("--config", required=True, type=Path)

    list_parser = subparsers.add_parser("list", help="List jobs and their source/destination pairs")
    list_parser.add_argument("--config", required=True, type=Path)
    list_parser.add_argument("--job", help="List only one job by name")

    return parser


def _prompt_paths(source: Path | None, destination: Path | None) -> tuple[Path, Path] | None:
    if source is not None and destination is not None:
        return source, destination
    source_text = input("Enter source directory: ").strip()
    destination_text = input("Enter destination directory: ").strip()
    if not source_text or not destination_text:
        return None
    return Path(source_text), Path(destination_text)


def _print_summary(summary: RunSummary) -> None:
    print(
        f"{summary.source_root} -> {summary.destination_root} [{summary.strategy}] | "
        f"{summary.describe()}"
    )
    print(f"  log: {summary.main_log}")
    if summary.different:
        print(f"  diff log: {summary.diff_log}")
    if summary.copy_failed:
        print(f"  copy-fail log: {summary.copy_fail_log}")


def cmd_sync(args: argparse.Namespace) -> int:
    configure_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    try:
        paths = _prompt_paths(args.source, args.destination)
    except EOFError:
        paths = None
    if paths is None:
        print("Error: source and destination directories are required.", file=sys.stderr)
        return EXIT_RUNTIME_OR_CONFIG_ERROR
    source, destination = paths

    notifier: Notifier = LogNotifier()
    try:
        if args.notify_command:
            notifier = CommandNotifier(shlex.split(args.notify_command), timeout=args.notify_timeout)
        options = SyncOptions(
            dry_run=args.dry_run,
            overwrite_different=args.overwrite_different,
            excludes=list(args.exclude),
            follow_symlinks=args.follow_symlinks,
            progress_percent=args.progress_percent,
            log_dir=args.log_dir,
        )
        summary = run_sync(
            source,
            destination,
            strategy_for(args.verify_mode),
            args.progress_interval,
            options=options,
            notifier=notifier,
        )
    except (SyncError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_OR_CONFIG_ERROR

    _print_summary(summary)
    return EXIT_SUCCESS


def cmd_run(args: argparse.Namespace) -> int:
    logger = configure_logging(logging.INFO, args.log_file)
    exit_code, summary = run_sync_jobs(
        config_path=args.config,
        job_name=args.job,
        pair_filter=args.pair,
        dry_run=args.dry_run,
        continue_on_error=not args.stop_on_error,
        logger=logger.getChild("run"),
    )
    for run in summary.runs:
        _print_summary(run)
    if exit_code == EXIT_INVALID_CONFIG:
        print(f"Invalid config: {args.config}", file=sys.stderr)
    elif exit_code != EXIT_SUCCESS:
        print("One or more pairs could not be processed; see log output.", file=sys.stderr)
    return exit_code


def cmd_validate(config_path: Path) -> int:
    try:
        config = load_config(config_path)
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    print(f"Valid config: {config_path} ({len(config.jobs)} job(s))")
    for job in config.jobs:
        print(
            f"  - job={job.name} "
            f"pairs={len(job.pairs)} "
            f"verifyMode={job.verify_mode} "
            f"progressInterval={job.progress_interval} "
            f"overwriteDifferent={str(job.overwrite_different).lower()}"
        )
    return EXIT_SUCCESS


def cmd_list(config_path: Path, job_name: str | None) -> int:
    try:
        config = load_config(config_path)
        jobs = get_job(config, job_name)
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    for job in jobs:
        pairs, _ = select_pairs(job, None)
        print(f"job: {job.name} (verifyMode={job.verify_mode})")
        for pair in pairs:
            extra = f" excludes={','.join(pair.excludes)}" if pair.excludes else ""
            print(f"  - {pair.source} -> {pair.destination}{extra}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "sync":
        return cmd_sync(args)
    if args.command == "run":
        return cmd_run(args)
    if args.command == "validate-config":
        return cmd_validate(args.config)
    if args.command == "list":
        return cmd_list(args.config, args.job)

    parser.print_help()
    return EXIT_RUNTIME_OR_CONFIG_ERROR


def sync_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="mda5ync", description="Copy missing files from SRC to DEST, then verify every file"
    )
    _add_sync_arguments(parser)
    return cmd_sync(parser.parse_args(argv))


if __name__ == "__main__":
    raise SystemExit(main())
