from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import logging

from mediasync.config import get_job, load_config, select_pairs
from mediasync.errors import SyncError
from mediasync.models import RunSummary
from mediasync.sync_engine import run_sync
from mediasync.verification import strategy_for


EXIT_SUCCESS = 0
EXIT_RUNTIME_OR_CONFIG_ERROR = 1
EXIT_PARTIAL_FAILURES = 2
EXIT_INVALID_CONFIG = 3


@dataclass(slots=True)
class JobsSummary:
    total: int = 0
    same: int = 0
    different: int = 0
    copy_failed: int = 0
    missing: int = 0
    processed_pairs: int = 0
    partial_failures: bool = False
    runs: list[RunSummary] = field(default_factory=list)

    def absorb(self, summary: RunSummary) -> None:
        self.total += summary.total
        self.same += summary.same
        self.different += summary.different
        self.copy_failed += summary.copy_failed
        self.missing += summary.missing
        self.processed_pairs += 1
        self.runs.append(summary)


def run_sync_jobs(
    config_path: Path,
    job_name: str | None = None,
    pair_filter: str | None = None,
    dry_run: bool = False,
    continue_on_error: bool = True,
    logger: logging.Logger | None = None,
) -> tuple[int, JobsSummary]:
    log = logger or logging.getLogger("mediasync.run")

    try:
        config = load_config(config_path)
        jobs = get_job(config, job_name)
    except Exception as exc:
        log.error("Config error: %s", exc)
        return EXIT_INVALID_CONFIG, JobsSummary(partial_failures=True)

    summary = JobsSummary()

    for job in jobs:
        selected_pairs, error_message = select_pairs(job, pair_filter)
        if error_message:
            log.error("%s", error_message)
            summary.partial_failures = True
            continue

        notifier = job.build_notifier()
        for pair in selected_pairs:
            try:
                result = run_sync(
                    pair.source,
                    pair.destination,
                    strategy_for(job.verify_mode),
                    job.progress_interval,
                    options=job.options_for(pair, dry_run=dry_run),
                    notifier=notifier,
                    logger=logging.getLogger("mediasync.engine"),
                )
            except (SyncError, OSError) as exc:
                summary.partial_failures = True
                log.error("[%s] failed for %s -> %s: %s", job.name, pair.source, pair.destination, exc)
                if not continue_on_error:
                    return EXIT_RUNTIME_OR_CONFIG_ERROR, summary
                continue

            summary.absorb(result)
            log.info(
                "[%s] %s -> %s | %s | log=%s",
                job.name,
                pair.source,
                pair.destination,
                result.describe(),
                result.main_log,
            )

    exit_code = EXIT_PARTIAL_FAILURES if summary.partial_failures else EXIT_SUCCESS
    return exit_code, summary
