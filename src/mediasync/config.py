from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import json
import yaml

from mediasync.notifier import CommandNotifier, LogNotifier, Notifier
from mediasync.sync_engine import DEFAULT_PROGRESS_INTERVAL, SyncOptions
from mediasync.verification import normalize_strategy_name


@dataclass(slots=True)
class PairConfig:
    source: Path
    destination: Path
    excludes: list[str] = field(default_factory=list)


@dataclass(slots=True)
class JobConfig:
    name: str
    pairs: list[PairConfig]
    verify_mode: str = "size"
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL
    progress_percent: int | None = None
    log_dir: Path | None = None
    dry_run: bool = False
    overwrite_different: bool = False
    follow_symlinks: bool = False
    excludes: list[str] = field(default_factory=list)
    notify_command: list[str] = field(default_factory=list)
    notify_timeout: float = 10.0

    def options_for(self, pair: PairConfig, dry_run: bool = False) -> SyncOptions:
        return SyncOptions(
            dry_run=self.dry_run or dry_run,
            overwrite_different=self.overwrite_different,
            excludes=[*self.excludes, *pair.excludes],
            follow_symlinks=self.follow_symlinks,
            progress_percent=self.progress_percent,
            log_dir=self.log_dir,
        )

    def build_notifier(self) -> Notifier:
        if self.notify_command:
            return CommandNotifier(self.notify_command, timeout=self.notify_timeout)
        return LogNotifier()


@dataclass(slots=True)
class AppConfig:
    jobs: list[JobConfig]


def _as_path(value: Any, field_name: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string path")
    return Path(value).expanduser()


def _as_bool(value: Any, field_name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ValueError(f"{field_name} must be a boolean")


def _as_int(value: Any, field_name: str, default: int | None, minimum: int, maximum: int | None = None) -> int | None:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f">= {minimum}" if maximum is None else f"between {minimum} and {maximum}"
        raise ValueError(f"{field_name} must be {bounds}")
    return value


def _as_list_of_strings(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or any(not isinstance(item, str) for item in value):
        raise ValueError(f"{field_name} must be a list of strings")
    return [item for item in value if item.strip()]


def _load_raw_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise ValueError(f"Config file does not exist: {config_path}")

    suffix = config_path.suffix.lower()
    text = config_path.read_text(encoding="utf-8")
    if suffix in {".yml", ".yaml"}:
        loaded = yaml.safe_load(text)
    elif suffix == ".json":
        loaded = json.loads(text)
    else:
        raise ValueError("Config file must be .yaml/.yml or .json")

    if not isinstance(loaded, dict):
        raise ValueError("Config root must be an object")
    return loaded


def _load_pairs(raw_pairs: Any, prefix: str) -> list[PairConfig]:
    if not isinstance(raw_pairs, list) or not raw_pairs:
        raise ValueError(f"{prefix}.pairs must be a non-empty list")

    pairs: list[PairConfig] = []
    for pair_idx, raw_pair in enumerate(raw_pairs):
        where = f"{prefix}.pairs[{pair_idx}]"
        if not isinstance(raw_pair, dict):
            raise ValueError(f"{where} must be an object")
        pairs.append(
            PairConfig(
                source=_as_path(raw_pair.get("source"), f"{where}.source"),
                destination=_as_path(raw_pair.get("destination"), f"{where}.destination"),
                excludes=_as_list_of_strings(raw_pair.get("excludes"), f"{where}.excludes"),
            )
        )
    return pairs


def _load_job(raw_job: dict[str, Any], prefix: str) -> JobConfig:
    name = raw_job.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"{prefix}.name must be a non-empty string")

    verify_mode = raw_job.get("verifyMode", "size")
    if not isinstance(verify_mode, str):
        raise ValueError(f"{prefix}.verifyMode must be a string")
    try:
        verify_mode = normalize_strategy_name(verify_mode)
    except ValueError as exc:
        raise ValueError(f"{prefix}.verifyMode: {exc}") from exc

    raw_log_dir = raw_job.get("logDir")
    notify_timeout = raw_job.get("notifyTimeout", 10)
    if isinstance(notify_timeout, bool) or not isinstance(notify_timeout, (int, float)) or notify_timeout <= 0:
        raise ValueError(f"{prefix}.notifyTimeout must be a positive number")

    return JobConfig(
        name=name,
        pairs=_load_pairs(raw_job.get("pairs"), prefix),
        verify_mode=verify_mode,
        progress_interval=_as_int(
            raw_job.get("progressInterval"),
            f"{prefix}.progressInterval",
            default=DEFAULT_PROGRESS_INTERVAL,
            minimum=1,
        ),
        progress_percent=_as_int(
            raw_job.get("progressPercent"),
            f"{prefix}.progressPercent",
            default=None,
            minimum=1,
            maximum=100,
        ),
        log_dir=_as_path(raw_log_dir, f"{prefix}.logDir") if raw_log_dir else None,
        dry_run=_as_bool(raw_job.get("dryRun"), f"{prefix}.dryRun", default=False),
        overwrite_different=_as_bool(
            raw_job.get("overwriteDifferent"), f"{prefix}.overwriteDifferent", default=False
        ),
        follow_symlinks=_as_bool(raw_job.get("followSymlinks"), f"{prefix}.followSymlinks", default=False),
        excludes=_as_list_of_strings(raw_job.get("excludes"), f"{prefix}.excludes"),
        notify_command=_as_list_of_strings(raw_job.get("notifyCommand"), f"{prefix}.notifyCommand"),
        notify_timeout=float(notify_timeout),
    )


def load_config(config_path: Path) -> AppConfig:
    raw = _load_raw_config(config_path)
    raw_jobs = raw.get("jobs")
    if not isinstance(raw_jobs, list) or not raw_jobs:
        raise ValueError("Config must contain non-empty 'jobs' list")

    jobs: list[JobConfig] = []
    names: set[str] = set()

    for index, raw_job in enumerate(raw_jobs):
        if not isinstance(raw_job, dict):
            raise ValueError(f"jobs[{index}] must be an object")
        job = _load_job(raw_job, f"jobs[{index}]")
        if job.name in names:
            raise ValueError(f"Duplicate job name: {job.name}")
        names.add(job.name)
        jobs.append(job)

    return AppConfig(jobs=jobs)


def get_job(config: AppConfig, job_name: str | None) -> list[JobConfig]:
    if not job_name:
        return config.jobs
    matched = [job for job in config.jobs if job.name == job_name]
    if not matched:
        raise ValueError(f"No job named '{job_name}' found")
    return matched


def select_pairs(job: JobConfig, pair_filter: str | None) -> tuple[list[PairConfig], str | None]:
    if not pair_filter:
        return job.pairs, None

    exact = [pair for pair in job.pairs if str(pair.source) == pair_filter]
    if exact:
        return exact, None

    by_name = [pair for pair in job.pairs if pair.source.name == pair_filter]
    if len(by_name) > 1:
        return [], f"[{job.name}] pair filter '{pair_filter}' is ambiguous; use full source path"
    if len(by_name) == 1:
        return by_name, None

    return [], f"[{job.name}] no pair matched filter '{pair_filter}'"
