from __future__ import annotations

import logging
import subprocess
from typing import Protocol, Sequence


class Notifier(Protocol):
    def notify(self, message: str) -> None:
        ...


class LogNotifier:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("mediasync.notify")

    def notify(self, message: str) -> None:
        self.logger.info("%s", message)


class CommandNotifier:
    """Runs ``argv + [message]``, e.g. ``["ntfy", "publish", "mediasync"]``."""

    def __init__(self, argv: Sequence[str], timeout: float = 10.0) -> None:
        if not argv:
            raise ValueError("Notify command must not be empty")
        if timeout <= 0:
            raise ValueError("Notify timeout must be positive")
        self.argv = list(argv)
        self.timeout = timeout

    def notify(self, message: str) -> None:
        subprocess.run(
            [*self.argv, message],
            check=True,
            timeout=self.timeout,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )


def safe_notify(notifier: Notifier, message: str, logger: logging.Logger) -> bool:
    try:
        notifier.notify(message)
    except Exception as exc:
        logger.warning("Notification failed: %s", exc)
        return False
    return True
