from __future__ import annotations


class ProgressTracker:
    """Decides when a progress report is due.

    A report is due once ``every_files`` files have been processed since the
    previous report, or, when ``every_percent`` is set, when the completed
    share of ``total`` reaches the next multiple of ``every_percent``.
    """

    def __init__(self, total: int, every_files: int, every_percent: int | None = None) -> None:
        if every_files < 1:
            raise ValueError("Progress interval must be a positive number of files")
        if every_percent is not None and not 1 <= every_percent <= 100:
            raise ValueError("Progress percent must be between 1 and 100")
        self.total = total
        self.every_files = every_files
        self.every_percent = every_percent
        self.processed = 0
        self._since_report = 0
        self._next_percent = every_percent

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return (self.processed * 100) // self.total

    def message(self) -> str:
        return f"{self.processed} of {self.total} files processed ({self.percent}%)"

    def advance(self) -> str | None:
        self.processed += 1
        self._since_report += 1

        due = self._since_report >= self.every_files
        if self._next_percent is not None and self.percent >= self._next_percent:
            due = True
            while self._next_percent <= self.percent:
                self._next_percent += self.every_percent or 100

        if not due:
            return None
        self._since_report = 0
        return self.message()
