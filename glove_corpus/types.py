from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PipelineState(str, Enum):
    IDLE = "idle"
    LISTING = "listing"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"


class LogLevel(str, Enum):
    """Severity tags written to the token log."""

    LONG = "LONG"
    DANGER = "DANGER"


@dataclass(frozen=True)
class RunStatistics:
    """Snapshot of the writer counters taken at one point in time."""

    lines: int = 0
    bytes: int = 0
    corrupted: int = 0
    corrupted_lines: int = 0
    failed_files: int = 0
    elapsed: float = 0.0

    @property
    def megabytes(self) -> float:
        return self.bytes / 1024 / 1024

    @property
    def throughput(self) -> float:
        """Written KiB per second."""

        if self.elapsed <= 0:
            return 0.0
        return self.bytes / 1024 / self.elapsed
