"""
Data models for test reporting.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List
from enum import Enum


class RunStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TestStatus(Enum):
    __test__ = False

    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class TestResult:
    """Outcome of one test case."""
    __test__ = False

    name: str
    config: str = "default"
    status: TestStatus = TestStatus.PENDING
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None
    exit_code: Optional[int] = None

    @property
    def passed(self) -> bool:
        return self.status == TestStatus.PASSED

    @property
    def duration(self) -> float:
        return (self.duration_ms or 0) / 1000

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "config": self.config,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
            "error_message": self.error_message,
            "exit_code": self.exit_code,
        }


@dataclass
class RunSummary:
    """Summary of a harness run with aggregated stats."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    status: RunStatus = RunStatus.RUNNING
    skip_kind_create: bool = False
    tests: List[TestResult] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for t in self.tests if t.status == TestStatus.PASSED)

    @property
    def failed(self) -> int:
        return sum(1 for t in self.tests if t.status == TestStatus.FAILED)

    @property
    def skipped(self) -> int:
        return sum(1 for t in self.tests if t.status == TestStatus.SKIPPED)

    @property
    def duration_ms(self) -> Optional[int]:
        if not self.finished_at:
            return None
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def complete(self) -> None:
        """Mark the run finished and derive its final status."""
        self.finished_at = datetime.now()
        self.status = RunStatus.COMPLETED if self.failed == 0 else RunStatus.FAILED

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "status": self.status.value,
            "skip_kind_create": self.skip_kind_create,
            "total_tests": len(self.tests),
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_ms": self.duration_ms,
            "tests": [t.to_dict() for t in self.tests],
        }
