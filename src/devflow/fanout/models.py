"""Domain models for the bounded fan-out runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class TaskStatus(str, Enum):
    """Per-file task lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAILED)


@dataclass(slots=True)
class FanOutTask:
    """One matched file and its single external-process invocation."""

    file_path: Path
    prompt: str
    status: TaskStatus = TaskStatus.PENDING
    exit_code: int | None = None
    output: str = ""
    error: str | None = None
    elapsed_seconds: float = 0.0

    def reset(self) -> FanOutTask:
        """Return a fresh pending copy for re-execution."""

        return FanOutTask(file_path=self.file_path, prompt=self.prompt)


@dataclass(slots=True)
class TaskOutcome:
    """Result reported by an executor for one task."""

    exit_code: int
    output: str
    error: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass(slots=True)
class FanOutSummary:
    """All tasks of one fan-out pass with derived counts."""

    tasks: list[FanOutTask] = field(default_factory=list)
    max_in_flight: int = 0

    @property
    def total(self) -> int:
        return len(self.tasks)

    @property
    def succeeded(self) -> int:
        return sum(1 for task in self.tasks if task.status == TaskStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return sum(1 for task in self.tasks if task.status == TaskStatus.FAILED)

    @property
    def failed_tasks(self) -> list[FanOutTask]:
        return [task for task in self.tasks if task.status == TaskStatus.FAILED]
