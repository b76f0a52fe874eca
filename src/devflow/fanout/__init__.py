"""Bounded fan-out of agent CLI invocations over matched files."""

from devflow.fanout.models import FanOutSummary, FanOutTask, TaskOutcome, TaskStatus
from devflow.fanout.runner import BoundedFanOutRunner

__all__ = [
    "BoundedFanOutRunner",
    "FanOutSummary",
    "FanOutTask",
    "TaskOutcome",
    "TaskStatus",
]
