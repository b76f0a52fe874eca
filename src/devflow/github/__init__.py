"""GitHub CLI integration."""

from devflow.github.gh import GhClient, WorkflowRun

__all__ = ["GhClient", "WorkflowRun"]
