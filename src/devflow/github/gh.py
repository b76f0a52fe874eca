"""GitHub CLI operations."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from devflow.shell import CommandResult, CommandRunner, run_command

logger = logging.getLogger(__name__)

_RUN_FIELDS = "databaseId,workflowName,displayTitle,status,conclusion,headBranch,createdAt"


@dataclass(slots=True)
class WorkflowRun:
    """One GitHub Actions run as listed by ``gh run list``."""

    run_id: int
    workflow: str
    title: str
    status: str
    conclusion: str
    branch: str
    created_at: str

    @property
    def state(self) -> str:
        return self.conclusion or self.status


class GhClient:
    """Runs ``gh`` inside a working copy."""

    def __init__(self, repo_path: Path | None = None, *, runner: CommandRunner = run_command):
        self.repo_path = repo_path
        self._runner = runner

    def run(self, *args: str) -> CommandResult:
        return self._runner(["gh", *args], cwd=self.repo_path)

    def create_issue(self, title: str, body: str, *, labels: tuple[str, ...] = ()) -> str:
        args = ["issue", "create", "--title", title, "--body", body]
        for label in labels:
            args.extend(["--label", label])
        return _last_line(self.run(*args))

    def create_pr(  # noqa: PLR0913
        self,
        title: str,
        body: str,
        *,
        base: str | None = None,
        head: str | None = None,
        draft: bool = False,
    ) -> str:
        args = ["pr", "create", "--title", title, "--body", body]
        if base:
            args.extend(["--base", base])
        if head:
            args.extend(["--head", head])
        if draft:
            args.append("--draft")
        return _last_line(self.run(*args))

    def create_release(self, tag: str, *, generate_notes: bool = True) -> str:
        args = ["release", "create", tag, "--title", tag]
        if generate_notes:
            args.append("--generate-notes")
        return _last_line(self.run(*args))

    def list_runs(self, *, limit: int = 10, branch: str | None = None) -> list[WorkflowRun]:
        args = ["run", "list", "--limit", str(limit), "--json", _RUN_FIELDS]
        if branch:
            args.extend(["--branch", branch])
        payload = json.loads(self.run(*args).stdout or "[]")
        return [
            WorkflowRun(
                run_id=int(item.get("databaseId", 0)),
                workflow=item.get("workflowName", ""),
                title=item.get("displayTitle", ""),
                status=item.get("status", ""),
                conclusion=item.get("conclusion", ""),
                branch=item.get("headBranch", ""),
                created_at=item.get("createdAt", ""),
            )
            for item in payload
        ]

    def create_gist(self, path: Path, *, description: str, public: bool = False) -> str:
        args = ["gist", "create", str(path), "--desc", description]
        if public:
            args.append("--public")
        return _last_line(self.run(*args))

    def current_login(self) -> str:
        return self.run("api", "user", "--jq", ".login").stdout.strip()


def _last_line(result: CommandResult) -> str:
    lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    return lines[-1] if lines else ""
