"""Prompts and helpers for commit messages and pull request descriptions."""

from __future__ import annotations

from dataclasses import dataclass

from devflow.llm.client import ChatCompletionClient

COMMIT_MESSAGE_SYSTEM = """\
You write git commit messages.
Rules:
- First line: imperative summary, at most 72 characters, no trailing period.
- Then a blank line and a short body explaining what changed, wrapped at 72 columns.
- Describe only what the diff shows. No markdown fences, no quotes around the message."""

PR_DESCRIPTION_SYSTEM = """\
You write GitHub pull request descriptions.
Output format:
- First line: the pull request title, at most 72 characters, no trailing period.
- Then a blank line and a markdown body with a "## Summary" section (2-4 bullets)
  and a "## Testing" section describing how the change can be verified.
Describe only what the commits and diff show."""

_TRUNCATION_NOTE = "\n[diff truncated]"


@dataclass(slots=True)
class PullRequestText:
    """Generated pull request title and body."""

    title: str
    body: str


def truncate_diff(diff: str, max_chars: int) -> str:
    if len(diff) <= max_chars:
        return diff
    return diff[:max_chars] + _TRUNCATION_NOTE


def generate_commit_message(client: ChatCompletionClient, *, diff: str, max_chars: int) -> str:
    message = client.complete(
        system=COMMIT_MESSAGE_SYSTEM,
        user=f"Staged diff:\n\n{truncate_diff(diff, max_chars)}",
    )
    return _strip_fences(message)


def generate_pr_description(
    client: ChatCompletionClient,
    *,
    diff: str,
    commits: list[str],
    max_chars: int,
) -> PullRequestText:
    commit_list = "\n".join(f"- {commit}" for commit in commits) or "- (no commits listed)"
    text = _strip_fences(
        client.complete(
            system=PR_DESCRIPTION_SYSTEM,
            user=f"Commits:\n{commit_list}\n\nDiff:\n\n{truncate_diff(diff, max_chars)}",
        ),
    )
    title, _, body = text.partition("\n")
    return PullRequestText(title=title.strip().lstrip("# ").strip(), body=body.strip())


def _strip_fences(text: str) -> str:
    lines = text.strip().splitlines()
    if len(lines) >= 2 and lines[0].startswith("```") and lines[-1].startswith("```"):
        lines = lines[1:-1]
    return "\n".join(lines).strip()
