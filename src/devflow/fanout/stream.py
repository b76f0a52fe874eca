"""Parser for agent CLI stream-JSON output.

The agent prints one JSON object per line. The objects used here:

* ``{"type": "assistant", "message": {"content": [{"type": "text", "text": ...}]}}``
* ``{"type": "result", "subtype": "success", "is_error": false, "result": ...,
  "total_cost_usd": 0.01, "num_turns": 3}``

Anything that is not a JSON object is kept verbatim so plain-text agents still
produce a useful summary.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field


@dataclass(slots=True)
class AgentStreamSummary:
    """Digest of one agent run's streamed output."""

    result_text: str | None = None
    is_error: bool = False
    cost_usd: float | None = None
    num_turns: int | None = None
    assistant_texts: list[str] = field(default_factory=list)
    non_json_lines: list[str] = field(default_factory=list)

    @property
    def final_text(self) -> str:
        """Best human-readable answer: the result event, else the last assistant text."""

        if self.result_text:
            return self.result_text.strip()
        if self.assistant_texts:
            return self.assistant_texts[-1].strip()
        return "\n".join(self.non_json_lines).strip()


def parse_stream_json(output: str) -> AgentStreamSummary:
    summary = AgentStreamSummary()
    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            summary.non_json_lines.append(line)
            continue
        if not isinstance(event, dict):
            summary.non_json_lines.append(line)
            continue

        event_type = event.get("type")
        if event_type == "assistant":
            summary.assistant_texts.extend(_assistant_texts(event))
        elif event_type == "result":
            _apply_result_event(summary, event)
    return summary


def _assistant_texts(event: dict[str, object]) -> list[str]:
    message = event.get("message")
    if not isinstance(message, dict):
        return []
    content = message.get("content")
    if isinstance(content, str):
        return [content]
    if not isinstance(content, list):
        return []
    return [
        block["text"]
        for block in content
        if isinstance(block, dict) and block.get("type") == "text" and block.get("text")
    ]


def _apply_result_event(summary: AgentStreamSummary, event: dict[str, object]) -> None:
    result = event.get("result")
    if isinstance(result, str):
        summary.result_text = result
    summary.is_error = bool(event.get("is_error")) or event.get("subtype") not in (
        None,
        "success",
    )
    cost = event.get("total_cost_usd")
    if isinstance(cost, int | float):
        summary.cost_usd = float(cost)
    turns = event.get("num_turns")
    if isinstance(turns, int):
        summary.num_turns = turns
