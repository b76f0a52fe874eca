"""Local deterministic agent for fan-out integration tests.

Emits stream-JSON like the real agent CLI. Exits nonzero when the task file
contains the ``FAIL`` marker, optionally replacing it so a retry succeeds.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import time
from pathlib import Path

FAIL_MARKER = "FAIL"
FAILURE_EXIT_CODE = 3


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--prompt", required=True)
    parser.add_argument("--file", default=None)
    parser.add_argument("--sleep", type=float, default=0.0)
    parser.add_argument("--heal", action="store_true", help="Remove the marker after failing.")
    args = parser.parse_args(argv)

    file_value = args.file or os.getenv("DEVFLOW_TASK_FILE", "")
    if args.sleep > 0:
        time.sleep(args.sleep)

    _emit({"type": "system", "subtype": "init", "cwd": os.getcwd()})
    _emit(
        {
            "type": "assistant",
            "message": {"content": [{"type": "text", "text": f"Received: {args.prompt}"}]},
        },
    )

    failing = False
    if file_value:
        path = Path(file_value)
        content = path.read_text("utf-8") if path.is_file() else ""
        if FAIL_MARKER in content:
            failing = True
            if args.heal:
                path.write_text(content.replace(FAIL_MARKER, "ok"), "utf-8")

    if failing:
        _emit(
            {
                "type": "result",
                "subtype": "error_during_execution",
                "is_error": True,
                "result": f"Marker found in {file_value}",
                "num_turns": 1,
            },
        )
        return FAILURE_EXIT_CODE

    _emit(
        {
            "type": "result",
            "subtype": "success",
            "is_error": False,
            "result": f"Processed {file_value or 'prompt'}",
            "total_cost_usd": 0.0,
            "num_turns": 1,
        },
    )
    return 0


def _emit(event: dict[str, object]) -> None:
    sys.stdout.write(json.dumps(event) + "\n")
    sys.stdout.flush()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
