"""Agent command template rendering for POSIX and Windows shells."""

from __future__ import annotations

import os
import shlex
import shutil
import string
import subprocess
from pathlib import Path


class CommandTemplateError(ValueError):
    """Agent command template cannot be rendered."""


def render_prompt(template: str, *, file_path: Path, token: str) -> str:
    """Substitute every ``token`` occurrence in the prompt template with the file path."""

    if token not in template:
        raise CommandTemplateError(f"Prompt template must include {token}.")
    return template.replace(token, str(file_path))


def build_run_args(
    *,
    command_template: str,
    prompt: str,
    file_path: Path | None = None,
    os_name: str | None = None,
) -> tuple[str | list[str], str]:
    """Render the command template into run args and return them with the command head.

    On Windows a single command-line string is produced so quoting follows the
    ``CommandLineToArgvW`` rules; elsewhere the template is split with ``shlex``.
    """

    stripped = command_template.strip()
    if not stripped:
        raise CommandTemplateError("Agent command template is empty.")
    if "{prompt}" not in stripped:
        raise CommandTemplateError("Agent command template must include {prompt}.")

    values = {
        "prompt": prompt,
        "file": str(file_path) if file_path is not None else "",
    }
    current_os_name = os_name or os.name
    try:
        if current_os_name == "nt":
            rendered = _render_windows_command_template(template=stripped, values=values)
            rendered = rendered.strip()
            if not rendered:
                raise CommandTemplateError("Agent command template rendered empty command.")
            return rendered, rendered.split(maxsplit=1)[0]

        rendered = stripped.format(**{key: shlex.quote(value) for key, value in values.items()})
    except KeyError as error:
        raise CommandTemplateError(
            f"Unsupported command template placeholder: {error}",
        ) from error

    argv = shlex.split(rendered)
    if not argv:
        raise CommandTemplateError("Agent command template rendered empty command.")
    return argv, argv[0]


def resolve_executable(run_args: str | list[str], head: str) -> str | list[str]:
    """Replace the command head with its full ``PATH`` location.

    On Windows this finds ``.cmd`` shims (npm-installed agents, ``az``) that
    ``CreateProcess`` would not locate from a bare name.
    """

    resolved = shutil.which(head.strip('"'))
    if resolved is None or resolved == head:
        return run_args
    if isinstance(run_args, list):
        return [resolved, *run_args[1:]]
    return subprocess.list2cmdline([resolved]) + run_args[len(head) :]


def _render_windows_command_template(*, template: str, values: dict[str, str]) -> str:
    formatter = string.Formatter()
    rendered_parts: list[str] = []
    in_double_quotes = False

    for literal_text, field_name, _format_spec, _conversion in formatter.parse(template):
        rendered_parts.append(literal_text)
        in_double_quotes = _advance_windows_quote_state(literal_text, in_double_quotes)
        if field_name is None:
            continue

        try:
            value = values[field_name]
        except KeyError as error:
            raise KeyError(field_name) from error

        if in_double_quotes:
            rendered_parts.append(value.replace('"', '\\"'))
            continue
        rendered_parts.append(subprocess.list2cmdline([value]))

    return "".join(rendered_parts)


def _advance_windows_quote_state(literal_text: str, in_double_quotes: bool) -> bool:
    for index, char in enumerate(literal_text):
        if char != '"':
            continue
        backslashes = 0
        scan_index = index - 1
        while scan_index >= 0 and literal_text[scan_index] == "\\":
            backslashes += 1
            scan_index -= 1
        if backslashes % 2 == 1:
            continue
        in_double_quotes = not in_double_quotes
    return in_double_quotes
