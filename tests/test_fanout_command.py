from __future__ import annotations

import shutil
from pathlib import Path

import allure
import pytest

from devflow.fanout.command import (
    CommandTemplateError,
    build_run_args,
    render_prompt,
    resolve_executable,
)
from devflow.fanout.selection import discover_files, parse_selection, split_absolute_pattern

pytestmark = [
    allure.epic("Agent Fan-out"),
    allure.feature("Command Templates And File Selection"),
]


def test_posix_template_quotes_prompt_as_single_argument() -> None:
    run_args, head = build_run_args(
        command_template="claude -p --verbose -- {prompt}",
        prompt="Fix 'all' warnings in a b.cs",
        os_name="posix",
    )

    assert head == "claude"
    assert run_args == ["claude", "-p", "--verbose", "--", "Fix 'all' warnings in a b.cs"]


def test_posix_template_renders_file_placeholder() -> None:
    run_args, _head = build_run_args(
        command_template="agent --file {file} {prompt}",
        prompt="go",
        file_path=Path("src/My File.cs"),
        os_name="posix",
    )

    assert run_args == ["agent", "--file", "src/My File.cs", "go"]


def test_windows_template_produces_command_line_string() -> None:
    run_args, head = build_run_args(
        command_template="claude.exe -p {prompt}",
        prompt='say "hi" now',
        os_name="nt",
    )

    assert head == "claude.exe"
    assert run_args == 'claude.exe -p "say \\"hi\\" now"'


def test_windows_placeholder_inside_quotes_is_escaped_not_requoted() -> None:
    run_args, _head = build_run_args(
        command_template='agent "--prompt={prompt}"',
        prompt='a "b"',
        os_name="nt",
    )

    assert run_args == 'agent "--prompt=a \\"b\\""'


@pytest.mark.parametrize(
    ("template", "message"),
    [
        ("", "empty"),
        ("claude -p", "{prompt}"),
        ("claude {model} {prompt}", "placeholder"),
    ],
)
def test_invalid_templates_are_rejected(template: str, message: str) -> None:
    with pytest.raises(CommandTemplateError, match=message):
        build_run_args(command_template=template, prompt="x", os_name="posix")


def test_render_prompt_replaces_every_token() -> None:
    prompt = render_prompt(
        "Refactor {file}; keep {file} compiling.",
        file_path=Path("src/App.cs"),
        token="{file}",
    )

    assert prompt == "Refactor src/App.cs; keep src/App.cs compiling."


def test_render_prompt_requires_token() -> None:
    with pytest.raises(CommandTemplateError, match="<path>"):
        render_prompt("Refactor everything", file_path=Path("a.cs"), token="<path>")


def test_discover_files_is_sorted_and_skips_directories(tmp_path: Path) -> None:
    (tmp_path / "b").mkdir()
    (tmp_path / "b" / "Zeta.cs").write_text("", "utf-8")
    (tmp_path / "a.cs").write_text("", "utf-8")
    (tmp_path / "dir.cs").mkdir()
    (tmp_path / "notes.txt").write_text("", "utf-8")

    files = discover_files(tmp_path, "**/*.cs")

    assert [path.relative_to(tmp_path).as_posix() for path in files] == ["a.cs", "b/Zeta.cs"]


def test_discover_files_rejects_missing_root(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not a directory"):
        discover_files(tmp_path / "missing", "*.cs")


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("all", [0, 1, 2, 3, 4]),
        ("", [0, 1, 2, 3, 4]),
        ("2", [1]),
        ("1,3-4", [0, 2, 3]),
        (" 5 , 1-2, 2 ", [0, 1, 4]),
    ],
)
def test_parse_selection(text: str, expected: list[int]) -> None:
    assert parse_selection(text, 5) == expected


@pytest.mark.parametrize("text", ["0", "6", "x", "4-2", ","])
def test_parse_selection_rejects_invalid_input(text: str) -> None:
    with pytest.raises(ValueError):
        parse_selection(text, 5)


def test_absolute_pattern_is_matched_from_its_fixed_prefix(tmp_path: Path) -> None:
    (tmp_path / "src" / "nested").mkdir(parents=True)
    (tmp_path / "src" / "App.cs").write_text("", "utf-8")
    (tmp_path / "src" / "nested" / "Deep.cs").write_text("", "utf-8")
    (tmp_path / "src" / "notes.md").write_text("", "utf-8")

    files = discover_files(Path("not-a-directory"), str(tmp_path / "src" / "**" / "*.cs"))

    assert files == [tmp_path / "src" / "App.cs", tmp_path / "src" / "nested" / "Deep.cs"]


def test_split_absolute_pattern(tmp_path: Path) -> None:
    assert split_absolute_pattern(tmp_path / "src" / "*.cs") == (tmp_path / "src", "*.cs")
    assert split_absolute_pattern(tmp_path / "a" / "b?" / "**" / "*.cs") == (
        tmp_path / "a",
        "b?/**/*.cs",
    )
    assert split_absolute_pattern(tmp_path / "One.cs") == (tmp_path, "One.cs")


def test_resolve_executable_uses_path_lookup(monkeypatch) -> None:
    shim = r"C:\Program Files\nodejs\claude.cmd"
    monkeypatch.setattr(shutil, "which", lambda name: shim if name == "claude" else None)

    assert resolve_executable(["claude", "-p", "hi"], "claude") == [shim, "-p", "hi"]
    assert resolve_executable('claude -p "hi there"', "claude") == f'"{shim}" -p "hi there"'
    assert resolve_executable(["other", "x"], "other") == ["other", "x"]
