from __future__ import annotations

from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from devflow import main
from devflow.errors import ExitCode, ToolNotFoundError
from devflow.gitops.controllers import GitCliController
from devflow.gitops.dashboard import (
    RepoStatus,
    collect_repo_statuses,
    parse_porcelain_v2,
    render_dashboard,
)
from devflow.gitops.git import find_git_repos

pytestmark = [
    allure.epic("Git"),
    allure.feature("Status Dashboard"),
]

DIRTY_PORCELAIN = """\
# branch.oid 1234567890abcdef
# branch.head feature/login
# branch.upstream origin/feature/login
# branch.ab +2 -1
1 M. N... 100644 100644 100644 aaa bbb src/App.cs
1 .M N... 100644 100644 100644 aaa bbb src/Program.cs
1 MM N... 100644 100644 100644 aaa bbb README.md
2 R. N... 100644 100644 100644 aaa bbb R100 new.cs\told.cs
u UU N... 100644 100644 100644 100644 aaa bbb ccc merge.cs
? notes.txt
? scratch/
"""

CLEAN_PORCELAIN = """\
# branch.oid 1234567890abcdef
# branch.head main
# branch.upstream origin/main
# branch.ab +0 -0
"""


def _make_repo(path: Path) -> Path:
    (path / ".git").mkdir(parents=True)
    return path


def test_parse_porcelain_v2_counts_every_category() -> None:
    status = parse_porcelain_v2(Path("repo"), DIRTY_PORCELAIN)

    assert status.branch == "feature/login"
    assert status.upstream == "origin/feature/login"
    assert (status.ahead, status.behind) == (2, 1)
    assert status.staged == 3
    assert status.modified == 2
    assert status.conflicted == 1
    assert status.untracked == 2
    assert not status.clean
    assert not status.in_sync


def test_parse_porcelain_v2_clean_repo_without_upstream() -> None:
    status = parse_porcelain_v2(Path("repo"), "# branch.oid (initial)\n# branch.head main\n")

    assert status.clean
    assert status.in_sync
    assert status.upstream is None


def test_find_git_repos_respects_depth_and_stops_at_repos(tmp_path: Path) -> None:
    _make_repo(tmp_path / "api")
    _make_repo(tmp_path / "api" / "vendored")
    _make_repo(tmp_path / "group" / "web")
    _make_repo(tmp_path / "group" / "deep" / "too-deep")
    _make_repo(tmp_path / ".cache" / "hidden")
    (tmp_path / "plain").mkdir()

    repos = find_git_repos(tmp_path, max_depth=2)

    assert repos == [tmp_path / "api", tmp_path / "group" / "web"]


def test_find_git_repos_accepts_root_that_is_a_repo(tmp_path: Path) -> None:
    _make_repo(tmp_path)

    assert find_git_repos(tmp_path) == [tmp_path]


def test_collect_repo_statuses_records_errors_per_repo(fake_runner) -> None:
    class FlakyRunner:
        def __call__(self, args, **kwargs):
            if kwargs.get("cwd") == Path("broken"):
                raise ToolNotFoundError("git")
            return fake_runner(args, **kwargs)

    fake_runner.add("git", "status", stdout=CLEAN_PORCELAIN)

    statuses = collect_repo_statuses([Path("ok"), Path("broken")], runner=FlakyRunner())

    assert statuses[0].clean
    assert statuses[1].error is not None
    assert "git" in statuses[1].error


def test_fetch_runs_before_status(fake_runner) -> None:
    fake_runner.add("git", "status", stdout=CLEAN_PORCELAIN)

    collect_repo_statuses([Path("ok")], fetch=True, runner=fake_runner)

    assert fake_runner.calls[0][:2] == ["git", "fetch"]
    assert fake_runner.calls[1][:2] == ["git", "status"]


def test_render_dashboard_columns_and_footer(tmp_path: Path) -> None:
    statuses = [
        parse_porcelain_v2(tmp_path / "api", CLEAN_PORCELAIN),
        parse_porcelain_v2(tmp_path / "group" / "web", DIRTY_PORCELAIN),
        RepoStatus(path=tmp_path / "lib", branch="dev"),
        RepoStatus(path=tmp_path / "broken", error="git not found"),
    ]

    lines = render_dashboard(statuses, root=tmp_path)

    assert lines[0].split() == [
        "REPO",
        "BRANCH",
        "SYNC",
        "STAGED",
        "MODIFIED",
        "UNTRACKED",
        "STATE",
    ]
    assert lines[2].split() == ["api", "main", "up", "to", "date", "0", "0", "0", "clean"]
    assert "+2/-1" in lines[3]
    assert lines[3].endswith("conflicts(1)")
    assert "no upstream" in lines[4]
    assert "error: git not found" in lines[5]
    assert lines[-1] == "Repos=4 Dirty=2 OutOfSync=1"


def test_cli_status_dashboard(tmp_path: Path, fake_runner, monkeypatch) -> None:
    _make_repo(tmp_path / "a")
    _make_repo(tmp_path / "b")
    fake_runner.add("git", "status", stdout=CLEAN_PORCELAIN)
    fake_runner.add("git", "status", stdout=DIRTY_PORCELAIN)
    monkeypatch.setattr(main, "GIT_CONTROLLER", GitCliController(runner=fake_runner))

    result = CliRunner().invoke(main.devflow, ["git", "status", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "feature/login" in result.output
    assert "Repos=2 Dirty=1 OutOfSync=1" in result.output
    assert not fake_runner.called("git", "fetch")


def test_cli_dirty_only_when_everything_is_clean(
    tmp_path: Path,
    fake_runner,
    monkeypatch,
) -> None:
    _make_repo(tmp_path / "a")
    _make_repo(tmp_path / "b")
    fake_runner.add("git", "status", stdout=CLEAN_PORCELAIN)
    monkeypatch.setattr(main, "GIT_CONTROLLER", GitCliController(runner=fake_runner))

    result = CliRunner().invoke(main.devflow, ["git", "status", str(tmp_path), "--dirty-only"])

    assert result.exit_code == 0, result.output
    assert "All 2 repositories are clean and in sync." in result.output


@pytest.mark.parametrize("with_root", [True, False])
def test_cli_no_repositories_is_nothing_to_do(
    tmp_path: Path,
    fake_runner,
    monkeypatch,
    with_root: bool,
) -> None:
    monkeypatch.setattr(main, "GIT_CONTROLLER", GitCliController(runner=fake_runner))
    args = ["git", "status"]
    if with_root:
        args.append(str(tmp_path))
    else:
        monkeypatch.setenv("DEVFLOW_GIT_SCAN_ROOT", str(tmp_path))

    result = CliRunner().invoke(main.devflow, args)

    assert result.exit_code == ExitCode.NOTHING_TO_DO
    assert "No git repositories found" in result.output
