from __future__ import annotations

from pathlib import Path
from unittest import mock

import pytest

from monorepo_publish.errors import GitError
from monorepo_publish.git import GitClient, parse_describe


def test_parse_describe_with_tag() -> None:
    description = parse_describe("v1.2.0-3-gdeadbee-dirty\n")
    assert description.last_tag_name == "v1.2.0"
    assert description.ref_count == 3
    assert description.sha == "deadbee"
    assert description.is_dirty is True


def test_parse_describe_without_tag() -> None:
    description = parse_describe("deadbee")
    assert description.last_tag_name is None
    assert description.ref_count == 0
    assert description.is_dirty is False


def test_parse_describe_rejects_garbage() -> None:
    with pytest.raises(GitError):
        parse_describe("not a describe line")


def test_describe_ref_invokes_git(tmp_path: Path) -> None:
    client = GitClient(tmp_path)
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=0, stdout="v1.0.0-0-gabc1234\n", stderr="")
        description = client.describe_ref()
    assert run_mock.call_args[0][0] == ["git", "describe", "--always", "--long", "--dirty", "--first-parent"]
    assert run_mock.call_args[1]["cwd"] == str(tmp_path)
    assert description.sha == "abc1234"


def test_checkout_without_paths_is_noop(tmp_path: Path) -> None:
    with mock.patch("subprocess.run") as run_mock:
        GitClient(tmp_path).checkout([])
    run_mock.assert_not_called()


def test_checkout_paths(tmp_path: Path) -> None:
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=0, stdout="", stderr="")
        GitClient(tmp_path).checkout(["package.json", "packages/a/package.json"])
    assert run_mock.call_args[0][0] == ["git", "checkout", "--", "package.json", "packages/a/package.json"]


def test_changed_files(tmp_path: Path) -> None:
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=0, stdout=" M packages/a/package.json\n?? notes.txt\n", stderr="")
        assert GitClient(tmp_path).changed_files() == ["packages/a/package.json", "notes.txt"]


def test_non_zero_exit_raises(tmp_path: Path) -> None:
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=128, stdout="", stderr="fatal: not a git repository")
        with pytest.raises(GitError, match="not a git repository"):
            GitClient(tmp_path).current_sha()


def test_missing_executable_raises(tmp_path: Path) -> None:
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("git")):
        with pytest.raises(GitError, match="Unable to execute"):
            GitClient(tmp_path).current_sha()
