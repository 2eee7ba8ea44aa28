from __future__ import annotations

from pathlib import Path
from unittest import mock

import pytest

from monorepo_publish.errors import LifecycleError
from monorepo_publish.graph import PackageNode
from monorepo_publish.lifecycle import LifecycleRunner, find_package_script


def _node(tmp_path: Path, scripts=None) -> PackageNode:
    manifest = {"name": "root", "version": "1.0.0"}
    if scripts:
        manifest["scripts"] = scripts
    return PackageNode(manifest, tmp_path)


def test_undefined_script_is_not_run(tmp_path: Path) -> None:
    runner = LifecycleRunner()
    with mock.patch("subprocess.run") as run_mock:
        assert runner.run(_node(tmp_path), "prepack") is False
    run_mock.assert_not_called()


def test_defined_script_runs_through_npm(tmp_path: Path) -> None:
    runner = LifecycleRunner(env={"CI": "1"})
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=0, stdout="", stderr="")
        assert runner.run(_node(tmp_path, {"prepack": "tsc"}), "prepack") is True
    args, kwargs = run_mock.call_args
    assert args[0] == ["npm", "run", "prepack"]
    assert kwargs["cwd"] == str(tmp_path)
    assert kwargs["env"]["CI"] == "1"


def test_failing_script_raises(tmp_path: Path) -> None:
    runner = LifecycleRunner()
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=2, stdout="", stderr="boom")
        with pytest.raises(LifecycleError, match="boom"):
            runner.run(_node(tmp_path, {"prepare": "false"}), "prepare")


@pytest.mark.parametrize("event", ["prepublish", "publish", "postpublish"])
def test_root_publish_lifecycles_skip_when_reentrant(
    tmp_path: Path, event: str, caplog: pytest.LogCaptureFixture
) -> None:
    runner = LifecycleRunner(active_event=event)
    with mock.patch("subprocess.run") as run_mock:
        assert runner.run_root(_node(tmp_path, {"postpublish": "echo"}), "postpublish") is False
    run_mock.assert_not_called()
    assert "Skipping root 'postpublish' because it has already been called" in caplog.text


def test_other_events_do_not_count_as_publish(tmp_path: Path) -> None:
    runner = LifecycleRunner(active_event="prepublishOnly")
    assert runner.inside_publish_lifecycle is False
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=0, stdout="", stderr="")
        assert runner.run_root(_node(tmp_path, {"publish": "echo"}), "publish") is True


def test_package_script_lookup(tmp_path: Path) -> None:
    node = _node(tmp_path)
    assert find_package_script(node, "prepublish") is None

    scripts = tmp_path / "scripts"
    scripts.mkdir()
    (scripts / "prepublish.js").write_text("console.log('hi')\n", encoding="utf-8")
    script = find_package_script(node, "prepublish")
    assert script is not None
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=0, stdout="hi\n", stderr="")
        script.run()
    assert run_mock.call_args[0][0] == ["node", str(scripts / "prepublish.js")]
