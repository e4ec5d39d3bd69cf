import logging
import subprocess

import pytest

from eksgitops.errors import CommandError
from eksgitops.execution.runner import CommandRunner, check

from fakes import DummyCP, FakePopen, patch_run


def test_run_captures_output_and_passes_stdin(monkeypatch):
    calls = patch_run(monkeypatch, out="hello\n")

    result = CommandRunner(label="t").run(["echo", "hi"], stdin_text="input", env={"A": "1"})

    argv, kwargs = calls[0]
    assert argv == ["echo", "hi"]
    assert kwargs["input"] == "input"
    assert kwargs["env"] == {"A": "1"}
    assert kwargs["capture_output"] is True
    assert kwargs["check"] is False
    assert result.stdout == "hello\n"


def test_run_does_not_raise_on_nonzero(monkeypatch):
    patch_run(monkeypatch, rc=3, err="bad")
    assert CommandRunner().run(["false"]).returncode == 3


def test_missing_executable_is_command_error(monkeypatch):
    def missing(argv, **kwargs):
        raise FileNotFoundError(argv[0])

    monkeypatch.setattr(subprocess, "run", missing)
    with pytest.raises(CommandError, match="not-a-tool: command not found") as ei:
        CommandRunner().run(["not-a-tool", "--help"])
    assert ei.value.argv == ["not-a-tool", "--help"]


def test_stream_relays_lines_to_log(popen, caplog):
    popen["out"] = "line one\nline two\n"

    logger = logging.getLogger("test-runner")
    with caplog.at_level("INFO", logger="test-runner"):
        result = CommandRunner(label="eksctl", logger=logger).run(["eksctl", "delete", "cluster", "demo"], stream=True)

    assert result.returncode == 0
    assert result.stdout == "line one\nline two\n"
    assert "[eksctl] line one" in caplog.text
    (proc,) = FakePopen.instances
    assert proc.kwargs["stderr"] == subprocess.STDOUT


def test_check_raises_with_details():
    with pytest.raises(CommandError) as ei:
        check(DummyCP(2, "", "no such cluster", args=["eksctl", "delete"]), "eksctl delete cluster")

    err = ei.value
    assert err.returncode == 2
    assert err.stderr == "no such cluster"
    assert err.argv == ["eksctl", "delete"]
    assert "eksctl delete cluster failed (rc=2): no such cluster" in str(err)


def test_check_passes_success_through():
    cp = DummyCP(0, "ok")
    assert check(cp, "anything") is cp


class ClosedStdin:
    def write(self, text):
        raise BrokenPipeError(32, "Broken pipe")

    def close(self):
        raise BrokenPipeError(32, "Broken pipe")


def test_stream_child_exiting_before_reading_stdin(monkeypatch):
    def early_exit(argv, **kwargs):
        proc = FakePopen(argv, rc=1, out="Error: bad config\n", **kwargs)
        proc.stdin = ClosedStdin()
        return proc

    FakePopen.instances = []
    monkeypatch.setattr(subprocess, "Popen", early_exit)

    result = CommandRunner(label="eksctl").run(["eksctl", "create", "cluster", "-f", "-"], stdin_text="kind: x", stream=True)

    assert result.returncode == 1
    with pytest.raises(CommandError, match=r"eksctl create cluster failed \(rc=1\): Error: bad config"):
        check(result, "eksctl create cluster")
