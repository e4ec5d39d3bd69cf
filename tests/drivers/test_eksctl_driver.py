import subprocess
from datetime import timedelta

import pytest

from eksgitops.config.models import ClusterState
from eksgitops.drivers.eksctl import EksctlClusterDriver
from eksgitops.errors import CommandError

from fakes import FakePopen, patch_run


def test_observe_present_from_name_list(monkeypatch):
    calls = patch_run(monkeypatch, out="- name: demo\n  region: eu-west-1\n- name: other\n")

    state = EksctlClusterDriver(region="eu-west-1").observe("demo")

    assert state is ClusterState.PRESENT
    assert calls[0][0] == ["eksctl", "get", "cluster", "-o", "yaml", "--region", "eu-west-1"]


def test_observe_reads_metadata_name(monkeypatch):
    patch_run(monkeypatch, out="- metadata:\n    name: demo\n")
    assert EksctlClusterDriver().observe("demo") is ClusterState.PRESENT


def test_observe_absent(monkeypatch):
    patch_run(monkeypatch, out="[]\n")
    assert EksctlClusterDriver().observe("demo") is ClusterState.ABSENT


def test_observe_failure_is_unknown(monkeypatch):
    patch_run(monkeypatch, rc=1, err="no credentials")
    assert EksctlClusterDriver().observe("demo") is ClusterState.UNKNOWN


def test_observe_unparseable_output_is_unknown(monkeypatch):
    patch_run(monkeypatch, out="- [unclosed\n")
    assert EksctlClusterDriver().observe("demo") is ClusterState.UNKNOWN


def test_observe_without_name_is_unknown(monkeypatch):
    calls = patch_run(monkeypatch)
    assert EksctlClusterDriver().observe("") is ClusterState.UNKNOWN
    assert calls == []


def test_missing_binary_is_unknown(monkeypatch):
    def missing(argv, **kwargs):
        raise FileNotFoundError(argv[0])

    monkeypatch.setattr(subprocess, "run", missing)
    assert EksctlClusterDriver().observe("demo") is ClusterState.UNKNOWN


def test_create_feeds_template_on_stdin_with_timeout(popen):
    EksctlClusterDriver().create("metadata:\n  name: demo\n", timedelta(minutes=25))

    (proc,) = FakePopen.instances
    assert proc.argv == ["eksctl", "create", "--timeout", "25m", "cluster", "-f", "-"]
    assert proc.stdin.text == "metadata:\n  name: demo\n"


def test_create_failure_raises(popen):
    popen["rc"] = 1
    popen["out"] = "AlreadyExistsException\n"

    with pytest.raises(CommandError) as ei:
        EksctlClusterDriver().create("metadata: {}\n", timedelta(minutes=5))

    assert ei.value.returncode == 1
    assert "AlreadyExistsException" in str(ei.value)


def test_delete_and_kubeconfig_argv(popen):
    driver = EksctlClusterDriver(region="us-east-2")
    driver.delete("demo")
    driver.write_kubeconfig("demo")

    assert [p.argv for p in FakePopen.instances] == [
        ["eksctl", "delete", "cluster", "demo", "--region", "us-east-2"],
        ["eksctl", "utils", "write-kubeconfig", "--cluster", "demo", "--region", "us-east-2"],
    ]
