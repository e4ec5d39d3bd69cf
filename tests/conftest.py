import subprocess

import pytest

from eksgitops.config.models import RepositorySettings
from eksgitops.observers.dispatcher import EventBus

from fakes import Capture, FakePopen


@pytest.fixture
def capture():
    return Capture()


@pytest.fixture
def bus(capture):
    return EventBus([capture])


@pytest.fixture
def repository():
    return RepositorySettings(owner="acme", name="fleet", token="t0ken")


@pytest.fixture
def sleeps():
    """Records requested sleeps instead of sleeping."""
    calls = []
    return calls


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append


@pytest.fixture
def popen(monkeypatch):
    """Replace subprocess.Popen; set "rc"/"out" on the returned dict before calling."""
    FakePopen.instances = []
    state = {"rc": 0, "out": "working...\ndone\n"}

    def fake_popen(argv, **kwargs):
        return FakePopen(argv, rc=state["rc"], out=state["out"], **kwargs)

    monkeypatch.setattr(subprocess, "Popen", fake_popen)
    return state
