"""Shared fixtures for StepsOS tests."""

import pytest

from stepsos.bus import EventBus
from stepsos.config import RunnerConfig, StepsOSConfig
from stepsos.dispatch import ExecutionGateway
from stepsos.execute import StepRunner
from stepsos.persistence import InMemoryExecutionStore
from stepsos.steps import build_pipeline


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Never pick up a stepsos.yaml or env overrides from the developer machine."""
    monkeypatch.setenv("STEPSOS_CONFIG", str(tmp_path / "missing.yaml"))
    for name in ("STEPSOS_PORT", "STEPSOS_STREAM_URL", "STEPSOS_NARRATION_MODEL", "STEPSOS_TRANSPORT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def valid_upload():
    return {
        "fileId": "f1",
        "fileName": "a.png",
        "fileSizeMB": 2.5,
        "fileType": "image/png",
        "uploadedBy": "u1",
        "checksum": "abc",
    }


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store():
    return InMemoryExecutionStore()


@pytest.fixture
def events(bus):
    received = []
    bus.subscribe(received.append)
    return received


@pytest.fixture
def runner(store, bus):
    return StepRunner(store, bus, steps=build_pipeline(RunnerConfig()))


@pytest.fixture
def gateway(store, runner):
    return ExecutionGateway(store, runner)


@pytest.fixture
def config():
    return StepsOSConfig()
