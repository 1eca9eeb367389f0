"""CLI tests with a mocked HTTP backend."""

import json

import httpx
import pytest
from typer.testing import CliRunner

from stepsos import cli
from stepsos.cli import app

runner = CliRunner()

EXECUTION = {
    "id": "exec_1",
    "workflowId": "file_upload_flow",
    "status": "failed",
    "input": {"fileId": "f1"},
    "rejectionReason": None,
    "steps": [
        {"name": "entry", "status": "completed", "error": None},
        {"name": "validate", "status": "failed", "error": "Unsupported fileType: application/pdf"},
        {"name": "process", "status": "skipped", "error": None},
    ],
}


@pytest.fixture
def requests_seen(monkeypatch):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        path = request.url.path
        if request.method == "POST" and path == "/execute":
            body = json.loads(request.content)
            if body is None:
                return httpx.Response(400, json={"accepted": False, "error": "input is required"})
            return httpx.Response(200, json={"accepted": True, "executionId": "exec_1"})
        if path == "/executions":
            return httpx.Response(200, json={"executions": [EXECUTION], "graph": {}})
        if path == "/executions/exec_1":
            return httpx.Response(200, json=EXECUTION)
        return httpx.Response(404, json={"success": False, "error": "not found"})

    def fake_client(api_url):
        return httpx.Client(base_url=api_url, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(cli, "_client", fake_client)
    return seen


def test_submit_from_file(tmp_path, requests_seen):
    upload = tmp_path / "upload.json"
    upload.write_text(json.dumps({"input": {"fileId": "f1"}}))

    result = runner.invoke(app, ["execution", "submit", str(upload)])
    assert result.exit_code == 0
    assert "Execution accepted: exec_1" in result.stdout
    assert requests_seen[0].url == "http://127.0.0.1:8080/execute"


def test_submit_from_stdin_rejected(requests_seen):
    result = runner.invoke(app, ["execution", "submit", "-"], input="null")
    assert result.exit_code == 1
    assert "input is required" in result.stdout


def test_submit_invalid_json(tmp_path, requests_seen):
    upload = tmp_path / "broken.json"
    upload.write_text("{oops")
    result = runner.invoke(app, ["execution", "submit", str(upload)])
    assert result.exit_code == 1
    assert requests_seen == []


def test_list(requests_seen):
    result = runner.invoke(app, ["execution", "list", "--api-url", "http://server:9000"])
    assert result.exit_code == 0
    assert "exec_1\tfailed" in result.stdout
    assert requests_seen[0].url.host == "server"


def test_show(requests_seen):
    result = runner.invoke(app, ["execution", "show", "exec_1"])
    assert result.exit_code == 0
    assert "Execution exec_1: failed" in result.stdout
    assert "- validate: failed (Unsupported fileType: application/pdf)" in result.stdout
    assert "- process: skipped" in result.stdout


def test_show_missing(requests_seen):
    result = runner.invoke(app, ["execution", "show", "nope"])
    assert result.exit_code == 1
    assert "Execution not found" in result.stdout


def test_unreachable_server(monkeypatch):
    def refusing(request):
        raise httpx.ConnectError("refused", request=request)

    monkeypatch.setattr(
        cli, "_client", lambda url: httpx.Client(base_url=url, transport=httpx.MockTransport(refusing))
    )
    result = runner.invoke(app, ["execution", "list"])
    assert result.exit_code == 1
    assert "Cannot reach StepsOS" in result.stdout


def test_check_reports_api_and_feed(monkeypatch, requests_seen):
    monkeypatch.setenv("STEPSOS_TRANSPORT", "inmemory")
    result = runner.invoke(app, ["check"])
    assert result.exit_code == 0
    assert "API endpoints working" in result.stdout
    assert "Event feed working" in result.stdout
