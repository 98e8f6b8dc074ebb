"""Tests for the Flask API."""

from unittest import mock

import pytest

import api_server
from uptimelib.config import Settings
from uptimelib.notify import LogSink
from uptimelib.runner import RunSummary


@pytest.fixture
def client():
    api_server.app.config.pop("MONITOR_SETTINGS", None)
    api_server.app.config.pop("MONITOR_SINK", None)
    yield api_server.app.test_client()
    api_server.app.config.pop("MONITOR_SETTINGS", None)
    api_server.app.config.pop("MONITOR_SINK", None)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_check_unconfigured(client):
    response = client.post("/check", json={})
    assert response.status_code == 500


def test_check_with_posted_endpoints(client):
    """Posted endpoints override the configured list and the summary is returned."""

    api_server.configure(Settings())
    summary = RunSummary(checked=2, healthy=1, failed=1, alerts_delivered=1)
    with mock.patch("api_server.run", return_value=summary) as run:
        response = client.post(
            "/check", json={"endpoints": ["https://a.example.com", " ", "https://b.example.com"]}
        )

    assert response.status_code == 200
    assert response.get_json() == summary.as_dict()
    args = run.call_args[0]
    assert args[0] == ["https://a.example.com", "https://b.example.com"]
    assert isinstance(args[2], LogSink)


def test_check_reads_configured_list(client, tmp_path):
    path = tmp_path / "endpoints.txt"
    path.write_text("# sites\nhttps://a.example.com\n")
    api_server.configure(Settings(endpoints_file=str(path)))
    with mock.patch("api_server.run", return_value=RunSummary(checked=1, healthy=1)) as run:
        response = client.post("/check")

    assert response.status_code == 200
    assert run.call_args[0][0] == ["https://a.example.com"]


def test_check_missing_endpoint_list(client, tmp_path):
    api_server.configure(Settings(endpoints_file=str(tmp_path / "missing.txt")))
    with mock.patch("api_server.run") as run:
        response = client.post("/check", json={})
    assert response.status_code == 500
    assert "missing.txt" in response.get_json()["error"]
    run.assert_not_called()


def test_check_rejects_bad_endpoints(client):
    api_server.configure(Settings())
    response = client.post("/check", json={"endpoints": "https://a.example.com"})
    assert response.status_code == 400


@pytest.mark.parametrize("body", [[1], "https://a.example.com", 42])
def test_check_rejects_non_object_body(client, body):
    api_server.configure(Settings())
    with mock.patch("api_server.run") as run:
        response = client.post("/check", json=body)
    assert response.status_code == 400
    run.assert_not_called()


def test_posted_endpoints_drop_comments(client):
    """Posted lists are filtered the same way as the endpoint file."""

    api_server.configure(Settings())
    with mock.patch("api_server.run", return_value=RunSummary(checked=1, healthy=1)) as run:
        response = client.post(
            "/check",
            json={"endpoints": ["# staging", "https://a.example.com", "  #https://b.example.com"]},
        )

    assert response.status_code == 200
    assert run.call_args[0][0] == ["https://a.example.com"]
