"""Unit tests for alert composition."""

from datetime import datetime, timezone

import pytest

from uptimelib.advisory import Suggestion, Unavailable
from uptimelib.alerts import SUGGESTION_HEADER, compose
from uptimelib.probe import ConnectionFailure, Healthy, HttpFailure

URL = "https://shop.example.com"
NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def test_http_failure_alert_with_suggestion():
    text = "The server is overloaded.\n- Check the backend pool\n- Scale up"
    alert = compose(URL, HttpFailure(503, URL), Suggestion(text), now=NOW)

    assert URL in alert.subject
    assert "503" in alert.subject
    assert f"Endpoint: {URL}" in alert.body
    assert "HTTP error" in alert.body
    assert "Status code: 503" in alert.body
    assert SUGGESTION_HEADER in alert.body
    assert text in alert.body
    assert alert.suggestion == text
    assert "2024-05-01 12:30:00" in alert.body


def test_unavailable_advice_leaves_no_section():
    """An alert without advice reads cleanly, with no placeholder."""

    alert = compose(URL, HttpFailure(500, URL), Unavailable("quota exceeded"), now=NOW)

    assert SUGGESTION_HEADER not in alert.body
    assert "quota exceeded" not in alert.body
    assert alert.suggestion is None
    assert alert.advisory == Unavailable("quota exceeded")


def test_connection_failure_alert():
    failure = ConnectionFailure("dns_failure", "Name or service not known", URL)
    alert = compose(URL, failure, None, now=NOW)

    assert URL in alert.subject
    assert "dns_failure" in alert.subject
    assert "connection error" in alert.body
    assert "Error code: dns_failure" in alert.body
    assert "Error message: Name or service not known" in alert.body
    assert SUGGESTION_HEADER not in alert.body


def test_no_alert_for_healthy():
    with pytest.raises(ValueError):
        compose(URL, Healthy(200), None)
