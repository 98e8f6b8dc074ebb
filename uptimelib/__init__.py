"""Uptime checking with advisory-enriched alerts."""

from .advisory import AdvisoryRequest, Suggestion, Unavailable, advise
from .alerts import Alert, compose
from .config import ConfigError, Settings, load_endpoints
from .notify import DeliveryResult, LogSink, Notifier, SmtpSink, WebhookSink, build_sink
from .probe import ConnectionFailure, Healthy, HttpFailure, ProbeResult, classify, probe
from .runner import RunSummary, check_endpoint, run

__all__ = [
    "AdvisoryRequest",
    "Suggestion",
    "Unavailable",
    "advise",
    "Alert",
    "compose",
    "ConfigError",
    "Settings",
    "load_endpoints",
    "DeliveryResult",
    "LogSink",
    "Notifier",
    "SmtpSink",
    "WebhookSink",
    "build_sink",
    "ConnectionFailure",
    "Healthy",
    "HttpFailure",
    "ProbeResult",
    "classify",
    "probe",
    "RunSummary",
    "check_endpoint",
    "run",
]
