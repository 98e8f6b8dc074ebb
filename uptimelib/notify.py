"""Delivery sinks for composed alerts."""

from dataclasses import dataclass
from email.message import EmailMessage
import json
import logging
import smtplib
from typing import Optional, Protocol
import urllib.request

from .alerts import Alert
from .config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    error: Optional[str] = None


DELIVERED = DeliveryResult(True)


class Notifier(Protocol):
    """Anything that can deliver an alert and report whether it did."""

    def deliver(self, alert: Alert) -> DeliveryResult: ...


class LogSink:
    """Write alerts to the log instead of sending them anywhere."""

    def deliver(self, alert: Alert) -> DeliveryResult:
        logger.warning("ALERT %s\n%s", alert.subject, alert.body)
        return DELIVERED


class SmtpSink:
    """Send alerts as plain-text email through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 25,
        sender: Optional[str] = None,
        recipient: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.recipient = recipient
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def build_message(self, alert: Alert) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = self.recipient
        msg["Subject"] = alert.subject
        msg.set_content(alert.body)
        return msg

    def deliver(self, alert: Alert) -> DeliveryResult:
        if not self.recipient:
            logger.error("cannot deliver %r: no recipient configured", alert.subject)
            return DeliveryResult(False, "no recipient configured")
        if not self.sender:
            logger.error("cannot deliver %r: no sender configured", alert.subject)
            return DeliveryResult(False, "no sender configured")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.starttls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                refused = smtp.send_message(self.build_message(alert))
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery of %r failed: %s", alert.subject, exc)
            return DeliveryResult(False, str(exc))

        if refused:
            logger.error("SMTP relay refused recipients %s", ", ".join(refused))
            return DeliveryResult(False, f"recipients refused: {', '.join(refused)}")
        return DELIVERED


class WebhookSink:
    """Post alerts to a Teams/Power Automate webhook as an adaptive card."""

    def __init__(self, webhook_url: str, timeout: float = 10.0) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout

    def build_payload(self, alert: Alert) -> dict:
        body_blocks = [
            {
                "type": "TextBlock",
                "size": "Medium",
                "weight": "Bolder",
                "text": alert.subject,
            },
            {"type": "TextBlock", "text": alert.body, "wrap": True},
        ]

        card = {
            "contentType": "application/vnd.microsoft.card.adaptive",
            "content": {
                "$schema": "http://adaptivecards.io/schemas/adaptive-card.json",
                "type": "AdaptiveCard",
                "version": "1.3",
                "body": body_blocks,
            },
        }

        # The Power Automate flow expects attachments under triggerBody().body
        return {"body": {"attachments": [card]}}

    def deliver(self, alert: Alert) -> DeliveryResult:
        if not self.webhook_url:
            logger.error("cannot deliver %r: no webhook URL configured", alert.subject)
            return DeliveryResult(False, "no webhook URL configured")

        data = json.dumps(self.build_payload(alert)).encode("utf-8")
        req = urllib.request.Request(
            self.webhook_url, data=data, headers={"Content-Type": "application/json"}
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                # Consume response to ensure request is sent
                response.read()
        except OSError as exc:
            # URLError and HTTPError are both OSErrors
            logger.error("webhook delivery of %r failed: %s", alert.subject, exc)
            return DeliveryResult(False, str(exc))
        return DELIVERED


def build_sink(settings: Settings) -> Notifier:
    """Return the sink selected by ``settings.notify_method``."""
    if settings.notify_method == "smtp":
        return SmtpSink(
            settings.smtp_host,
            settings.smtp_port,
            sender=settings.email_from,
            recipient=settings.email_to,
            username=settings.smtp_username,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
            timeout=settings.smtp_timeout,
        )
    if settings.notify_method == "webhook":
        return WebhookSink(settings.webhook_url, settings.webhook_timeout)
    return LogSink()
