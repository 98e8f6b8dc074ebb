"""Compose alert messages for failed endpoints."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .advisory import AdvisoryResult, Suggestion
from .probe import Classification, ConnectionFailure, HttpFailure

SUGGESTION_HEADER = "--- Assistant suggestion ---"


@dataclass(frozen=True)
class Alert:
    subject: str
    body: str
    advisory: Optional[AdvisoryResult] = None

    @property
    def suggestion(self) -> Optional[str]:
        if isinstance(self.advisory, Suggestion):
            return self.advisory.text
        return None


def compose(
    endpoint: str,
    classification: Classification,
    advisory: Optional[AdvisoryResult] = None,
    now: Optional[datetime] = None,
) -> Alert:
    """Build the alert for a failed endpoint."""
    if now is None:
        now = datetime.now(timezone.utc)

    if isinstance(classification, HttpFailure):
        subject = f"[DOWN] {endpoint} returned HTTP {classification.status}"
        lines = [
            f"Endpoint: {endpoint}",
            "Failure: HTTP error",
            f"Status code: {classification.status}",
        ]
    elif isinstance(classification, ConnectionFailure):
        subject = f"[DOWN] {endpoint} is unreachable ({classification.reason_code})"
        lines = [
            f"Endpoint: {endpoint}",
            "Failure: connection error",
            f"Error code: {classification.reason_code}",
            f"Error message: {classification.reason_text}",
        ]
    else:
        raise ValueError(f"no alert is composed for {classification!r}")

    lines.append(f"Checked at: {now.strftime('%Y-%m-%d %H:%M:%S %Z')}")

    # Unavailable advice leaves no trace in the message
    if isinstance(advisory, Suggestion):
        lines.extend(["", SUGGESTION_HEADER, advisory.text])

    return Alert(subject=subject, body="\n".join(lines) + "\n", advisory=advisory)
