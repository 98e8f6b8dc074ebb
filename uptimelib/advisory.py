"""Client for the chat-completion service that explains a failure.

A diagnosis only improves an alert. The client therefore never raises to
its caller: every problem reaching or parsing the service comes back as
``Unavailable`` and the alert goes out without it.
"""

from dataclasses import dataclass
import json
import logging
from typing import Any, Dict, Optional, Union

import requests

from .config import Settings
from .probe import Classification, ConnectionFailure, HttpFailure

logger = logging.getLogger(__name__)

HTTP = "HTTP"
CONNECTION = "Connection"

REMEDIATION_ASK = (
    "Then list 2-3 short bullet points with concrete steps to fix it. "
    "Keep the whole answer brief."
)


@dataclass(frozen=True)
class AdvisoryRequest:
    endpoint: str
    failure_kind: str
    code: Union[int, str]
    detail: Optional[str] = None


@dataclass(frozen=True)
class Suggestion:
    text: str


@dataclass(frozen=True)
class Unavailable:
    reason: str


AdvisoryResult = Union[Suggestion, Unavailable]


def advisory_request_for(classification: Classification) -> AdvisoryRequest:
    """Build the request for a failed classification."""
    if isinstance(classification, HttpFailure):
        return AdvisoryRequest(classification.endpoint, HTTP, classification.status)
    if isinstance(classification, ConnectionFailure):
        return AdvisoryRequest(
            classification.endpoint,
            CONNECTION,
            classification.reason_code,
            classification.reason_text,
        )
    raise ValueError("advisory requests are only built for failures")


def build_prompt(request: AdvisoryRequest) -> str:
    if request.failure_kind == HTTP:
        return (
            f'The website "{request.endpoint}" returned HTTP status code '
            f"{request.code}. In one sentence, explain what this status code "
            f"means for the site. {REMEDIATION_ASK}"
        )
    detail = f" ({request.detail})" if request.detail else ""
    return (
        f'Connecting to the website "{request.endpoint}" failed with error '
        f'"{request.code}"{detail}. Possible causes include DNS resolution, '
        "firewall rules or network path problems. In one sentence, explain "
        f"the most likely cause. {REMEDIATION_ASK}"
    )


def build_payload(prompt: str, settings: Settings) -> Dict[str, Any]:
    return {
        "model": settings.advisory_model,
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": settings.advisory_max_tokens,
        "temperature": settings.advisory_temperature,
    }


def encode_payload(payload: Dict[str, Any]) -> bytes:
    """Serialize the payload; quotes and control characters in the prompt are escaped."""
    return json.dumps(payload).encode("utf-8")


def parse_suggestion(data: Any) -> AdvisoryResult:
    """Pull ``choices[0].message.content`` out of a decoded response."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return Unavailable("malformed response: no suggestion field")
    if not isinstance(content, str) or not content.strip():
        return Unavailable("empty suggestion")
    return Suggestion(content.strip())


def advise(request: AdvisoryRequest, settings: Settings) -> AdvisoryResult:
    """Ask the advisory service for a diagnosis of ``request``."""
    if not settings.advisory_enabled or not settings.advisory_api_key:
        return Unavailable("disabled")

    body = encode_payload(build_payload(build_prompt(request), settings))
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {settings.advisory_api_key}",
    }
    try:
        response = requests.post(
            settings.advisory_url,
            data=body,
            headers=headers,
            timeout=settings.advisory_timeout,
        )
    except requests.exceptions.RequestException as exc:
        logger.warning("advisory request for %s failed: %s", request.endpoint, exc)
        return Unavailable(f"request failed: {exc}")
    except Exception as exc:  # safety net
        logger.warning("advisory request for %s raised: %s", request.endpoint, exc)
        return Unavailable(f"unexpected error: {exc}")

    if not 200 <= response.status_code < 300:
        logger.warning(
            "advisory service returned HTTP %s for %s",
            response.status_code,
            request.endpoint,
        )
        return Unavailable(f"advisory service returned HTTP {response.status_code}")

    try:
        data = response.json()
    except ValueError:
        logger.warning("advisory response for %s was not valid JSON", request.endpoint)
        return Unavailable("malformed response: invalid JSON")

    result = parse_suggestion(data)
    if isinstance(result, Unavailable):
        logger.warning("advisory response for %s unusable: %s", request.endpoint, result.reason)
    else:
        logger.debug("advisory suggestion received for %s", request.endpoint)
    return result
