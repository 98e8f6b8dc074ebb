"""Run one pass of checks over an endpoint list."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
import logging
import threading
from typing import Dict, List, Optional, Sequence

from .advisory import AdvisoryResult, Unavailable, advise, advisory_request_for
from .alerts import compose
from .config import Settings
from .notify import DeliveryResult, Notifier
from .probe import Classification, ProbeResult, classify, is_failure, probe

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Counts for one run; only the orchestrator thread writes them."""

    checked: int = 0
    healthy: int = 0
    failed: int = 0
    alerts_delivered: int = 0
    delivery_failures: int = 0
    skipped: int = 0

    def record(self, outcome: "EndpointOutcome") -> None:
        self.checked += 1
        if not outcome.failed:
            self.healthy += 1
            return
        self.failed += 1
        if outcome.delivery is not None and outcome.delivery.ok:
            self.alerts_delivered += 1
        else:
            self.delivery_failures += 1

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class EndpointOutcome:
    endpoint: str
    classification: Classification
    advisory: Optional[AdvisoryResult] = None
    delivery: Optional[DeliveryResult] = None

    @property
    def failed(self) -> bool:
        return is_failure(self.classification)


def check_endpoint(endpoint: str, settings: Settings, sink: Notifier) -> EndpointOutcome:
    """Probe one endpoint and, if it failed, advise, compose and deliver an alert.

    Every stage is guarded so nothing raised here reaches the run loop.
    """
    try:
        result = probe(
            endpoint, settings.probe_connect_timeout, settings.probe_total_timeout
        )
    except Exception as exc:  # safety net
        result = ProbeResult(endpoint, error_code="probe_error", error_message=str(exc))

    classification = classify(result)
    if not is_failure(classification):
        logger.info("%s is healthy (HTTP %s)", endpoint, classification.status)
        return EndpointOutcome(endpoint, classification)

    logger.warning("%s failed: %s", endpoint, classification)

    try:
        advisory = advise(advisory_request_for(classification), settings)
    except Exception as exc:  # safety net
        advisory = Unavailable(f"unexpected error: {exc}")
    if isinstance(advisory, Unavailable):
        logger.info("no suggestion for %s: %s", endpoint, advisory.reason)

    try:
        alert = compose(endpoint, classification, advisory)
        delivery = sink.deliver(alert)
    except Exception as exc:  # safety net
        delivery = DeliveryResult(False, str(exc))

    if delivery.ok:
        logger.info("alert for %s delivered", endpoint)
    else:
        logger.error("alert for %s not delivered: %s", endpoint, delivery.error)
    return EndpointOutcome(endpoint, classification, advisory, delivery)


def run(
    endpoints: Sequence[str],
    settings: Settings,
    sink: Notifier,
    workers: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
) -> RunSummary:
    """Check every endpoint once and return the run summary.

    ``workers`` defaults to ``settings.workers``; 1 means sequential. When
    ``cancel`` is set no further probes are started, but checks already in
    flight finish.
    """
    if workers is None:
        workers = settings.workers
    if cancel is None:
        cancel = threading.Event()

    summary = RunSummary()

    def _task(endpoint: str) -> Optional[EndpointOutcome]:
        if cancel.is_set():
            return None
        return check_endpoint(endpoint, settings, sink)

    outcomes: List[Optional[EndpointOutcome]]
    if workers <= 1:
        outcomes = [_task(endpoint) for endpoint in endpoints]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(_task, endpoints))

    for outcome in outcomes:
        if outcome is None:
            summary.skipped += 1
        else:
            summary.record(outcome)

    logger.info(
        "run complete: checked=%d healthy=%d failed=%d delivered=%d "
        "delivery_failures=%d skipped=%d",
        summary.checked,
        summary.healthy,
        summary.failed,
        summary.alerts_delivered,
        summary.delivery_failures,
        summary.skipped,
    )
    return summary
