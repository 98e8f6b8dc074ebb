"""Endpoint probing and outcome classification."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import socket
import threading
import time
from typing import Iterator, List, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

logger = logging.getLogger(__name__)

USER_AGENT = "uptime-advisor/1.0"

_DNS_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "failed to resolve",
    "name resolution",
)
_REFUSED_HINTS = ("connection refused", "actively refused")


@dataclass(frozen=True)
class ProbeResult:
    """What a single request to an endpoint produced."""

    endpoint: str
    status_code: Optional[int] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    elapsed: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def transport_failed(self) -> bool:
        return self.error_code is not None


@dataclass(frozen=True)
class Healthy:
    status: int


@dataclass(frozen=True)
class HttpFailure:
    status: int
    endpoint: str


@dataclass(frozen=True)
class ConnectionFailure:
    reason_code: str
    reason_text: str
    endpoint: str


Classification = Union[Healthy, HttpFailure, ConnectionFailure]


def _iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield ``exc`` and everything it wraps, including urllib3's ``reason``."""
    seen = set()
    stack = [exc]
    while stack:
        current = stack.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        stack.append(current.__cause__)
        stack.append(current.__context__)
        reason = getattr(current, "reason", None)
        if isinstance(reason, BaseException):
            stack.append(reason)
        for arg in current.args:
            if isinstance(arg, BaseException):
                stack.append(arg)


def _connection_error_code(exc: requests.exceptions.ConnectionError) -> str:
    for cause in _iter_causes(exc):
        if isinstance(cause, socket.gaierror):
            return "dns_failure"
        if isinstance(cause, ConnectionRefusedError):
            return "connection_refused"
    text = str(exc).lower()
    if any(hint in text for hint in _DNS_HINTS):
        return "dns_failure"
    if any(hint in text for hint in _REFUSED_HINTS):
        return "connection_refused"
    return "connection_error"


def transport_error_code(exc: requests.exceptions.RequestException) -> str:
    """Map a requests exception to a short identifying code."""
    # Order matters: ConnectTimeout is both a Timeout and a ConnectionError
    # and SSLError is a ConnectionError.
    if isinstance(exc, requests.exceptions.ConnectTimeout):
        return "connect_timeout"
    if isinstance(exc, requests.exceptions.Timeout):
        return "timeout"
    if isinstance(exc, requests.exceptions.SSLError):
        return "tls_error"
    if isinstance(exc, requests.exceptions.ConnectionError):
        return _connection_error_code(exc)
    if isinstance(
        exc,
        (
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
            requests.exceptions.InvalidURL,
        ),
    ):
        return "invalid_url"
    return "request_error"


_tracked = threading.local()


class _TrackedConnectionMixin:
    """Record every socket opened on the current thread's probe."""

    def _new_conn(self):
        sock = super()._new_conn()
        sockets = getattr(_tracked, "sockets", None)
        if sockets is not None:
            sockets.append(sock)
        return sock


class _TrackedHTTPConnection(_TrackedConnectionMixin, HTTPConnection):
    pass


class _TrackedHTTPSConnection(_TrackedConnectionMixin, HTTPSConnection):
    pass


class _TrackedHTTPConnectionPool(HTTPConnectionPool):
    ConnectionCls = _TrackedHTTPConnection


class _TrackedHTTPSConnectionPool(HTTPSConnectionPool):
    ConnectionCls = _TrackedHTTPSConnection


class _DeadlineAdapter(HTTPAdapter):
    """Transport adapter whose sockets can be shut down from another thread."""

    def init_poolmanager(self, *args, **kwargs):
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": _TrackedHTTPConnectionPool,
            "https": _TrackedHTTPSConnectionPool,
        }


def _open_session() -> requests.Session:
    session = requests.Session()
    adapter = _DeadlineAdapter()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def probe(
    url: str, connect_timeout: float = 5.0, total_timeout: float = 10.0
) -> ProbeResult:
    """Issue one GET to ``url`` and capture its status or transport failure.

    ``connect_timeout`` bounds the TCP connect and ``total_timeout`` bounds
    the whole request on the wall clock: when it expires the probe's sockets
    are shut down, so a server trickling bytes cannot hold the probe open.
    Redirects are not followed and the body is never read.
    """
    if connect_timeout >= total_timeout:
        raise ValueError("connect_timeout must be smaller than total_timeout")

    sockets: List[socket.socket] = []
    expired = threading.Event()

    def _expire() -> None:
        expired.set()
        for sock in list(sockets):
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass

    timer = threading.Timer(total_timeout, _expire)
    timer.daemon = True
    session = _open_session()
    start = time.monotonic()
    _tracked.sockets = sockets
    timer.start()
    error: Optional[requests.exceptions.RequestException] = None
    status: Optional[int] = None
    try:
        try:
            response = session.get(
                url,
                timeout=(connect_timeout, total_timeout),
                allow_redirects=False,
                stream=True,
                headers={"User-Agent": USER_AGENT},
            )
        except requests.exceptions.RequestException as exc:
            error = exc
        else:
            try:
                status = response.status_code
            finally:
                response.close()
        finally:
            timer.cancel()
            _tracked.sockets = None
    finally:
        session.close()
    elapsed = time.monotonic() - start

    # A socket shut down by the deadline can read as a clean end of headers,
    # so an expired deadline wins over whatever the request returned.
    if expired.is_set():
        logger.debug("probe %s exceeded %.2fs", url, total_timeout)
        return ProbeResult(
            endpoint=url,
            error_code="timeout",
            error_message=f"no complete response within {total_timeout}s",
            elapsed=elapsed,
        )
    if error is not None:
        code = transport_error_code(error)
        logger.debug("probe %s failed after %.2fs: %s", url, elapsed, code)
        return ProbeResult(
            endpoint=url,
            error_code=code,
            error_message=str(error),
            elapsed=elapsed,
        )
    logger.debug("probe %s returned %s in %.2fs", url, status, elapsed)
    return ProbeResult(endpoint=url, status_code=status, elapsed=elapsed)


def classify(result: ProbeResult) -> Classification:
    """Turn a probe result into exactly one classification variant."""
    if result.transport_failed:
        return ConnectionFailure(
            reason_code=result.error_code,
            reason_text=result.error_message or "",
            endpoint=result.endpoint,
        )
    if result.status_code < 400:
        return Healthy(result.status_code)
    return HttpFailure(result.status_code, result.endpoint)


def is_failure(classification: Classification) -> bool:
    return not isinstance(classification, Healthy)
