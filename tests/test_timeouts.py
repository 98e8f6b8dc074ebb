"""Wall-clock timeout tests against real local sockets."""

from unittest import mock
import socket
import threading
import time

import pytest

from uptimelib.config import Settings
from uptimelib.notify import DeliveryResult
from uptimelib.probe import ConnectionFailure, classify, probe
from uptimelib.runner import run


def _hang(conn, stop):
    conn.recv(4096)
    stop.wait(10)


def _trickle(conn, stop):
    conn.recv(4096)
    conn.sendall(b"HTTP/1.1 200 OK\r\n")
    n = 0
    while not stop.wait(0.2):
        n += 1
        conn.sendall(f"X-Filler-{n}: {'a' * 10}\r\n".encode())


def _ok(conn, stop):
    conn.recv(4096)
    conn.sendall(b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\nConnection: close\r\n\r\n")


@pytest.fixture
def serve():
    """Start local servers; yields a factory returning a URL for a handler."""

    stop = threading.Event()
    listeners = []

    def _start(handler):
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen(5)
        listener.settimeout(0.1)
        listeners.append(listener)

        def _accept_loop():
            while not stop.is_set():
                try:
                    conn, _ = listener.accept()
                except socket.timeout:
                    continue
                except OSError:
                    return
                threading.Thread(target=_handle, args=(conn,), daemon=True).start()

        def _handle(conn):
            try:
                handler(conn, stop)
            except OSError:
                pass
            finally:
                conn.close()

        threading.Thread(target=_accept_loop, daemon=True).start()
        return f"http://127.0.0.1:{listener.getsockname()[1]}/"

    yield _start
    stop.set()
    for listener in listeners:
        listener.close()


def test_trickling_server_is_cut_off_at_total_timeout(serve):
    """A server sending header bytes slowly cannot hold the check past the total timeout."""

    url = serve(_trickle)
    start = time.monotonic()
    result = probe(url, connect_timeout=0.5, total_timeout=1.0)
    elapsed = time.monotonic() - start

    assert elapsed < 2.0
    assert result.error_code == "timeout"
    assert isinstance(classify(result), ConnectionFailure)


def test_hanging_server_times_out(serve):
    url = serve(_hang)
    start = time.monotonic()
    result = probe(url, connect_timeout=0.2, total_timeout=0.5)
    elapsed = time.monotonic() - start

    assert elapsed < 1.5
    assert result.error_code == "timeout"


def test_healthy_local_server(serve):
    result = probe(serve(_ok), connect_timeout=0.5, total_timeout=2.0)
    assert result.status_code == 200


def test_slow_endpoint_does_not_block_the_next_one(serve):
    """A stalled endpoint costs at most its own timeout; the next is still checked."""

    slow, healthy = serve(_trickle), serve(_ok)
    settings = Settings(
        advisory_enabled=False, probe_connect_timeout=0.2, probe_total_timeout=1.0
    )
    sink = mock.Mock()
    sink.deliver.return_value = DeliveryResult(True)

    start = time.monotonic()
    summary = run([slow, healthy], settings, sink, workers=1)
    elapsed = time.monotonic() - start

    assert elapsed < 3.0
    assert summary.checked == 2
    assert summary.healthy == 1
    assert summary.failed == 1
    sink.deliver.assert_called_once()
    assert "timeout" in sink.deliver.call_args[0][0].subject
