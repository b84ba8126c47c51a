"""
Pytest configuration and fixtures for tracking-runtime.

Provides token files, recording listeners, a local line server for socket
sink tests and a polling helper for threaded assertions.
"""

import os
import socket
import socketserver
import threading
import time

import pytest


class Recorder:
    """Repository listener that records every ChangeEvent."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    @property
    def kinds(self):
        return [e.kind for e in self.events]


class _LineHandler(socketserver.StreamRequestHandler):
    def handle(self):
        for raw in self.rfile:
            self.server.lines.append(raw.decode("utf-8"))


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_recorder():
    return Recorder


@pytest.fixture
def tokens_file(tmp_path):
    """Backing file holding {a=1, b=2}."""
    path = tmp_path / "tokens.properties"
    path.write_text("# sample tokens\na=1\nb=2\n", encoding="utf-8")
    return path


@pytest.fixture
def rewrite():
    """Rewrite a file and move its mtime forward so watchers notice."""

    def _rewrite(path, text):
        before = path.stat().st_mtime_ns
        path.write_text(text, encoding="utf-8")
        bumped = max(path.stat().st_mtime_ns, before + 1_000_000_000)
        os.utime(path, ns=(bumped, bumped))

    return _rewrite


@pytest.fixture
def wait_for():
    """Poll a condition until it holds or the timeout expires."""

    def _wait_for(condition, timeout=3.0, interval=0.01):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if condition():
                return True
            time.sleep(interval)
        return condition()

    return _wait_for


@pytest.fixture
def line_server():
    """Threaded TCP server collecting received lines in ``server.lines``."""
    server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), _LineHandler)
    server.daemon_threads = True
    server.lines = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def unused_port():
    """A local port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
