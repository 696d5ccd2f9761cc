import socket
import stat
import threading
import time

import pytest

from fakeircd import FakeIRCd


class Peer:
    """Listening socket that accepts one client and lets a test script it."""

    def __init__(self):
        self.listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.listener.bind(("127.0.0.1", 0))
        self.listener.listen(1)
        self.conn = None
        self._accepted = threading.Event()
        threading.Thread(target=self._accept, daemon=True).start()

    @property
    def port(self):
        return self.listener.getsockname()[1]

    def _accept(self):
        try:
            self.conn, _ = self.listener.accept()
        except OSError:
            return
        self._accepted.set()

    def wait_client(self, timeout=5):
        assert self._accepted.wait(timeout), "client never connected"
        return self.conn

    def send(self, data):
        if isinstance(data, str):
            data = data.encode()
        self.wait_client().sendall(data)

    def send_later(self, delay, data):
        """Send *data* from a background thread after *delay* seconds."""
        def _run():
            time.sleep(delay)
            self.send(data)
        t = threading.Thread(target=_run, daemon=True)
        t.start()
        return t

    def recv_line(self, timeout=2):
        conn = self.wait_client()
        conn.settimeout(timeout)
        buf = b""
        while not buf.endswith(b"\n"):
            chunk = conn.recv(1)
            if not chunk:
                break
            buf += chunk
        return buf

    def close_client(self):
        self.wait_client().close()

    def close(self):
        if self.conn is not None:
            self.conn.close()
        self.listener.close()


@pytest.fixture
def peer():
    p = Peer()
    yield p
    p.close()


@pytest.fixture
def ircd():
    server = FakeIRCd().start()
    yield server
    server.stop()


@pytest.fixture
def closed_port():
    """A local port with nothing listening on it."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


@pytest.fixture
def fake_sircd(tmp_path):
    """Executable that logs its arguments and then idles like a server."""
    script = tmp_path / "sircd"
    script.write_text('#!/bin/sh\necho "started $1 $2"\nexec sleep 30\n')
    script.chmod(script.stat().st_mode | stat.S_IXUSR)
    return str(script)
