"""
Client connection to the server under test.

A Connection never reads "exactly N lines": the number of replies to a
command depends on the protocol and on server state, so every read is a
drain that collects whatever arrives within a fixed window.
"""

import selectors
import socket
import time

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
CONNECT_TIMEOUT = 5
DRAIN_TIMEOUT = 1.0
RECV_SIZE = 4096


class Connection:
    """One raw TCP client identity.

    ``nick`` and ``channel`` are bookkeeping only: the raw command helpers
    keep them current, but nothing is enforced against the server.
    """

    def __init__(self, host, port, nick="", channel="", newline="\n", echo=True,
                 trace=False):
        self.host = host
        self.port = port
        self.nick = nick
        self.channel = channel
        self.newline = newline
        self.echo = echo
        self.trace = trace
        self.sock = None
        self._buf = b""
        self._eof = False

    def __repr__(self):
        state = "open" if self.connected else "closed"
        return f"<Connection {self.nick or '?'} {self.host}:{self.port} {state}>"

    def __enter__(self):
        if not self.connected:
            self.connect()
        return self

    def __exit__(self, *_):
        self.disconnect()

    @property
    def connected(self):
        return self.sock is not None

    # -----------------------------------------------------------------------
    # Socket lifecycle
    # -----------------------------------------------------------------------

    def connect(self):
        """Open the TCP stream.  Raises ConnectionError, never retries.

        An already open stream is closed first.
        """
        self.disconnect()
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        s.settimeout(CONNECT_TIMEOUT)
        try:
            s.connect((self.host, self.port))
        except OSError as exc:
            s.close()
            raise ConnectionError(
                f"cannot connect to {self.host}:{self.port}: {exc}") from exc
        self.sock = s
        self._buf = b""
        self._eof = False
        return self

    def disconnect(self):
        """Close the socket.  Closing an already-closed connection does nothing."""
        if self.sock is None:
            return
        try:
            self.sock.close()
        finally:
            self.sock = None
            self._buf = b""

    # -----------------------------------------------------------------------
    # I/O
    # -----------------------------------------------------------------------

    def send(self, line):
        """Send one command line and echo it to the operator."""
        if self.echo:
            print(f"--> {line}")
        if self.sock is None:
            raise ConnectionError(f"{self!r}: send on a closed connection")
        try:
            self.sock.sendall((line + self.newline).encode())
        except OSError as exc:
            raise ConnectionError(f"{self!r}: send failed: {exc}") from exc

    def drain(self, timeout=DRAIN_TIMEOUT):
        """
        Collect every line that arrives within *timeout* seconds.

        The whole window is always used, even once the socket goes quiet:
        callers rely on having seen every reply the server meant to send.
        End of stream does not cut the window short either; any partial
        line is returned and the remaining time is slept out.  A partial
        line at the deadline stays buffered for the next drain.
        """
        if self.sock is None:
            raise ConnectionError(f"{self!r}: drain on a closed connection")

        lines = []
        deadline = time.monotonic() + timeout
        with selectors.DefaultSelector() as sel:
            if not self._eof:
                sel.register(self.sock, selectors.EVENT_READ)
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                if self._eof:
                    time.sleep(remaining)
                    continue
                if not sel.select(remaining):
                    continue
                try:
                    chunk = self.sock.recv(RECV_SIZE)
                except OSError as exc:
                    raise ConnectionError(f"{self!r}: receive failed: {exc}") from exc
                if not chunk:
                    self._eof = True
                    sel.unregister(self.sock)
                    lines.extend(self._split_lines(flush=True))
                    continue
                self._buf += chunk
                lines.extend(self._split_lines())
        return lines

    def _split_lines(self, flush=False):
        *complete, self._buf = self._buf.split(b"\n")
        if flush and self._buf:
            complete.append(self._buf)
            self._buf = b""
        lines = [self._decode(raw) for raw in complete]
        if self.trace:
            for line in lines:
                print(f"<-- [{self.nick}] {line}")
        return lines

    @staticmethod
    def _decode(raw):
        return raw.rstrip(b"\r").decode("utf-8", errors="replace")

    def ignore_reply(self, timeout=DRAIN_TIMEOUT):
        """Drain and discard whatever the last command produced."""
        self.drain(timeout)

    # -----------------------------------------------------------------------
    # Raw commands (no reply checking)
    # -----------------------------------------------------------------------

    def send_nick(self, nick):
        self.nick = nick
        self.send(f"NICK {nick}")

    def send_user(self, userinfo):
        self.send(f"USER {userinfo}")

    def send_join(self, channel):
        self.channel = channel
        self.send(f"JOIN {channel}")

    def send_part(self, channel):
        if self.channel == channel:
            self.channel = ""
        self.send(f"PART {channel}")

    def send_privmsg(self, targets, text):
        self.send(f"PRIVMSG {targets} :{text}")

    def send_who(self, mask):
        self.send(f"WHO {mask}")

    def send_list(self):
        self.send("LIST")
