"""
Server-under-test lifecycle: topology file and the server process.

The topology file holds one node per line, whitespace separated:

    <node id> <ip> <listen port> <data port> <control port>

The control port is the one clients connect to.
"""

import os
import subprocess
from typing import NamedTuple

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
DEFAULT_CONFIG = "grading.conf"
DEFAULT_BINARY = "./sircd"
SETTLE_TIME = 3.0
STOP_TIMEOUT = 2


class TopologyEntry(NamedTuple):
    node_id: int
    ip: str
    listen_port: int
    data_port: int
    control_port: int

    def to_line(self):
        return " ".join(str(f) for f in self)

    @classmethod
    def from_line(cls, line):
        node_id, ip, lport, dport, cport = line.split()
        return cls(int(node_id), ip, int(lport), int(dport), int(cport))


DEFAULT_TOPOLOGY = [TopologyEntry(1, "127.0.0.1", 34100, 34101, 34102)]


def write_topology_config(path, entries=DEFAULT_TOPOLOGY):
    with open(path, "w") as f:
        for entry in entries:
            f.write(entry.to_line() + "\n")


def read_topology_config(path):
    """Parse *path*; blank lines and ``#`` comments are skipped."""
    entries = []
    with open(path) as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                entries.append(TopologyEntry.from_line(line))
            except ValueError as exc:
                raise ValueError(f"{path}:{lineno}: bad topology line {line!r}") from exc
    return entries


def find_entry(path, node_id):
    for entry in read_topology_config(path):
        if entry.node_id == node_id:
            return entry
    return None


class ServerProcess:
    """A running server under test, started by :func:`spawn_server`."""

    def __init__(self, proc, entry, log_path):
        self._proc = proc
        self.pid = proc.pid
        self.entry = entry
        self.log_path = log_path

    @property
    def address(self):
        return self.entry.ip, self.entry.control_port

    def running(self):
        return self._proc is not None and self._proc.poll() is None

    def stop(self, timeout=STOP_TIMEOUT):
        """Terminate the server; kill it if it ignores SIGTERM.  Idempotent."""
        if self._proc is None:
            return
        proc, self._proc = self._proc, None
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                proc.kill()
                proc.wait(timeout=timeout)


def spawn_server(config_path, node_id, binary=DEFAULT_BINARY, log_dir="."):
    """
    Start ``<binary> <node_id> <config_path>`` in the background.

    Output goes to ``sircd<node_id>.log`` in *log_dir*.  Nothing waits for
    the server to start listening; callers sleep SETTLE_TIME first.
    Returns None if *config_path* has no entry for *node_id*.
    """
    entry = find_entry(config_path, node_id)
    if entry is None:
        return None

    cmd = [binary, str(node_id), config_path]
    log_path = os.path.join(log_dir, f"sircd{node_id}.log")
    print(" ".join(cmd) + f" > {log_path} &")
    with open(log_path, "w") as log:
        proc = subprocess.Popen(
            cmd,
            stdout=log,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
        )
    return ServerProcess(proc, entry, log_path)
