import threading
import time

import pytest

from ircgrade.connection import Connection

WINDOW = 0.3
# Generous upper slack: one readiness wait overshoots by far less, but
# CI machines are noisy.
SLACK = 0.25


def _open(port, **kw):
    return Connection("127.0.0.1", port, **kw).connect()


def _timed_drain(conn, window=WINDOW):
    start = time.monotonic()
    lines = conn.drain(window)
    return lines, time.monotonic() - start


def test_connect_refused_raises_connection_error(closed_port):
    conn = Connection("127.0.0.1", closed_port)
    with pytest.raises(ConnectionError):
        conn.connect()
    assert not conn.connected


def test_send_appends_newline_and_echoes(peer, capsys):
    conn = _open(peer.port)
    conn.send("NICK gnychis")
    assert peer.recv_line() == b"NICK gnychis\n"
    assert "--> NICK gnychis" in capsys.readouterr().out
    conn.disconnect()


def test_send_with_crlf(peer):
    conn = _open(peer.port, newline="\r\n")
    conn.send("LIST")
    assert peer.recv_line() == b"LIST\r\n"
    conn.disconnect()


def test_silent_drain_uses_whole_window(peer):
    conn = _open(peer.port)
    lines, elapsed = _timed_drain(conn)
    assert lines == []
    assert WINDOW <= elapsed < WINDOW + SLACK
    conn.disconnect()


def test_drain_does_not_stop_when_socket_goes_idle(peer):
    conn = _open(peer.port)
    peer.send(":srv 375 gnychis :- srv Message of the day - \r\n")
    lines, elapsed = _timed_drain(conn)
    assert lines == [":srv 375 gnychis :- srv Message of the day - "]
    assert elapsed >= WINDOW
    conn.disconnect()


def test_drain_preserves_arrival_order(peer):
    conn = _open(peer.port)
    peer.send("one\r\ntwo\r\nthr")
    peer.send_later(0.1, "ee\nfour\r\n")
    lines, _ = _timed_drain(conn)
    assert lines == ["one", "two", "three", "four"]
    conn.disconnect()


def test_late_line_inside_window_is_collected(peer):
    conn = _open(peer.port)
    peer.send_later(WINDOW / 2, "late\n")
    lines, elapsed = _timed_drain(conn)
    assert lines == ["late"]
    assert elapsed >= WINDOW
    conn.disconnect()


def test_partial_line_waits_for_next_drain(peer):
    conn = _open(peer.port)
    peer.send("abc")
    assert conn.drain(0.1) == []
    peer.send("def\n")
    assert conn.drain(0.1) == ["abcdef"]
    conn.disconnect()


def test_end_of_stream_does_not_end_window(peer):
    conn = _open(peer.port)
    peer.send("first\nbye")
    peer.close_client()
    lines, elapsed = _timed_drain(conn)
    assert lines == ["first", "bye"]
    assert elapsed >= WINDOW
    assert conn.drain(0.1) == []
    conn.disconnect()


def test_end_of_stream_partial_line_is_traced(peer, capsys):
    conn = _open(peer.port, nick="gnychis", trace=True)
    peer.send("first\nbye")
    peer.close_client()
    assert conn.drain(0.2) == ["first", "bye"]
    out = capsys.readouterr().out
    assert "<-- [gnychis] first" in out
    assert "<-- [gnychis] bye" in out
    conn.disconnect()


def test_drain_deadline_holds_under_flood(peer):
    conn = _open(peer.port)
    client = peer.wait_client()
    stop = threading.Event()

    def flood():
        burst = b":srv NOTICE gnychis :" + b"x" * 64 + b"\r\n"
        try:
            while not stop.is_set():
                client.sendall(burst * 16)
        except OSError:
            pass

    t = threading.Thread(target=flood, daemon=True)
    t.start()
    lines, elapsed = _timed_drain(conn)
    stop.set()
    conn.disconnect()
    t.join(2)

    assert WINDOW <= elapsed < WINDOW + SLACK
    assert len(lines) > 16


def test_connect_while_open_closes_old_socket(ircd):
    host, port = ircd.address
    conn = Connection(host, port).connect()
    old = conn.sock
    conn.connect()
    assert conn.sock is not old
    assert old.fileno() == -1
    conn.disconnect()


def test_disconnect_twice_is_noop(peer):
    conn = _open(peer.port)
    conn.disconnect()
    conn.disconnect()
    assert not conn.connected


def test_closed_connection_rejects_io(peer):
    conn = _open(peer.port)
    conn.disconnect()
    with pytest.raises(ConnectionError):
        conn.send("LIST")
    with pytest.raises(ConnectionError):
        conn.drain(0.1)


def test_reconnect_after_disconnect(ircd):
    host, port = ircd.address
    conn = Connection(host, port).connect()
    conn.send_nick("gnychis")
    conn.disconnect()
    conn.connect()
    conn.send_user("please give me :The MOTD")
    assert conn.drain(0.2) == []
    conn.disconnect()


def test_raw_helpers_track_identity(peer):
    with Connection("127.0.0.1", peer.port, echo=False) as conn:
        conn.send_nick("gnychis")
        conn.send_join("#linux")
        assert (conn.nick, conn.channel) == ("gnychis", "#linux")
        conn.send_part("#linux")
        assert conn.channel == ""
        conn.send_privmsg("gnychis,#linux", "hi there")
        sent = [peer.recv_line() for _ in range(4)]
    assert sent == [b"NICK gnychis\n", b"JOIN #linux\n", b"PART #linux\n",
                    b"PRIVMSG gnychis,#linux :hi there\n"]
    assert not conn.connected
