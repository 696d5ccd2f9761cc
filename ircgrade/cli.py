#!/usr/bin/env python3
"""
ircgrade - scripted conformance run against a simple IRC server
===============================================================

Writes the topology file, starts the server under test, runs every
grading scenario in order and prints the score.  The run stops at the
first failing scenario: later scenarios depend on the state earlier ones
leave behind, so their results would be meaningless.

Usage:
  ircgrade [port [host]] [--sircd ./sircd] [--config grading.conf]
  ircgrade 6667 --no-spawn       # server must already be listening

Exit status: 0 if every scenario passed, 1 on a failed scenario or a
connection error, 130 if interrupted.
"""

import argparse
import subprocess
import sys
import time
import traceback

from .connection import DRAIN_TIMEOUT
from .grading import GradingSession
from .orchestrator import RunState, run_scenarios
from .server import (DEFAULT_BINARY, DEFAULT_CONFIG, SETTLE_TIME,
                     TopologyEntry, spawn_server, write_topology_config)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
SERVER_HOST = "127.0.0.1"
SERVER_PORT = 34102
NODE_ID = 1


def build_parser():
    p = argparse.ArgumentParser(
        prog="ircgrade",
        description="Conformance test run for a simple IRC server.",
    )
    p.add_argument("port", nargs="?", type=int, default=SERVER_PORT,
                   help=f"server port (default {SERVER_PORT})")
    p.add_argument("host", nargs="?", default=SERVER_HOST,
                   help=f"server address (default {SERVER_HOST})")
    p.add_argument("--config", default=DEFAULT_CONFIG,
                   help="topology file to write and hand to the server")
    p.add_argument("--node", type=int, default=NODE_ID,
                   help="node id of the server to start")
    p.add_argument("--sircd", default=DEFAULT_BINARY,
                   help="server binary to start")
    p.add_argument("--no-spawn", dest="spawn", action="store_false",
                   help="do not start a server; test the one already listening")
    p.add_argument("--settle", type=float, default=SETTLE_TIME,
                   help="seconds to wait after starting the server")
    p.add_argument("--timeout", type=float, default=DRAIN_TIMEOUT,
                   help="seconds to collect replies after each command")
    p.add_argument("--crlf", action="store_true",
                   help="end command lines with CRLF instead of LF")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="print every line received from the server")
    return p


def main(argv=None):
    args = build_parser().parse_args(argv)
    print(f"Server address - {args.host}:{args.port}")

    session = GradingSession(args.host, args.port, timeout=args.timeout,
                             newline="\r\n" if args.crlf else "\n",
                             trace=args.verbose)
    scenarios = session.scenarios()
    state = RunState.for_scenarios(scenarios)
    server = None
    status = 1

    try:
        if args.spawn:
            entry = TopologyEntry(args.node, args.host,
                                  args.port - 2, args.port - 1, args.port)
            write_topology_config(args.config, [entry])
            server = spawn_server(args.config, args.node, binary=args.sircd)
            if server is None:
                print(f"ERROR: node {args.node} not found in {args.config}")
                return status
            print("Letting the servers settle.")
            time.sleep(args.settle)

        run_scenarios(scenarios, state)
        if len(state.completed) == len(scenarios):
            status = 0
    except KeyboardInterrupt:
        status = 130
    except Exception as exc:
        print(exc)
        traceback.print_exc(file=sys.stdout)
    finally:
        session.close_all()
        if server is not None:
            try:
                server.stop()
            except (OSError, subprocess.TimeoutExpired) as exc:
                print(f"error stopping server: {exc}")
        print(state.score_line())
        print("")
        print("Good luck with the rest of the project!")
    return status


if __name__ == "__main__":
    sys.exit(main())
