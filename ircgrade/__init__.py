"""Conformance test harness for simple line-oriented IRC servers."""

__version__ = "1.0.0"

from .checks import Verdict
from .connection import Connection
from .orchestrator import RunState, Scenario, run_scenarios
from .replies import Reply, parse

__all__ = [
    "Connection",
    "Reply",
    "RunState",
    "Scenario",
    "Verdict",
    "parse",
    "run_scenarios",
]
