"""
Sequential, fail-fast scenario runner.

Scenarios build on the protocol state left behind by the ones before
them (PART assumes JOIN worked, and so on), so the run stops at the
first scenario that fails, zero-point ones included.
"""

import sys
from dataclasses import dataclass, field
from typing import Callable, List, Optional

# ---------------------------------------------------------------------------
# Terminal helpers
# ---------------------------------------------------------------------------

def _colour(code, t):
    if sys.stdout.isatty():
        return f"\033[{code}m{t}\033[0m"
    return t

def _green(t):  return _colour("32", t)
def _red(t):    return _colour("31", t)
def _cyan(t):   return _colour("36", t)


def note(text):
    """Print one diagnostic line under the current scenario."""
    print(f"\t{text}")


def announce(name):
    print(_cyan(f"////// {name} \\\\\\\\\\\\"))
    return name


# ---------------------------------------------------------------------------
# Scenarios and run state
# ---------------------------------------------------------------------------

@dataclass
class Scenario:
    name: str
    check: Callable[[], bool]
    points: int = 1
    passed_exp: Optional[str] = None
    failed_exp: Optional[str] = None
    # Scenarios sharing a name after the first one print no banner.
    banner: bool = True


@dataclass
class RunState:
    max_points: int
    points: int = 0
    completed: List[str] = field(default_factory=list)
    failed: Optional[str] = None

    @classmethod
    def for_scenarios(cls, scenarios):
        return cls(max_points=sum(s.points for s in scenarios))

    def score_line(self):
        return f"Your score: {self.points} / {self.max_points}"


def report(name, passed, explanation=None):
    if passed:
        line = _green(f"(+) {name} passed")
    else:
        line = _red(f"(-) {name} failed")
    if explanation:
        line += f": {explanation}"
    print(line)
    return passed


def run_scenarios(scenarios, state):
    """
    Run *scenarios* in order, accumulating points into *state*.

    Stops at the first failing scenario; nothing after it is evaluated
    and *state* is left untouched from then on.  An exception raised by a
    scenario (a lost connection) propagates with *state* still holding
    everything recorded before it.
    """
    for scenario in scenarios:
        if scenario.banner:
            announce(scenario.name)
        passed = bool(scenario.check())
        report(scenario.name, passed,
               scenario.passed_exp if passed else scenario.failed_exp)
        if not passed:
            state.failed = scenario.name
            break
        state.points += scenario.points
        state.completed.append(scenario.name)
    return state
