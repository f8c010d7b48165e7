"""Pure state transitions shared by every detector.

Each function takes the previous ``DetectorState`` and returns a new one, so a
sample sequence always produces the same trajectory. Nothing here reads a
clock or a sensor; callers pass ``now`` in seconds on a monotonic scale.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

NEG_INF = float("-inf")


class RunState(str, Enum):
    STOPPED = "stopped"
    IDLE = "idle"
    LISTENING = "listening"
    TRIGGERED = "triggered"
    CONFIRMING_START = "confirming_start"
    RUNNING = "running"
    CONFIRMING_STOP = "confirming_stop"
    UNAVAILABLE = "unavailable"


SPIKE = "spike"
STARTED = "started"
FINISHED = "finished"


@dataclass(frozen=True)
class DetectorState:
    mean: float = 0.0
    variance: float = 0.0
    initialized: bool = False
    last_trigger_at: float = NEG_INF
    run_state: RunState = RunState.IDLE
    baseline: Optional[float] = None
    # sustained-activity confirmation timers
    above_since: Optional[float] = None
    below_since: Optional[float] = None


def initial_state() -> DetectorState:
    return DetectorState()


def ema_update(state: DetectorState, raw: float, alpha: float) -> DetectorState:
    """Fold one sample into the running mean and variance.

    The first sample after a reset seeds ``mean = raw`` and ``variance = 0``.
    Later samples apply a single-pole IIR filter to the mean and to the
    squared deviation, which tracks a rolling variance without history.
    """
    if not state.initialized:
        return replace(state, mean=raw, variance=0.0, initialized=True)
    diff = raw - state.mean
    mean = state.mean + alpha * diff
    variance = state.variance + alpha * (diff * diff - state.variance)
    return replace(state, mean=mean, variance=max(variance, 0.0))


def evaluate_spike(
    state: DetectorState,
    level: float,
    threshold: float,
    cooldown: float,
    now: float,
) -> Tuple[DetectorState, Optional[str]]:
    """Binary transition: one ``spike`` per qualifying crossing.

    A level at or above ``threshold`` fires only when ``cooldown`` seconds have
    passed since the previous trigger. Below threshold the state reports
    LISTENING again.
    """
    if level >= threshold:
        if now - state.last_trigger_at >= cooldown:
            return replace(state, run_state=RunState.TRIGGERED, last_trigger_at=now), SPIKE
        return state, None
    if state.run_state != RunState.LISTENING:
        return replace(state, run_state=RunState.LISTENING), None
    return state, None


def evaluate_sustained(
    state: DetectorState,
    level: float,
    threshold: float,
    start_confirm: float,
    stop_confirm: float,
    now: float,
) -> Tuple[DetectorState, Optional[str]]:
    """Tri-state transition with separate start and stop confirmation windows.

    IDLE -> CONFIRMING_START -> RUNNING needs the level to stay at/above
    ``threshold`` for ``start_confirm`` seconds; RUNNING -> CONFIRMING_STOP ->
    IDLE needs it to stay below for ``stop_confirm`` seconds. Any sample on the
    other side of the threshold resets the pending window.
    """
    run_state = state.run_state
    active = run_state in (RunState.RUNNING, RunState.CONFIRMING_STOP)

    if level >= threshold:
        if active:
            return replace(state, run_state=RunState.RUNNING, below_since=None), None
        above_since = state.above_since if state.above_since is not None else now
        if now - above_since >= start_confirm:
            return replace(
                state,
                run_state=RunState.RUNNING,
                above_since=None,
                below_since=None,
                last_trigger_at=now,
            ), STARTED
        return replace(state, run_state=RunState.CONFIRMING_START, above_since=above_since), None

    if not active:
        return replace(state, run_state=RunState.IDLE, above_since=None), None
    below_since = state.below_since if state.below_since is not None else now
    if now - below_since >= stop_confirm:
        return replace(
            state,
            run_state=RunState.IDLE,
            above_since=None,
            below_since=None,
            last_trigger_at=now,
        ), FINISHED
    return replace(state, run_state=RunState.CONFIRMING_STOP, below_since=below_since), None
