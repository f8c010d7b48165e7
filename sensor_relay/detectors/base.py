"""Detector lifecycle, subscriptions and the asyncio sampling loop."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from sensor_relay.detectors.sources import SampleSource
from sensor_relay.detectors.transitions import DetectorState, RunState, initial_state

logger = logging.getLogger(__name__)

SENSOR_UNAVAILABLE = "sensor unavailable"


@dataclass(frozen=True)
class DetectorEvent:
    """One logical physical event: ``spike``, ``started`` or ``finished``."""
    kind: str
    detector: str
    at: float
    level: float


@dataclass(frozen=True)
class DetectorStatus:
    """Snapshot for a UI or test harness polling the detector."""
    detector: str
    status: str
    run_state: RunState
    level: float
    mean: float
    variance: float
    last_trigger_at: float


EventCallback = Callable[[DetectorEvent], None]


class SignalDetector(ABC):
    """Turns a noisy periodic sample stream into debounced events.

    Subclasses implement ``step``, a pure ``(state, raw, now) -> (state,
    level, kind)`` function. Internal state is only mutated from
    ``on_sample``; one sample is processed at a time.
    """

    name: str = "detector"
    task_label: str = "Sensor"
    interval: float = 1.0
    alpha: float = 0.05
    status_text = {
        RunState.STOPPED: "stopped",
        RunState.IDLE: "idle",
        RunState.LISTENING: "listening",
        RunState.TRIGGERED: "triggered",
        RunState.CONFIRMING_START: "confirming start",
        RunState.RUNNING: "running",
        RunState.CONFIRMING_STOP: "confirming stop",
        RunState.UNAVAILABLE: SENSOR_UNAVAILABLE,
    }

    def __init__(
        self,
        source: Optional[SampleSource] = None,
        clock: Callable[[], float] = time.monotonic,
        interval: Optional[float] = None,
    ):
        self.source = source
        self._clock = clock
        if interval is not None:
            self.interval = interval
        self._state = replace(initial_state(), run_state=RunState.STOPPED)
        self._level = 0.0
        self._running = False
        self._subscribers: List[EventCallback] = []

    @property
    def state(self) -> DetectorState:
        return self._state

    @property
    def running(self) -> bool:
        return self._running

    @abstractmethod
    def step(self, state: DetectorState, raw: float, now: float) -> Tuple[DetectorState, float, Optional[str]]:
        """Apply one sample; returns the new state, the evaluated level and an event kind."""

    def start(self) -> bool:
        """Reset to initial conditions and begin accepting samples.

        Returns False, with status ``sensor unavailable``, when the source
        reports the hardware capability missing. That condition is terminal
        for this instance until a new source is attached.
        """
        if self.source is not None and not self.source.available():
            logger.warning(f"{self.name}: {SENSOR_UNAVAILABLE}")
            self._state = replace(initial_state(), run_state=RunState.UNAVAILABLE)
            self._running = False
            return False
        self._state = replace(initial_state(), run_state=self._armed_state())
        self._level = 0.0
        self._running = True
        logger.info(f"{self.name}: listening")
        return True

    def _armed_state(self) -> RunState:
        return RunState.LISTENING

    def stop(self) -> None:
        """Halt sampling; no further events are emitted. Safe to call twice."""
        if self._state.run_state == RunState.UNAVAILABLE:
            return
        if self._running:
            logger.info(f"{self.name}: stopped")
        self._running = False
        self._state = replace(self._state, run_state=RunState.STOPPED)

    def on_sample(self, raw: float, now: Optional[float] = None) -> Optional[DetectorEvent]:
        if not self._running:
            return None
        now = self._clock() if now is None else now
        self._state, self._level, kind = self.step(self._state, raw, now)
        if kind is None:
            return None
        event = DetectorEvent(kind=kind, detector=self.name, at=now, level=self._level)
        logger.info(f"{self.name}: {kind} (level={self._level:.4f})")
        self._emit(event)
        return event

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Register for events; returns a function that unsubscribes."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _emit(self, event: DetectorEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                # a broken subscriber must not stop sampling
                logger.exception(f"{self.name}: subscriber failed handling {event.kind}")

    def latest_status(self) -> DetectorStatus:
        state = self._state
        return DetectorStatus(
            detector=self.name,
            status=self.status_text.get(state.run_state, state.run_state.value),
            run_state=state.run_state,
            level=self._level,
            mean=state.mean,
            variance=state.variance,
            last_trigger_at=state.last_trigger_at,
        )

    async def listen(self) -> None:
        """Sample ``source`` every ``interval`` seconds until ``stop()``.

        Replay sources stop the loop once exhausted.
        """
        if self.source is None:
            raise ValueError(f"{self.name} has no sample source")
        if not self.start():
            return
        try:
            while self._running:
                raw = self.source.read()
                if raw is not None:
                    self.on_sample(raw)
                elif getattr(self.source, "exhausted", False):
                    break
                await asyncio.sleep(self.interval)
        finally:
            self.stop()
            self.source.close()
