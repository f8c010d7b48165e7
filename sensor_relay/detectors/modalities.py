"""Per-modality detectors with the tuning the app ships with.

| detector          | level                                   | threshold          | debounce        |
|-------------------|-----------------------------------------|--------------------|-----------------|
| MailboxDetector   | brightness vs. first-sample baseline    | ratio 1.8 / +0.12  | 12 s cooldown   |
| VibrationDetector | EMA variance of accel magnitude         | 0.02               | 10 s cooldown   |
| SoundDetector     | linear microphone amplitude             | user, 0.1..1.0     | 10 s cooldown   |
| PresenceDetector  | abs(accel magnitude - 1 g)              | 0.15               | 20 s cooldown   |
| DryerDetector     | EMA variance of accel magnitude         | 0.02               | 4 s on / 25 s off |
"""

from dataclasses import replace
from typing import Optional, Tuple

from sensor_relay.detectors.base import SignalDetector
from sensor_relay.detectors.transitions import (
    DetectorState,
    RunState,
    ema_update,
    evaluate_spike,
    evaluate_sustained,
)
from sensor_relay.schemas.function_config import clamp_threshold

MIN_BASELINE = 0.001
GRAVITY = 1.0


class MailboxDetector(SignalDetector):
    """Screen auto-brightness jumps when the mailbox door lets light in.

    The baseline is fixed at the first sample of a session; the detector
    fires when brightness reaches ``ratio_threshold`` times the baseline or
    rises by ``absolute_delta``, whichever comes first.
    """

    name = "mailbox"
    task_label = "Mailbox Notifier"
    interval = 1.0
    ratio_threshold = 1.8
    absolute_delta = 0.12
    cooldown = 12.0

    def step(self, state: DetectorState, raw: float, now: float) -> Tuple[DetectorState, float, Optional[str]]:
        state = ema_update(state, raw, self.alpha)
        if state.baseline is None:
            state = replace(state, baseline=max(raw, MIN_BASELINE))
        ratio = raw / state.baseline
        delta = raw - state.baseline
        # normalise both criteria onto one level where 1.0 means "crossed"
        level = max(ratio / self.ratio_threshold, delta / self.absolute_delta)
        state, kind = evaluate_spike(state, level, 1.0, self.cooldown, now)
        return state, ratio, kind


class VibrationDetector(SignalDetector):
    """Spikes in accelerometer variance (appliances, tools, footsteps)."""

    name = "vibration"
    task_label = "Vibration Sensor"
    interval = 0.2
    alpha = 0.05
    variance_threshold = 0.02
    cooldown = 10.0
    status_text = {**SignalDetector.status_text, RunState.TRIGGERED: "spike"}

    def step(self, state, raw, now):
        state = ema_update(state, raw, self.alpha)
        state, kind = evaluate_spike(state, state.variance, self.variance_threshold, self.cooldown, now)
        return state, state.variance, kind


class SoundDetector(SignalDetector):
    """Sound level crossing a user-chosen linear amplitude."""

    name = "sound"
    task_label = "Sound Sensor"
    interval = 0.3
    default_threshold = 0.7
    cooldown = 10.0

    def __init__(self, *args, threshold: Optional[float] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.threshold = clamp_threshold(self.default_threshold if threshold is None else threshold)

    def step(self, state, raw, now):
        state = ema_update(state, raw, self.alpha)
        state, kind = evaluate_spike(state, raw, self.threshold, self.cooldown, now)
        return state, raw, kind


class PresenceDetector(SignalDetector):
    """Someone bumps, picks up or moves the device."""

    name = "presence"
    task_label = "Presence"
    interval = 0.5
    magnitude_threshold = 0.15
    cooldown = 20.0
    status_text = {**SignalDetector.status_text, RunState.TRIGGERED: "presence detected"}

    def step(self, state, raw, now):
        state = ema_update(state, raw, self.alpha)
        delta = abs(raw - GRAVITY)
        state, kind = evaluate_spike(state, delta, self.magnitude_threshold, self.cooldown, now)
        return state, delta, kind


class DryerDetector(SignalDetector):
    """Sustained vibration: reports when a dryer cycle starts and finishes.

    The stop window is longer than the start window so a brief lull inside a
    cycle does not end it.
    """

    name = "dryer"
    task_label = "Dryer Notifier"
    interval = 0.2
    alpha = 0.05
    variance_threshold = 0.02
    start_confirm_seconds = 4.0
    stop_confirm_seconds = 25.0

    def _armed_state(self) -> RunState:
        return RunState.IDLE

    def step(self, state, raw, now):
        state = ema_update(state, raw, self.alpha)
        state, kind = evaluate_sustained(
            state,
            state.variance,
            self.variance_threshold,
            self.start_confirm_seconds,
            self.stop_confirm_seconds,
            now,
        )
        return state, state.variance, kind


DETECTORS = {
    cls.name: cls
    for cls in (MailboxDetector, VibrationDetector, SoundDetector, PresenceDetector, DryerDetector)
}
