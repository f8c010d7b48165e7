"""
On-device signal detectors.

A detector consumes one scalar per tick (screen brightness, accelerometer
magnitude, microphone amplitude) and emits one event per physical event.

Usage:
    from sensor_relay.detectors import DryerDetector, CallableSource

    detector = DryerDetector(source=CallableSource(read_accel_magnitude))
    detector.subscribe(lambda event: print(event.kind))
    await detector.listen()        # until detector.stop()

Or feed samples directly, e.g. from a test:
    detector = MailboxDetector()
    detector.start()
    event = detector.on_sample(0.42, now=12.0)
"""

from sensor_relay.detectors.base import (
    SignalDetector,
    DetectorEvent,
    DetectorStatus,
    SENSOR_UNAVAILABLE,
)
from sensor_relay.detectors.modalities import (
    MailboxDetector,
    VibrationDetector,
    SoundDetector,
    PresenceDetector,
    DryerDetector,
    DETECTORS,
)
from sensor_relay.detectors.sources import (
    SampleSource,
    CallableSource,
    ReplaySource,
    UnavailableSource,
    accel_magnitude,
    power_to_linear,
)
from sensor_relay.detectors.transitions import (
    DetectorState,
    RunState,
    SPIKE,
    STARTED,
    FINISHED,
    initial_state,
    ema_update,
    evaluate_spike,
    evaluate_sustained,
)

__all__ = [
    "SignalDetector",
    "DetectorEvent",
    "DetectorStatus",
    "SENSOR_UNAVAILABLE",
    "MailboxDetector",
    "VibrationDetector",
    "SoundDetector",
    "PresenceDetector",
    "DryerDetector",
    "DETECTORS",
    "SampleSource",
    "CallableSource",
    "ReplaySource",
    "UnavailableSource",
    "accel_magnitude",
    "power_to_linear",
    "DetectorState",
    "RunState",
    "SPIKE",
    "STARTED",
    "FINISHED",
    "initial_state",
    "ema_update",
    "evaluate_spike",
    "evaluate_sustained",
]
