"""Sample sources feeding a detector's sampling loop."""

import math
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Iterator, Optional


def accel_magnitude(x: float, y: float, z: float) -> float:
    """Acceleration magnitude in g; a phone at rest reads about 1.0."""
    return math.sqrt(x * x + y * y + z * z)


def power_to_linear(power_db: float) -> float:
    """Average microphone power (-160..0 dB) to linear amplitude (0..1)."""
    return 10 ** (power_db / 20)


class SampleSource(ABC):
    """Hardware capability that yields one scalar per read."""

    @abstractmethod
    def available(self) -> bool:
        """False when the capability is absent on this device."""

    @abstractmethod
    def read(self) -> Optional[float]:
        """Current value, or None when no reading is ready yet."""

    def close(self) -> None:
        pass


class CallableSource(SampleSource):
    """Wraps a zero-argument reader, e.g. a platform binding."""

    def __init__(self, reader: Callable[[], Optional[float]], is_available: bool = True):
        self._reader = reader
        self._available = is_available

    def available(self) -> bool:
        return self._available

    def read(self) -> Optional[float]:
        return self._reader()


class ReplaySource(SampleSource):
    """Plays back recorded samples once, then reports exhaustion."""

    def __init__(self, samples: Iterable[float]):
        self._samples: Iterator[float] = iter(samples)
        self.exhausted = False

    def available(self) -> bool:
        return True

    def read(self) -> Optional[float]:
        try:
            return next(self._samples)
        except StopIteration:
            self.exhausted = True
            return None


class UnavailableSource(SampleSource):
    """Stand-in for hardware the device does not have."""

    def available(self) -> bool:
        return False

    def read(self) -> Optional[float]:
        return None
