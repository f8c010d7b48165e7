"""Device heartbeat: keeps the device record fresh while a detector runs."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from sensor_relay.client.api import RelayClient
from sensor_relay.core.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class DeviceInfo:
    name: Optional[str] = None
    model: Optional[str] = None
    system_version: Optional[str] = None
    bundle_id: Optional[str] = None


def battery_percent(level: Optional[float]) -> Optional[int]:
    """Battery level 0..1 to a whole percentage; negative means unknown."""
    if level is None or level < 0:
        return None
    return int(round(max(0.0, min(1.0, level)) * 100))


class DeviceHeartbeat:
    """Upserts the device roughly once a minute and on listening changes."""

    def __init__(
        self,
        client: RelayClient,
        device_id: str,
        info: Optional[DeviceInfo] = None,
        battery_reader: Optional[Callable[[], Optional[float]]] = None,
        interval: Optional[float] = None,
    ):
        self.client = client
        self.device_id = device_id
        self.info = info or DeviceInfo()
        self.battery_reader = battery_reader
        self.interval = interval if interval is not None else settings.heartbeat_interval
        self.is_listening = False
        self.task: Optional[str] = None
        self._stopped: Optional[asyncio.Event] = None

    def payload(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"isListening": self.is_listening}
        if self.task:
            data["task"] = self.task
        pct = battery_percent(self.battery_reader() if self.battery_reader else None)
        if pct is not None:
            data["battery"] = pct
        for key, value in (
            ("name", self.info.name),
            ("model", self.info.model),
            ("systemVersion", self.info.system_version),
            ("bundleId", self.info.bundle_id),
        ):
            if value is not None:
                data[key] = value
        return data

    def post(self) -> None:
        self.client.heartbeat(self.device_id, self.payload())

    def set_listening(self, listening: bool, task: Optional[str] = None) -> None:
        """Record a listening transition immediately."""
        self.is_listening = listening
        if task is not None:
            self.task = task
        self.post()

    async def run(self) -> None:
        """Post every ``interval`` seconds until ``stop()``."""
        self._stopped = asyncio.Event()
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                await asyncio.to_thread(self.post)

    def stop(self) -> None:
        if self._stopped is not None:
            self._stopped.set()
