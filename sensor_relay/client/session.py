"""Listening session: a detector wired to event submission and heartbeats."""

import asyncio
import contextlib
import logging
from typing import Any, Dict, Optional, Set

from sensor_relay.client.api import RelayClient
from sensor_relay.client.heartbeat import DeviceHeartbeat
from sensor_relay.detectors.base import DetectorEvent, SignalDetector
from sensor_relay.detectors.transitions import SPIKE

logger = logging.getLogger(__name__)

# detector name -> event type understood by /sendNotification
EVENT_TYPES = {
    "mailbox": "mail",
    "dryer": "dryer",
    "sound": "sound",
    "presence": "presence",
    "vibration": "vibration",
}


class ListeningSession:
    """Runs one detector until stopped, forwarding each event to the relay.

    ``config`` is the user's saved function config (``use_case_name``,
    ``notification_title``, ``notification_body``); spike detectors send its
    title/body, mailbox and dryer events use the server defaults.
    """

    def __init__(
        self,
        detector: SignalDetector,
        client: RelayClient,
        user_id: str,
        heartbeat: Optional[DeviceHeartbeat] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.detector = detector
        self.client = client
        self.user_id = user_id
        self.heartbeat = heartbeat
        self.config = config or {}
        self._pending: Set[asyncio.Future] = set()

    @property
    def task_label(self) -> str:
        return self.config.get("use_case_name") or self.detector.task_label

    def build_submission(self, event: DetectorEvent) -> Dict[str, Any]:
        notif_type = EVENT_TYPES.get(event.detector, "mail")
        submission: Dict[str, Any] = {"user_id": self.user_id, "type": notif_type}
        if event.kind != SPIKE:
            submission["event"] = event.kind
        if notif_type not in ("mail", "dryer"):
            submission["title"] = self.config.get("notification_title")
            submission["body"] = self.config.get("notification_body")
        return submission

    def handle_event(self, event: DetectorEvent) -> None:
        submission = self.build_submission(event)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.client.submit_event(**submission)
            return
        # keep the sampling loop responsive while the request is in flight
        future = loop.run_in_executor(None, lambda: self.client.submit_event(**submission))
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)

    async def run(self) -> None:
        unsubscribe = self.detector.subscribe(self.handle_event)
        heartbeat_task = None
        if self.heartbeat is not None:
            await asyncio.to_thread(self.heartbeat.set_listening, True, self.task_label)
            heartbeat_task = asyncio.create_task(self.heartbeat.run())
        logger.info(f"Listening session started: {self.task_label}")
        try:
            await self.detector.listen()
        finally:
            unsubscribe()
            self.detector.stop()
            if heartbeat_task is not None:
                self.heartbeat.stop()
                heartbeat_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await heartbeat_task
                await asyncio.to_thread(self.heartbeat.set_listening, False)
            if self._pending:
                await asyncio.gather(*self._pending, return_exceptions=True)
            logger.info(f"Listening session ended: {self.task_label}")

    def stop(self) -> None:
        self.detector.stop()
