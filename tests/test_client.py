import asyncio
from unittest.mock import MagicMock

import pytest
import requests

from sensor_relay.client import (
    DeviceHeartbeat,
    DeviceInfo,
    ListeningSession,
    RelayClient,
    battery_percent,
)
from sensor_relay.detectors import (
    DetectorEvent,
    DryerDetector,
    MailboxDetector,
    PresenceDetector,
    ReplaySource,
    SoundDetector,
)


def _session_returning(payload):
    session = MagicMock(spec=requests.Session)
    session.request.return_value.json.return_value = payload
    return session


class TestRelayClient:
    def test_submit_event_posts_camel_case(self):
        session = _session_returning({"successCount": 1, "failureCount": 0, "details": []})
        client = RelayClient(base_url="http://relay.test/", id_token="tok", session=session)

        result = client.submit_event("u1", type="dryer", event="finished")

        assert result["successCount"] == 1
        method, url = session.request.call_args[0]
        kwargs = session.request.call_args[1]
        assert method == "POST"
        assert url == "http://relay.test/sendNotification"
        assert kwargs["json"] == {"userId": "u1", "type": "dryer", "event": "finished"}
        assert kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_empty_optional_fields_are_omitted(self):
        session = _session_returning({})
        RelayClient(base_url="http://relay.test", session=session).submit_event("u1", title="", body=None)
        kwargs = session.request.call_args[1]
        assert kwargs["json"] == {"userId": "u1"}
        assert "Authorization" not in kwargs["headers"]

    def test_network_error_returns_none(self):
        session = MagicMock(spec=requests.Session)
        session.request.side_effect = requests.ConnectionError("offline")
        assert RelayClient(base_url="http://relay.test", session=session).submit_event("u1") is None

    def test_http_error_returns_none(self):
        session = MagicMock(spec=requests.Session)
        session.request.return_value.raise_for_status.side_effect = requests.HTTPError("500")
        assert RelayClient(base_url="http://relay.test", session=session).submit_event("u1") is None

    def test_device_calls_use_put(self):
        session = _session_returning({})
        client = RelayClient(base_url="http://relay.test", session=session)
        client.register_token("kitchen", "fcm-1")
        assert session.request.call_args[0] == ("PUT", "http://relay.test/users/me/devices/kitchen/token")
        client.heartbeat("kitchen", {"isListening": True})
        assert session.request.call_args[0] == ("PUT", "http://relay.test/users/me/devices/kitchen/heartbeat")


@pytest.mark.parametrize("level,expected", [
    (None, None),
    (-1.0, None),
    (0.0, 0),
    (0.874, 87),
    (1.0, 100),
])
def test_battery_percent(level, expected):
    assert battery_percent(level) == expected


def test_heartbeat_payload():
    hb = DeviceHeartbeat(
        MagicMock(),
        "garage",
        info=DeviceInfo(name="Old iPhone", bundle_id="com.example.app"),
        battery_reader=lambda: 0.5,
    )
    hb.set_listening(True, "Dryer Notifier")
    hb.client.heartbeat.assert_called_once_with("garage", {
        "isListening": True,
        "task": "Dryer Notifier",
        "battery": 50,
        "name": "Old iPhone",
        "bundleId": "com.example.app",
    })

    hb.set_listening(False)
    payload = hb.client.heartbeat.call_args[0][1]
    assert payload["isListening"] is False
    assert payload["task"] == "Dryer Notifier"


class TestListeningSession:
    def test_mail_event_uses_server_defaults(self):
        session = ListeningSession(MailboxDetector(), MagicMock(), "u1", config={"notification_title": "x"})
        event = DetectorEvent(kind="spike", detector="mailbox", at=1.0, level=2.0)
        assert session.build_submission(event) == {"user_id": "u1", "type": "mail"}

    def test_dryer_event_carries_transition(self):
        session = ListeningSession(DryerDetector(), MagicMock(), "u1")
        event = DetectorEvent(kind="finished", detector="dryer", at=1.0, level=0.01)
        assert session.build_submission(event) == {"user_id": "u1", "type": "dryer", "event": "finished"}

    def test_sensor_event_uses_saved_config(self):
        config = {"use_case_name": "Baby monitor", "notification_title": "Nursery", "notification_body": "Awake"}
        session = ListeningSession(SoundDetector(), MagicMock(), "u1", config=config)
        event = DetectorEvent(kind="spike", detector="sound", at=1.0, level=0.9)
        assert session.build_submission(event) == {
            "user_id": "u1", "type": "sound", "title": "Nursery", "body": "Awake",
        }
        assert session.task_label == "Baby monitor"

    def test_handle_event_without_loop_submits_inline(self):
        client = MagicMock()
        session = ListeningSession(MailboxDetector(), client, "u1")
        session.handle_event(DetectorEvent(kind="spike", detector="mailbox", at=0.0, level=3.0))
        client.submit_event.assert_called_once_with(user_id="u1", type="mail")

    def test_finished_submissions_are_released(self):
        client = MagicMock()
        session = ListeningSession(PresenceDetector(), client, "u1")

        async def drive():
            for i in range(5):
                session.handle_event(DetectorEvent(kind="spike", detector="presence", at=float(i), level=0.5))
            await asyncio.gather(*list(session._pending))
            await asyncio.sleep(0)

        asyncio.run(drive())
        assert client.submit_event.call_count == 5
        assert not session._pending

    def test_run_submits_each_event_and_reports_listening(self):
        samples = [1.0 if i % 2 == 0 else 2.0 for i in range(100)] + [1.0] * 300
        ticks = iter(i * 0.2 for i in range(len(samples) + 10))
        detector = DryerDetector(source=ReplaySource(samples), clock=lambda: next(ticks), interval=0)
        client = MagicMock()
        heartbeat = DeviceHeartbeat(client, "garage", interval=3600)
        session = ListeningSession(detector, client, "u1", heartbeat=heartbeat)

        asyncio.run(session.run())

        # submissions run on executor threads
        submitted = sorted((c.kwargs for c in client.submit_event.call_args_list), key=lambda s: s["event"])
        assert submitted == [
            {"user_id": "u1", "type": "dryer", "event": "finished"},
            {"user_id": "u1", "type": "dryer", "event": "started"},
        ]
        listening_flags = [c[0][1]["isListening"] for c in client.heartbeat.call_args_list]
        assert listening_flags == [True, False]
        assert heartbeat.task == "Dryer Notifier"
