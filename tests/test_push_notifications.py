"""Tests for the FCM multicast sender."""

from unittest.mock import patch, MagicMock

import pytest
from firebase_admin import messaging

from sensor_relay.models.notification import NotificationRecord
from sensor_relay.services.push_notification import (
    NOT_CONFIGURED_CODE,
    PushNotificationService,
    _convert_data_to_strings,
)


def _send_response(success, exception=None):
    resp = MagicMock()
    resp.success = success
    resp.exception = exception
    return resp


class TestPushNotificationService:
    """Test the push notification service logic."""

    def test_no_tokens_sends_nothing(self):
        with patch.object(messaging, "send_each_for_multicast") as send:
            result = PushNotificationService().send_multicast([], "t", "b")
        send.assert_not_called()
        assert result.success_count == 0
        assert result.failure_count == 0
        assert result.details == []

    def test_fcm_not_available_reports_every_token(self):
        """FCM is not initialized in the test environment."""
        result = PushNotificationService().send_multicast(["A", "B"], "Title", "Body")
        assert result.success_count == 0
        assert result.failure_count == 2
        assert [d.token for d in result.details] == ["A", "B"]
        assert all(d.error_code == NOT_CONFIGURED_CODE for d in result.details)

    def test_per_token_outcomes(self):
        unregistered = messaging.UnregisteredError("Requested entity was not found.")
        batch = MagicMock()
        batch.success_count = 1
        batch.failure_count = 1
        batch.responses = [_send_response(True), _send_response(False, unregistered)]

        with patch("sensor_relay.services.push_notification._is_fcm_available", return_value=True), \
                patch.object(messaging, "send_each_for_multicast", return_value=batch) as send:
            result = PushNotificationService().send_multicast(
                ["A", "B"], "Dryer Notifier", "Your clothes are done.", data={"type": "dryer", "event": "finished"}
            )

        message = send.call_args[0][0]
        assert message.tokens == ["A", "B"]
        assert message.notification.title == "Dryer Notifier"
        assert message.data == {"type": "dryer", "event": "finished"}
        assert message.android.priority == "high"
        assert message.apns.headers == {"apns-priority": "10"}

        assert result.success_count == 1
        assert result.failure_count == 1
        ok, failed = result.details
        assert ok.token == "A" and ok.success is True and ok.error_code is None
        assert failed.token == "B" and failed.success is False
        assert failed.error_code == unregistered.code
        assert "not found" in failed.error_msg

    def test_batch_error_propagates(self):
        with patch("sensor_relay.services.push_notification._is_fcm_available", return_value=True), \
                patch.object(messaging, "send_each_for_multicast", side_effect=RuntimeError("quota")):
            with pytest.raises(RuntimeError):
                PushNotificationService().send_multicast(["A"], "t", "b")

    def test_data_conversion_to_strings(self):
        """Data payload values are converted to strings and None values dropped."""
        result = _convert_data_to_strings({"type": "mail", "count": 42, "flag": True, "event": None})
        assert result == {"type": "mail", "count": "42", "flag": "True"}
        assert _convert_data_to_strings(None) == {}


def test_unconfigured_messaging_still_records_history(client, db_session, add_device):
    add_device("u1", "phone", token="A")
    resp = client.post("/sendNotification", json={"userId": "u1", "type": "vibration"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["successCount"] == 0
    assert data["failureCount"] == 1
    assert data["details"][0]["errorCode"] == NOT_CONFIGURED_CODE

    db_session.expire_all()
    assert db_session.query(NotificationRecord).count() == 1
