"""Push notification service using Firebase Cloud Messaging."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from sensor_relay.schemas.notification import DeliveryDetail

logger = logging.getLogger(__name__)

NOT_CONFIGURED_CODE = "messaging/not-configured"


def _is_fcm_available() -> bool:
    """Check if Firebase Cloud Messaging is available."""
    try:
        import firebase_admin
        # Check if Firebase app is initialized
        firebase_admin.get_app()
        return True
    except (ImportError, ValueError):
        return False


def _convert_data_to_strings(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Convert data payload values to strings (FCM requirement)."""
    if not data:
        return {}
    return {k: str(v) for k, v in data.items() if v is not None}


@dataclass
class MulticastResult:
    """Outcome of one batch send, one detail per token in request order."""
    success_count: int = 0
    failure_count: int = 0
    details: List[DeliveryDetail] = field(default_factory=list)


class PushNotificationService:
    """Service for sending push notifications via FCM."""

    def send_multicast(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> MulticastResult:
        """Send one notification to every token in a single batch call.

        Per-token failures (expired or unregistered tokens) are reported in the
        result and never raised. A ``FirebaseError`` for the batch as a whole
        propagates to the caller.

        Args:
            tokens: FCM registration tokens
            title: Notification title
            body: Notification body text
            data: Optional data payload, stringified for FCM

        Returns:
            MulticastResult with counts and per-token details
        """
        if not tokens:
            return MulticastResult()

        if not _is_fcm_available():
            logger.warning("FCM not available - push notification skipped")
            details = [
                DeliveryDetail(
                    token=t,
                    success=False,
                    error_code=NOT_CONFIGURED_CODE,
                    error_msg="Firebase app is not initialized",
                )
                for t in tokens
            ]
            return MulticastResult(0, len(tokens), details)

        from firebase_admin import messaging

        message = self._build_multicast(tokens, title, body, data)
        response = messaging.send_each_for_multicast(message)
        logger.info(
            f"Multicast result: {response.success_count} success, "
            f"{response.failure_count} failures"
        )

        details = []
        for idx, send_response in enumerate(response.responses):
            error = send_response.exception
            details.append(
                DeliveryDetail(
                    token=tokens[idx],
                    success=send_response.success,
                    error_code=getattr(error, "code", None) if error else None,
                    error_msg=str(error) if error else None,
                )
            )
            if error:
                logger.warning(f"Push to token {tokens[idx][:20]}... failed: {error}")

        return MulticastResult(response.success_count, response.failure_count, details)

    @staticmethod
    def _build_multicast(tokens: List[str], title: str, body: str, data: Optional[Dict[str, Any]]):
        """Build the multicast message with high-priority and sound hints."""
        from firebase_admin import messaging

        notification = messaging.Notification(title=title, body=body)

        android_config = messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(sound="default"),
        )

        apns_config = messaging.APNSConfig(
            headers={"apns-priority": "10"},
            payload=messaging.APNSPayload(aps=messaging.Aps(sound="default")),
        )

        return messaging.MulticastMessage(
            tokens=tokens,
            notification=notification,
            data=_convert_data_to_strings(data),
            android=android_config,
            apns=apns_config,
        )


def get_push_service() -> PushNotificationService:
    """FastAPI dependency; tests override it with a fake sender."""
    return PushNotificationService()
