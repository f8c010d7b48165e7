"""Notification fan-out: one submitted event to every active device of a user.

Steps, in order:

1. Resolve the final title/body (caller-supplied values win).
2. Merge the status fields for the event type into the user document.
3. Collect tokens of active devices (none is fine).
4. Push one multicast batch when tokens exist.
5. Append a history record unconditionally.
6. Summarize per-token outcomes.

No deduplication is performed; resubmitting the same event yields a second
push batch and a second history record.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from sensor_relay.schemas.notification import (
    NotificationType,
    DryerEvent,
    SendNotificationRequest,
    SendNotificationResponse,
)
from sensor_relay.services.push_notification import PushNotificationService
from sensor_relay.services.store import EventStore, SERVER_TIMESTAMP
from sensor_relay.services import audit

logger = logging.getLogger(__name__)

MAIL_TITLE = "📬 You've got mail!"
MAIL_BODY = "Mail was just detected in your mailbox."
DRYER_TITLE = "Dryer Notifier"
DRYER_STARTED_BODY = "Your dryer is on — phone is listening."
DRYER_FINISHED_BODY = "Your clothes are done. Dryer has stopped."

_SENSOR_DEFAULTS = {
    NotificationType.sound: ("Sound Sensor", "A sound crossed your threshold."),
    NotificationType.presence: ("Presence", "Movement was detected near your device."),
    NotificationType.vibration: ("Vibration Sensor", "A vibration spike was detected."),
}


def _value(enum_or_none) -> Optional[str]:
    return enum_or_none.value if enum_or_none is not None else None


def default_title_body(
    notif_type: NotificationType,
    event: Optional[DryerEvent] = None,
) -> Tuple[str, str]:
    """Default title/body for an event type."""
    if notif_type == NotificationType.dryer:
        if event == DryerEvent.started:
            return DRYER_TITLE, DRYER_STARTED_BODY
        return DRYER_TITLE, DRYER_FINISHED_BODY
    if notif_type in _SENSOR_DEFAULTS:
        return _SENSOR_DEFAULTS[notif_type]
    return MAIL_TITLE, MAIL_BODY


def resolve_title_body(request: SendNotificationRequest) -> Tuple[str, str]:
    default_title, default_body = default_title_body(request.type, request.event)
    # empty strings fall back to the defaults
    return request.title or default_title, request.body or default_body


def status_fields_for(
    notif_type: NotificationType,
    event: Optional[DryerEvent] = None,
) -> Dict[str, Any]:
    """Status document fields touched by an event; everything else is preserved."""
    if notif_type == NotificationType.mail:
        return {
            "mail_detected": True,
            "mail_last_updated_at": SERVER_TIMESTAMP,
        }
    if notif_type == NotificationType.dryer:
        return {
            "dryer_running": event == DryerEvent.started,
            "dryer_last_event": _value(event),
            "dryer_last_updated_at": SERVER_TIMESTAMP,
        }
    return {f"last_{notif_type.value}_event_at": SERVER_TIMESTAMP}


def fan_out(
    store: EventStore,
    push: PushNotificationService,
    request: SendNotificationRequest,
) -> SendNotificationResponse:
    """Run the full fan-out for one validated request.

    Store and provider exceptions propagate; the route turns them into a 500.
    Zero tokens and failed deliveries are normal outcomes.
    """
    user_id = request.user_id
    notif_type = request.type
    event = request.event

    logger.info(f"sendNotification for user {user_id}: type={notif_type.value} event={_value(event)}")

    title, body = resolve_title_body(request)

    store.merge_user_fields(user_id, status_fields_for(notif_type, event))

    tokens = store.get_active_tokens(user_id)
    response = SendNotificationResponse()
    if tokens:
        result = push.send_multicast(
            tokens,
            title,
            body,
            data={"type": notif_type.value, "event": _value(event)},
        )
        response = SendNotificationResponse(
            success_count=result.success_count,
            failure_count=result.failure_count,
            details=result.details,
        )
    else:
        logger.info(f"No active device tokens for user {user_id}")

    record_id = store.append_history(
        user_id,
        {
            "title": title,
            "body": body,
            "type": notif_type.value,
            "event": _value(event),
            "created_at": SERVER_TIMESTAMP,
        },
    )

    audit.log_event_fanout(
        user_id=user_id,
        notif_type=notif_type.value,
        event=_value(event),
        record_id=record_id,
        token_count=len(tokens),
        success_count=response.success_count,
        failure_count=response.failure_count,
    )
    return response
