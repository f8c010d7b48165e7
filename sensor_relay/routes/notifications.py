"""Event submission and notification history endpoints."""

import json
import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from sensor_relay.core.settings import settings
from sensor_relay.exceptions import ValidationException
from sensor_relay.schemas.notification import (
    ErrorResponse,
    NotificationRecordOut,
    SendNotificationRequest,
    SendNotificationResponse,
)
from sensor_relay.services.auth import get_store, get_current_user_id, check_event_caller
from sensor_relay.services.fanout import fan_out
from sensor_relay.services.push_notification import PushNotificationService, get_push_service
from sensor_relay.services.store import EventStore

logger = logging.getLogger(__name__)
router = APIRouter()


def _is_json(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


@router.post(
    "/sendNotification",
    response_model=SendNotificationResponse,
    responses={400: {"description": "Missing or malformed input"}, 500: {"model": ErrorResponse}},
)
async def send_notification(
    request: Request,
    store: EventStore = Depends(get_store),
    push: PushNotificationService = Depends(get_push_service),
):
    """Deliver one detected event to every active device of a user.

    Called by listening devices. Zero registered devices or failed deliveries
    still return 200 and still record history.
    """
    if not _is_json(request):
        raise ValidationException("Content-Type must be application/json")

    try:
        payload = json.loads(await request.body() or b"null")
    except ValueError:
        raise ValidationException("Body is not valid JSON")
    if not isinstance(payload, dict):
        raise ValidationException("Body must be a JSON object")
    if not payload.get("userId"):
        raise ValidationException("Missing userId")

    try:
        submission = SendNotificationRequest.model_validate(payload)
    except ValidationError as e:
        raise ValidationException(f"Invalid event: {e.errors(include_url=False)}")

    check_event_caller(request, submission.user_id)

    try:
        return await run_in_threadpool(fan_out, store, push, submission)
    except Exception as e:
        logger.error(f"sendNotification failed for user {submission.user_id}: {e}", exc_info=True)
        store.rollback()
        code = getattr(e, "code", None)
        error = ErrorResponse(
            code=str(code) if code is not None else None,
            message=str(e) or type(e).__name__,
        )
        return JSONResponse(status_code=500, content=error.model_dump(by_alias=True))


@router.get("/users/me/notifications", response_model=List[NotificationRecordOut])
def list_my_notifications(
    limit: int = Query(settings.history_page_size, ge=1, le=settings.history_page_size),
    user_id: str = Depends(get_current_user_id),
    store: EventStore = Depends(get_store),
):
    """Newest notification history for the signed-in user."""
    return [NotificationRecordOut(**item) for item in store.list_history(user_id, limit=limit)]
