"""Device registration and heartbeat endpoints."""

from fastapi import APIRouter, Depends
from typing import List
import logging

from sensor_relay.schemas.device import RegisterTokenRequest, HeartbeatRequest, DeviceOut
from sensor_relay.services.auth import get_store, get_current_user_id
from sensor_relay.services.store import EventStore
from sensor_relay.services import audit

logger = logging.getLogger(__name__)
router = APIRouter()


def _device_out(data: dict) -> DeviceOut:
    token = data.pop("token", None)
    return DeviceOut(has_token=bool(token), **data)


@router.put("/{device_id}/token")
def register_token(
    device_id: str,
    request: RegisterTokenRequest,
    user_id: str = Depends(get_current_user_id),
    store: EventStore = Depends(get_store),
):
    """Store the FCM token for this install and mark it active.

    Called by the app whenever Firebase hands it a fresh registration token.
    A device keeps exactly one token; re-registering replaces it.
    """
    store.upsert_device(user_id, device_id, {"token": request.token, "is_active": True})
    audit.log_device_upsert(user_id, device_id, reason="token")
    logger.info(f"Registered push token for user {user_id}, device {device_id}")
    return {"message": "Device token saved", "deviceId": device_id}


@router.put("/{device_id}/heartbeat")
def heartbeat(
    device_id: str,
    request: HeartbeatRequest,
    user_id: str = Depends(get_current_user_id),
    store: EventStore = Depends(get_store),
):
    """Upsert device details while a detector runs (about once a minute).

    Optional fields that are not sent are left untouched.
    """
    fields = request.model_dump(exclude_none=True, exclude={"is_listening"})
    fields["is_active"] = True
    fields["is_listening"] = request.is_listening
    store.upsert_device(user_id, device_id, fields)
    audit.log_device_upsert(user_id, device_id, reason="heartbeat", is_listening=request.is_listening)
    return {"message": "Heartbeat recorded", "deviceId": device_id}


@router.get("", response_model=List[DeviceOut])
def list_my_devices(
    user_id: str = Depends(get_current_user_id),
    store: EventStore = Depends(get_store),
):
    """List all devices of the current user, most recently seen first."""
    return [_device_out(d) for d in store.list_devices(user_id)]
