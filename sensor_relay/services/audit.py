"""Audit logging helper functions for key domain events.

Standard single-line logs so they are easy to index.
"""
from __future__ import annotations
import logging
from typing import Optional, Any

from sensor_relay.utils.datetime import utc_now

_logger = logging.getLogger("sensor_relay.audit")


def _emit(event: str, user_id: Optional[str] = None, **data: Any):
    payload = {"ts": utc_now().isoformat(), "event": event}
    if user_id:
        payload["user_id"] = user_id
    payload.update(data)
    parts = [f"{k}={repr(v)}" for k, v in payload.items()]
    _logger.info("AUDIT " + " ".join(parts))


# Public convenience wrappers

def log_event_fanout(user_id: str, notif_type: str, event: Optional[str], record_id: str,
                     token_count: int, success_count: int, failure_count: int):
    _emit(
        "event.fanout",
        user_id=user_id,
        type=notif_type,
        dryer_event=event,
        record_id=record_id,
        tokens=token_count,
        success=success_count,
        failure=failure_count,
    )


def log_device_upsert(user_id: str, device_id: str, reason: str, is_listening: Optional[bool] = None):
    _emit("device.upsert", user_id=user_id, device_id=device_id, reason=reason, is_listening=is_listening)


def log_mail_reset(user_id: str):
    _emit("status.mail_reset", user_id=user_id)
