"""Pydantic schemas for device registration and heartbeats."""

from pydantic import Field
from typing import Optional
from datetime import datetime

from sensor_relay.schemas.common import CamelModel


class RegisterTokenRequest(CamelModel):
    """Push token handed to the app by Firebase Cloud Messaging."""
    token: str = Field(..., min_length=1, description="Firebase Cloud Messaging registration token")

    model_config = {
        "json_schema_extra": {
            "example": {"token": "dKzH7v...:APA91b..."}
        }
    }


class HeartbeatRequest(CamelModel):
    """Periodic device upsert sent while a detector is running."""
    is_listening: bool = False
    task: Optional[str] = Field(None, description="Label of the running detector")
    battery: Optional[int] = Field(None, ge=0, le=100)
    name: Optional[str] = None
    model: Optional[str] = None
    system_version: Optional[str] = None
    bundle_id: Optional[str] = None


class DeviceOut(CamelModel):
    device_id: str
    name: Optional[str] = None
    model: Optional[str] = None
    system_version: Optional[str] = None
    bundle_id: Optional[str] = None
    has_token: bool = False
    is_active: bool = False
    is_listening: bool = False
    task: Optional[str] = None
    battery: Optional[int] = None
    updated_at: Optional[datetime] = None
