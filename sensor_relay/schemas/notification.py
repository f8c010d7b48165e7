"""Pydantic schemas for event submission and notification history."""

from pydantic import Field, field_validator
from typing import Optional, List
from enum import Enum
from datetime import datetime

from sensor_relay.schemas.common import CamelModel


class NotificationType(str, Enum):
    mail = "mail"
    dryer = "dryer"
    sound = "sound"
    presence = "presence"
    vibration = "vibration"


class DryerEvent(str, Enum):
    started = "started"
    finished = "finished"


class SendNotificationRequest(CamelModel):
    """Event submitted by a listening device."""
    user_id: str = Field(..., min_length=1, description="Identity provider uid of the owner")
    type: NotificationType = Field(NotificationType.mail, description="Event kind; defaults to mail for old callers")
    event: Optional[DryerEvent] = Field(None, description="Transition for sustained-activity sensors")
    title: Optional[str] = Field(None, description="Overrides the default title for the type")
    body: Optional[str] = Field(None, description="Overrides the default body for the type")

    @field_validator("type", mode="before")
    @classmethod
    def _null_type_is_mail(cls, v):
        # older callers send null or an empty string
        return v or NotificationType.mail

    model_config = {
        "json_schema_extra": {
            "example": {
                "userId": "Xb3f9kq2LmNc",
                "type": "dryer",
                "event": "finished",
            }
        }
    }


class DeliveryDetail(CamelModel):
    """Per-token push outcome."""
    token: str
    success: bool
    error_code: Optional[str] = None
    error_msg: Optional[str] = None


class SendNotificationResponse(CamelModel):
    success_count: int = 0
    failure_count: int = 0
    details: List[DeliveryDetail] = Field(default_factory=list)


class ErrorResponse(CamelModel):
    code: Optional[str] = None
    message: str


class NotificationRecordOut(CamelModel):
    id: str
    title: str
    body: str
    type: str
    event: Optional[str] = None
    created_at: Optional[datetime] = None
