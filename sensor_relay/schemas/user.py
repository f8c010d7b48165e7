from typing import Optional
from datetime import datetime

from sensor_relay.schemas.common import CamelModel


class UserStatusOut(CamelModel):
    id: str
    mail_detected: bool = False
    mail_last_updated_at: Optional[datetime] = None
    dryer_running: bool = False
    dryer_last_event: Optional[str] = None
    dryer_last_updated_at: Optional[datetime] = None
    last_sound_event_at: Optional[datetime] = None
    last_presence_event_at: Optional[datetime] = None
    last_vibration_event_at: Optional[datetime] = None
