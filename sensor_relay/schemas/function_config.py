from pydantic import Field, field_validator
from typing import Optional
from datetime import datetime

from sensor_relay.schemas.common import CamelModel

THRESHOLD_MIN = 0.1
THRESHOLD_MAX = 1.0


def clamp_threshold(value: float) -> float:
    return max(THRESHOLD_MIN, min(THRESHOLD_MAX, value))


class FunctionConfigIn(CamelModel):
    use_case_name: Optional[str] = None
    notification_title: Optional[str] = None
    notification_body: Optional[str] = None
    threshold: Optional[float] = Field(None, description="Trigger threshold, clamped into [0.1, 1.0]")

    @field_validator("threshold")
    @classmethod
    def _clamp(cls, v):
        return None if v is None else clamp_threshold(v)


class FunctionConfigOut(FunctionConfigIn):
    function_name: str
    updated_at: Optional[datetime] = None
