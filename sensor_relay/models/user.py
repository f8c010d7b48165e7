from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from sensor_relay.db import Base
from sensor_relay.utils.datetime import utc_now


class UserStatus(Base):
    """Per-user status bag updated by the fan-out service.

    The id is the identity provider's uid; rows are created implicitly on the
    first authenticated request or the first event for that user.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    mail_detected = Column(Boolean, nullable=False, default=False)
    mail_last_updated_at = Column(DateTime, nullable=True)
    dryer_running = Column(Boolean, nullable=False, default=False)
    dryer_last_event = Column(String, nullable=True)  # "started" | "finished" | None
    dryer_last_updated_at = Column(DateTime, nullable=True)
    last_sound_event_at = Column(DateTime, nullable=True)
    last_presence_event_at = Column(DateTime, nullable=True)
    last_vibration_event_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)

    devices = relationship("Device", back_populates="user", cascade="all, delete-orphan")
    functions = relationship("FunctionConfig", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("NotificationRecord", back_populates="user", cascade="all, delete-orphan")
