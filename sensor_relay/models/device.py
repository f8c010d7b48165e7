"""Device model for push notifications and listening heartbeats."""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sensor_relay.db import Base
from sensor_relay.utils.datetime import utc_now
import uuid


class Device(Base):
    """One app install belonging to a user.

    A device is eligible for push delivery only while ``is_active`` is set and
    a token has been registered. Rows are upserted on token registration and
    on every heartbeat; they are never hard-deleted by the client.
    """
    __tablename__ = "devices"
    __table_args__ = (UniqueConstraint("user_id", "device_id", name="uq_devices_user_device"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    device_id = Column(String, nullable=False)  # per-install identifier from the phone
    name = Column(String, nullable=True)  # e.g., "Kitchen iPhone"
    model = Column(String, nullable=True)
    system_version = Column(String, nullable=True)
    bundle_id = Column(String, nullable=True)
    token = Column(String, nullable=True)  # FCM registration token, absent until registration completes
    is_active = Column(Boolean, nullable=False, default=True)
    is_listening = Column(Boolean, nullable=False, default=False)
    task = Column(String, nullable=True)  # label of the running detector
    battery = Column(Integer, nullable=True)  # 0..100
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    user = relationship("UserStatus", back_populates="devices")

    def __repr__(self):
        return f"<Device user={self.user_id} device={self.device_id} active={self.is_active}>"
