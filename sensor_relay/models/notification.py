from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from sensor_relay.db import Base
from sensor_relay.utils.datetime import utc_now
import uuid


class NotificationRecord(Base):
    """Append-only history entry written once per submitted event."""
    __tablename__ = "notifications"

    # use a callable for default so new UUIDs are generated per-row
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    type = Column(String, nullable=False)
    event = Column(String, nullable=True)
    created_at = Column(DateTime, default=utc_now, index=True)

    user = relationship("UserStatus", back_populates="notifications")
