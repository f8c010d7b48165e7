from sqlalchemy import Column, String, DateTime, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sensor_relay.db import Base
from sensor_relay.utils.datetime import utc_now
import uuid


class FunctionConfig(Base):
    """User-customized strings and parameters for one sensor function."""
    __tablename__ = "function_configs"
    __table_args__ = (UniqueConstraint("user_id", "function_name", name="uq_function_configs_user_name"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    function_name = Column(String, nullable=False)  # e.g. "Sound Sensor"
    use_case_name = Column(String, nullable=True)
    notification_title = Column(String, nullable=True)
    notification_body = Column(String, nullable=True)
    threshold = Column(Float, nullable=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    user = relationship("UserStatus", back_populates="functions")
