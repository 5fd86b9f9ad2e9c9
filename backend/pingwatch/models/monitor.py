"""Monitor model - scripted health checks."""
import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from ..database import Base


def generate_id() -> str:
    return str(uuid.uuid4())


class Monitor(Base):
    """A monitored target whose health is decided by a script document."""
    
    __tablename__ = "monitors"
    
    id = Column(String, primary_key=True, default=generate_id)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, default="script")  # script, tcp, dns, push
    script = Column(Text, nullable=False)  # JSON step DSL
    interval_seconds = Column(Integer, default=60)
    timeout_ms = Column(Integer, default=30000)
    active = Column(Integer, default=1)
    group_id = Column(String, ForeignKey("monitor_groups.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    group = relationship("MonitorGroup", back_populates="monitors")
    checks = relationship("Check", back_populates="monitor", cascade="all, delete-orphan")
    notifications = relationship(
        "MonitorNotification", back_populates="monitor", cascade="all, delete-orphan"
    )
