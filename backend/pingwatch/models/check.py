"""Check model - immutable result of one monitor run."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..database import Base


class Check(Base):
    """Timestamped outcome of running a monitor's script once."""
    
    __tablename__ = "checks"
    __table_args__ = (
        Index("ix_checks_monitor_checked_at", "monitor_id", "checked_at"),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(String, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False)
    status = Column(String, nullable=False)  # up, down, degraded
    response_time_ms = Column(Integer, nullable=True)
    status_code = Column(Integer, nullable=True)  # Last HTTP status seen
    error_message = Column(String, nullable=True)
    checked_at = Column(DateTime, default=datetime.utcnow)
    checked_from = Column(String, nullable=True)
    
    monitor = relationship("Monitor", back_populates="checks")
