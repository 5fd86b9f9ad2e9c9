"""DailyStatus model - per-day rollup of checks for the 90-day bars."""
from sqlalchemy import Column, Integer, String, ForeignKey

from ..database import Base


class DailyStatus(Base):
    """Aggregated check counts for one monitor on one UTC day."""
    
    __tablename__ = "daily_status"
    
    monitor_id = Column(String, ForeignKey("monitors.id", ondelete="CASCADE"), primary_key=True)
    date = Column(String(10), primary_key=True)  # YYYY-MM-DD
    total_checks = Column(Integer, nullable=False, default=0)
    up_checks = Column(Integer, nullable=False, default=0)
    down_checks = Column(Integer, nullable=False, default=0)
    degraded_checks = Column(Integer, nullable=False, default=0)
    downtime_minutes = Column(Integer, nullable=False, default=0)
