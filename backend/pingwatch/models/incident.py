"""Incident model - operator-declared outages for a group."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey

from ..database import Base
from .monitor import generate_id


class Incident(Base):
    """An outage record. Open while resolved_at is NULL."""
    
    __tablename__ = "incidents"
    
    id = Column(String, primary_key=True, default=generate_id)
    title = Column(String, nullable=False)
    status = Column(String, nullable=False, default="investigating")  # investigating, identified, monitoring, resolved
    group_id = Column(String, ForeignKey("monitor_groups.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    resolved_at = Column(DateTime, nullable=True)
