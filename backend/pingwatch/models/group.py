"""MonitorGroup model - sections of the status page."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from ..database import Base
from .monitor import generate_id


class MonitorGroup(Base):
    """A named group of monitors, shown together on the status page."""
    
    __tablename__ = "monitor_groups"
    
    id = Column(String, primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    display_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    
    monitors = relationship("Monitor", back_populates="group")
