"""AppSetting model - key-value store for process-wide values."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text

from ..database import Base


# Single row so the keypair is created atomically
VAPID_KEYS = "vapid_keys"


class AppSetting(Base):
    """Global settings stored as key-value pairs."""
    
    __tablename__ = "app_settings"
    
    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
