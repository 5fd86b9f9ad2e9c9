"""Notification models - channels, per-monitor subscriptions, browser push endpoints."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from ..database import Base
from .monitor import generate_id


class NotificationChannel(Base):
    """A configured delivery target: webhook, slack, discord or webpush."""
    
    __tablename__ = "notification_channels"
    
    id = Column(String, primary_key=True, default=generate_id)
    type = Column(String, nullable=False)
    name = Column(String, nullable=False)
    config = Column(Text, nullable=False, default="{}")  # JSON, shape depends on type
    active = Column(Integer, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)
    
    subscriptions = relationship(
        "MonitorNotification", back_populates="channel", cascade="all, delete-orphan"
    )


class MonitorNotification(Base):
    """Links a monitor to a channel with status filter and debounce."""
    
    __tablename__ = "monitor_notifications"
    
    monitor_id = Column(String, ForeignKey("monitors.id", ondelete="CASCADE"), primary_key=True)
    channel_id = Column(String, ForeignKey("notification_channels.id", ondelete="CASCADE"), primary_key=True)
    notify_on = Column(String, nullable=False, default="down,up")  # Comma-separated statuses
    downtime_threshold_s = Column(Integer, nullable=False, default=0)
    
    monitor = relationship("Monitor", back_populates="notifications")
    channel = relationship("NotificationChannel", back_populates="subscriptions")
    
    @property
    def notify_on_set(self) -> set:
        return {s.strip() for s in (self.notify_on or "").split(",") if s.strip()}


class PushSubscription(Base):
    """Browser push endpoint registered from the dashboard."""
    
    __tablename__ = "push_subscriptions"
    
    id = Column(String, primary_key=True, default=generate_id)
    endpoint = Column(String, unique=True, nullable=False, index=True)
    p256dh = Column(String, nullable=False)  # Subscriber ECDH public key, base64url
    auth = Column(String, nullable=False)  # Subscriber auth secret, base64url
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
