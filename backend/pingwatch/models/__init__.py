"""Database models."""
from .settings import AppSetting
from .group import MonitorGroup
from .monitor import Monitor
from .check import Check
from .daily_status import DailyStatus
from .incident import Incident
from .notification import NotificationChannel, MonitorNotification, PushSubscription

__all__ = [
    "AppSetting",
    "MonitorGroup",
    "Monitor",
    "Check",
    "DailyStatus",
    "Incident",
    "NotificationChannel",
    "MonitorNotification",
    "PushSubscription",
]
