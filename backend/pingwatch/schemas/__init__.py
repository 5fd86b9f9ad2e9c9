"""Pydantic schemas for the script DSL, notifications and API models."""
from .script import Assertion, StepRequest, ScriptStep, ScriptDSL, ScriptValidation
from .notification import (
    SlackConfig,
    DiscordConfig,
    WebhookConfig,
    WebPushConfig,
    ChannelConfig,
    NotificationPayload,
)
from .status import DailyStatusPoint, StatusMonitor, StatusPage, SweepSummary, MonitorSweepResult
from .monitor import MonitorCreate, CheckResponse

__all__ = [
    "Assertion",
    "StepRequest",
    "ScriptStep",
    "ScriptDSL",
    "ScriptValidation",
    "SlackConfig",
    "DiscordConfig",
    "WebhookConfig",
    "WebPushConfig",
    "ChannelConfig",
    "NotificationPayload",
    "DailyStatusPoint",
    "StatusMonitor",
    "StatusPage",
    "SweepSummary",
    "MonitorSweepResult",
    "MonitorCreate",
    "CheckResponse",
]
