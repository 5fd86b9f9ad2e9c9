"""Notification schemas - channel configs and the channel-agnostic payload."""
from datetime import datetime
from typing import Dict, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


ChannelType = Literal["webhook", "slack", "discord", "webpush"]


class ChannelConfigBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SlackConfig(ChannelConfigBase):
    """Slack incoming webhook."""
    webhook_url: str = Field(..., alias="webhookUrl", min_length=1)


class DiscordConfig(ChannelConfigBase):
    """Discord channel webhook."""
    webhook_url: str = Field(..., alias="webhookUrl", min_length=1)


class WebhookConfig(ChannelConfigBase):
    """Generic HTTP webhook with {{token}} templating."""
    url: str = Field(..., min_length=1)
    method: Literal["POST", "GET"] = "POST"
    headers: Dict[str, str] = Field(default_factory=dict)
    body_template: Optional[str] = Field(None, alias="bodyTemplate")


class WebPushConfig(ChannelConfigBase):
    """Browser push to every stored subscription."""
    subscription_id: Optional[str] = Field(None, alias="subscriptionId")


ChannelConfig = Union[SlackConfig, DiscordConfig, WebhookConfig, WebPushConfig]

CHANNEL_CONFIG_TYPES = {
    "slack": SlackConfig,
    "discord": DiscordConfig,
    "webhook": WebhookConfig,
    "webpush": WebPushConfig,
}


class NotificationPayload(BaseModel):
    """What happened to a monitor, independent of how it is delivered."""
    monitor_id: str
    monitor_name: str
    status: str
    previous_status: Optional[str] = None
    url: Optional[str] = None
    response_time_ms: Optional[int] = None
    error_message: Optional[str] = None
    timestamp: str  # ISO 8601, UTC
    incident_duration: Optional[int] = None  # seconds
    
    @property
    def is_recovery(self) -> bool:
        return bool(self.previous_status) and self.previous_status != "up" and self.status == "up"


class NotificationChannelCreate(BaseModel):
    """Schema for creating a channel."""
    type: ChannelType
    name: str = Field(..., min_length=1, max_length=255)
    config: dict
    active: bool = True


class MonitorNotificationInput(BaseModel):
    """Subscribe a monitor to a channel."""
    channel_id: str
    notify_on: list[Literal["up", "down", "degraded"]] = Field(default_factory=lambda: ["down", "up"])
    downtime_threshold_s: int = Field(default=0, ge=0)


class PushSubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscribeRequest(BaseModel):
    """Browser PushSubscription.toJSON() body."""
    endpoint: str
    keys: PushSubscriptionKeys
    name: Optional[str] = None  # Channel name; defaults to "<browser> Push"


class ChannelTestResponse(BaseModel):
    success: bool
    error: Optional[str] = None


class NotificationChannelResponse(BaseModel):
    """Channel as returned by the API; config is the parsed JSON object."""
    id: str
    type: str
    name: str
    config: dict
    active: bool
    created_at: datetime


class PushSubscribeResponse(BaseModel):
    success: bool
    subscription_id: str = Field(..., serialization_alias="subscriptionId")


class VapidKeyResponse(BaseModel):
    public_key: str = Field(..., serialization_alias="publicKey")
