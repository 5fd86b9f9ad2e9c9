"""Discord webhook encoder."""
import logging

import httpx

from ...schemas.notification import DiscordConfig, NotificationPayload
from ..results import ChannelSendResult
from . import failure_text, format_duration

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    "up": 0x22C55E,
    "down": 0xEF4444,
    "degraded": 0xF59E0B,
}

# Discord rejects embed field values longer than this
MAX_FIELD_LENGTH = 1024


def build_message(payload: NotificationPayload) -> dict:
    """Discord embed with integer color and inline fields."""
    if payload.is_recovery:
        title = f"Monitor Recovered: {payload.monitor_name}"
    else:
        title = f"Monitor {payload.status.upper()}: {payload.monitor_name}"
    
    fields = [
        {"name": "Status", "value": payload.status.upper(), "inline": True},
        {"name": "Time", "value": payload.timestamp, "inline": True},
    ]
    if payload.url:
        fields.append({"name": "URL", "value": payload.url, "inline": False})
    if payload.response_time_ms is not None:
        fields.append({"name": "Response Time", "value": f"{payload.response_time_ms}ms", "inline": True})
    if payload.error_message:
        fields.append({
            "name": "Error",
            "value": payload.error_message[:MAX_FIELD_LENGTH],
            "inline": False,
        })
    if payload.incident_duration is not None and payload.is_recovery:
        fields.append({
            "name": "Downtime",
            "value": format_duration(payload.incident_duration),
            "inline": True,
        })
    
    return {
        "embeds": [
            {
                "title": title,
                "color": STATUS_COLORS.get(payload.status, 0x6B7280),
                "fields": fields,
                "timestamp": payload.timestamp,
            }
        ]
    }


async def send(
    config: DiscordConfig,
    payload: NotificationPayload,
    client: httpx.AsyncClient,
) -> ChannelSendResult:
    try:
        response = await client.post(config.webhook_url, json=build_message(payload))
    except httpx.HTTPError as e:
        return ChannelSendResult(success=False, error=f"Discord webhook error: {e}")
    
    if not response.is_success:
        logger.warning(f"Discord webhook returned {response.status_code}")
        return ChannelSendResult(success=False, error=f"Discord webhook failed: {failure_text(response)}")
    return ChannelSendResult(success=True)
