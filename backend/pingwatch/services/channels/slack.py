"""Slack incoming-webhook encoder."""
import logging
from datetime import datetime

import httpx

from ...schemas.notification import NotificationPayload, SlackConfig
from ..results import ChannelSendResult
from . import failure_text, format_duration

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    "up": "#22c55e",
    "down": "#ef4444",
    "degraded": "#f59e0b",
}

STATUS_EMOJI = {
    "up": ":white_check_mark:",
    "down": ":x:",
    "degraded": ":warning:",
}


def build_message(payload: NotificationPayload) -> dict:
    """Slack attachment with a colored bar, title section and fields."""
    color = STATUS_COLORS.get(payload.status, "#6b7280")
    emoji = STATUS_EMOJI.get(payload.status, ":question:")
    
    if payload.is_recovery:
        title = f"{emoji} Monitor Recovered: {payload.monitor_name}"
    else:
        title = f"{emoji} Monitor {payload.status.upper()}: {payload.monitor_name}"
    
    timestamp = datetime.fromisoformat(payload.timestamp.replace("Z", "+00:00"))
    fields = [
        {"type": "mrkdwn", "text": f"*Status:* {payload.status.upper()}"},
        {"type": "mrkdwn", "text": f"*Time:* {timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}"},
    ]
    if payload.url:
        fields.append({"type": "mrkdwn", "text": f"*URL:* {payload.url}"})
    if payload.response_time_ms is not None:
        fields.append({"type": "mrkdwn", "text": f"*Response Time:* {payload.response_time_ms}ms"})
    if payload.error_message:
        fields.append({"type": "mrkdwn", "text": f"*Error:* {payload.error_message}"})
    if payload.incident_duration is not None and payload.is_recovery:
        fields.append({"type": "mrkdwn", "text": f"*Downtime:* {format_duration(payload.incident_duration)}"})
    
    return {
        "attachments": [
            {
                "color": color,
                "blocks": [
                    {"type": "section", "text": {"type": "mrkdwn", "text": title}},
                    {"type": "section", "fields": fields},
                ],
            }
        ]
    }


async def send(
    config: SlackConfig,
    payload: NotificationPayload,
    client: httpx.AsyncClient,
) -> ChannelSendResult:
    try:
        response = await client.post(config.webhook_url, json=build_message(payload))
    except httpx.HTTPError as e:
        return ChannelSendResult(success=False, error=f"Slack webhook error: {e}")
    
    if not response.is_success:
        logger.warning(f"Slack webhook returned {response.status_code}")
        return ChannelSendResult(success=False, error=f"Slack webhook failed: {failure_text(response)}")
    return ChannelSendResult(success=True)
