"""Generic webhook encoder with {{token}} templating."""
import json
import logging
from typing import Dict

import httpx

from ...schemas.notification import NotificationPayload, WebhookConfig
from ..results import ChannelSendResult
from . import failure_text

logger = logging.getLogger(__name__)


def template_variables(payload: NotificationPayload) -> Dict[str, str]:
    """Token -> replacement text. Missing values become empty strings."""
    def text(value) -> str:
        return "" if value is None else str(value)
    
    return {
        "{{monitor_name}}": payload.monitor_name,
        "{{monitor_id}}": payload.monitor_id,
        "{{status}}": payload.status,
        "{{previous_status}}": text(payload.previous_status),
        "{{url}}": text(payload.url),
        "{{response_time_ms}}": text(payload.response_time_ms),
        "{{error}}": text(payload.error_message),
        "{{timestamp}}": payload.timestamp,
        "{{incident_duration}}": text(payload.incident_duration),
    }


def substitute(template: str, variables: Dict[str, str]) -> str:
    for token, value in variables.items():
        template = template.replace(token, value)
    return template


def build_body(config: WebhookConfig, payload: NotificationPayload) -> str:
    if config.body_template:
        return substitute(config.body_template, template_variables(payload))
    return json.dumps({
        "monitor_name": payload.monitor_name,
        "monitor_id": payload.monitor_id,
        "status": payload.status,
        "previous_status": payload.previous_status,
        "url": payload.url,
        "response_time_ms": payload.response_time_ms,
        "error": payload.error_message,
        "timestamp": payload.timestamp,
        "incident_duration": payload.incident_duration,
    })


def build_request(config: WebhookConfig, payload: NotificationPayload) -> tuple:
    """Returns (method, url, headers, content). GET sends no body."""
    variables = template_variables(payload)
    headers = {"Content-Type": "application/json", **config.headers}
    headers = {key: substitute(value, variables) for key, value in headers.items()}
    url = substitute(config.url, variables)
    content = build_body(config, payload) if config.method == "POST" else None
    return config.method, url, headers, content


async def send(
    config: WebhookConfig,
    payload: NotificationPayload,
    client: httpx.AsyncClient,
) -> ChannelSendResult:
    method, url, headers, content = build_request(config, payload)
    try:
        response = await client.request(method, url, headers=headers, content=content)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        return ChannelSendResult(success=False, error=f"Webhook error: {e}")
    
    if not response.is_success:
        logger.warning(f"Webhook {url} returned {response.status_code}")
        return ChannelSendResult(success=False, error=f"Webhook failed: {failure_text(response)}")
    return ChannelSendResult(success=True)
