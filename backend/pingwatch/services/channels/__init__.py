"""Channel encoders - one module per notification transport."""
import json
from typing import Union

from pydantic import ValidationError

from ...exceptions import ChannelConfigError
from ...schemas.notification import CHANNEL_CONFIG_TYPES, ChannelConfig


def parse_channel_config(channel_type: str, raw: Union[str, dict, None]) -> ChannelConfig:
    """Validate a stored channel config against the shape for its type."""
    config_type = CHANNEL_CONFIG_TYPES.get(channel_type)
    if config_type is None:
        raise ChannelConfigError(f"Unknown channel type: {channel_type}")
    
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            raise ChannelConfigError(f"Invalid {channel_type} config: {e}") from e
    
    try:
        return config_type.model_validate(raw or {})
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ChannelConfigError(f"Invalid {channel_type} config: {field} {first['msg']}") from e


def format_duration(seconds: int) -> str:
    """Human duration for downtime fields: 45s, 3m 20s, 2h 5m."""
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def failure_text(response) -> str:
    """Status and body of a non-2xx response, body verbatim."""
    return f"{response.status_code} {response.text}"
