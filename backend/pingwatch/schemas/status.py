"""Status page schemas."""
from typing import List, Literal, Optional
from pydantic import BaseModel


class DailyStatusPoint(BaseModel):
    """One bar of the 90-day uptime strip."""
    date: str  # YYYY-MM-DD
    status: Literal["up", "down", "degraded", "none"]
    downtime_minutes: int = 0


class StatusMonitor(BaseModel):
    """A monitor as shown on the status page."""
    id: str
    name: str
    group_id: Optional[str] = None
    current_status: Optional[str] = None  # Effective (anti-flap) status
    uptime_24h: float
    uptime_90d: float
    daily_status: List[DailyStatusPoint]


class StatusPage(BaseModel):
    """Status page data with the overall banner."""
    overall_status: Literal["operational", "degraded", "partial_outage", "major_outage"]
    overall_status_text: str
    monitors: List[StatusMonitor]


class MonitorSweepResult(BaseModel):
    """Outcome of checking one monitor during a sweep."""
    monitor_id: str
    name: str
    status: Optional[str] = None
    response_time_ms: Optional[int] = None
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    error: Optional[str] = None  # Set when the check itself crashed


class SweepSummary(BaseModel):
    """Returned to the scheduler trigger."""
    message: str
    checked: int
    successful: int
    failed: int
    results: List[MonitorSweepResult]
