"""Result records produced by checks and notification sends."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class AssertionResult:
    """Outcome of one assertion. A failure is data, never an exception."""
    check: str
    passed: bool
    severity: str  # degraded, down
    message: str


@dataclass
class StepResult:
    """Outcome of one script step."""
    name: str
    method: str
    url: str
    status: Optional[int] = None
    response_time_ms: int = 0
    body: str = ""
    json: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    assertions: List[AssertionResult] = field(default_factory=list)
    error: Optional[str] = None  # Set when the request itself failed
    
    def context(self) -> dict:
        """Root object for extraction paths and assertions."""
        return {
            "status": self.status,
            "statusCode": self.status,
            "body": self.body,
            "json": self.json,
            "headers": self.headers,
            "responseTime": self.response_time_ms,
            "responseTimeMs": self.response_time_ms,
        }
    
    @property
    def failed_assertions(self) -> List[AssertionResult]:
        return [a for a in self.assertions if not a.passed]


@dataclass
class CheckResult:
    """Result of a monitoring check."""
    status: str  # up, down, degraded
    response_time_ms: int = 0
    status_code: Optional[int] = None  # Last HTTP status seen
    error_message: Optional[str] = None
    steps: List[StepResult] = field(default_factory=list)


@dataclass
class ChannelSendResult:
    """Outcome of delivering to one channel."""
    success: bool
    error: Optional[str] = None


@dataclass
class PushSendResult:
    """Outcome of a Web Push fan-out across subscriptions."""
    success: bool
    sent: int = 0
    error: Optional[str] = None
    invalid_endpoints: List[str] = field(default_factory=list)


@dataclass
class NotificationSummary:
    """Aggregate of one dispatch across all eligible channels."""
    sent: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
