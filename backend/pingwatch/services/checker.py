"""Checker service - runs a monitor's check according to its type."""
import logging
from typing import Optional

from ..config import settings
from ..models import Monitor
from .results import CheckResult
from .script_engine import ScriptEngine

logger = logging.getLogger(__name__)


class CheckerService:
    """Service for performing monitor checks."""
    
    def __init__(self, engine: Optional[ScriptEngine] = None):
        self.engine = engine or ScriptEngine()
    
    async def check(self, monitor: Monitor) -> CheckResult:
        """Perform a check based on monitor type."""
        monitor_type = monitor.type or "script"
        timeout_ms = monitor.timeout_ms or settings.default_timeout_ms
        
        if monitor_type == "script":
            return await self.engine.run(monitor.script, timeout_ms)
        elif monitor_type == "tcp":
            return CheckResult(status="down", error_message="TCP monitoring not yet implemented")
        elif monitor_type == "dns":
            return CheckResult(status="down", error_message="DNS monitoring not yet implemented")
        elif monitor_type == "push":
            # Push monitors are passive, they wait for external pings
            return CheckResult(status="down", error_message="Push monitors are checked differently")
        else:
            return CheckResult(status="down", error_message=f"Unknown monitor type: {monitor_type}")


# Global instance
checker_service = CheckerService()
