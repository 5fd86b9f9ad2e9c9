"""Script engine - parses the step DSL and runs it to a single check result.

A script is a JSON document:

    {
      "steps": [
        {
          "name": "login",
          "request": {"method": "POST", "url": "https://api.example.com/login",
                      "body": {"user": "monitor", "pass": "secret"}},
          "extract": {"token": "json.token"}
        },
        {
          "name": "profile",
          "request": {"method": "GET", "url": "https://api.example.com/me",
                      "headers": {"Authorization": "Bearer ${token}"}},
          "assert": [
            {"check": "status", "equals": 200, "severity": "down"},
            {"check": "json.plan", "exists": true}
          ]
        }
      ]
    }

Steps run in order and share extracted variables. A step whose request
fails ends the run as ``down``. Failed assertions never stop the run; they
are scored at the end (any ``down`` severity wins over ``degraded``).
"""
import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..config import settings
from ..exceptions import ScriptValidationError
from ..schemas.script import ScriptDSL, ScriptValidation
from .results import AssertionResult, CheckResult, StepResult
from .step_executor import StepExecutor

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD")
SEVERITIES = ("degraded", "down")

# Concrete failures quoted in the summary message
MAX_FAILURE_EXAMPLES = 2


def _validate_assertions(label: str, assertions: Any) -> None:
    if not isinstance(assertions, list):
        raise ScriptValidationError(f'{label} "assert" must be an array')
    for index, assertion in enumerate(assertions, start=1):
        if not isinstance(assertion, dict):
            raise ScriptValidationError(f"{label} assertion {index} must be an object")
        check = assertion.get("check")
        if not isinstance(check, str) or not check.strip():
            raise ScriptValidationError(f'{label} assertion {index} must have a "check" path')
        if "severity" in assertion and assertion["severity"] not in SEVERITIES:
            raise ScriptValidationError(
                f"{label} assertion {index} has invalid severity {assertion['severity']!r} "
                f"(expected 'degraded' or 'down')"
            )


def _validate_step(index: int, step: Any) -> None:
    label = f"Step {index}"
    if not isinstance(step, dict):
        raise ScriptValidationError(f"{label} must be an object")
    
    name = step.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ScriptValidationError(f"{label} must have a name")
    label = f'Step {index} ("{name}")'
    
    request = step.get("request")
    if not isinstance(request, dict):
        raise ScriptValidationError(f"{label} must have a request object")
    url = request.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ScriptValidationError(f"{label} must have a request URL")
    method = request.get("method")
    if not isinstance(method, str) or not method.strip():
        raise ScriptValidationError(f"{label} must have a request method")
    if method.upper() not in ALLOWED_METHODS:
        raise ScriptValidationError(
            f"{label} has unsupported method {method!r} (allowed: {', '.join(ALLOWED_METHODS)})"
        )
    headers = request.get("headers")
    if headers is not None and (
        not isinstance(headers, dict) or not all(isinstance(v, str) for v in headers.values())
    ):
        raise ScriptValidationError(f"{label} request headers must map names to strings")
    
    extract = step.get("extract")
    if extract is not None and (
        not isinstance(extract, dict) or not all(isinstance(v, str) for v in extract.values())
    ):
        raise ScriptValidationError(f'{label} "extract" must map variable names to paths')
    
    if "assert" in step and step["assert"] is not None:
        _validate_assertions(label, step["assert"])


def parse_document(document: Any) -> ScriptDSL:
    """Validate a decoded script document and build the typed model."""
    if not isinstance(document, dict):
        raise ScriptValidationError('Script must be a JSON object with a "steps" array')
    
    steps = document.get("steps")
    if not isinstance(steps, list):
        raise ScriptValidationError('Script must have a "steps" array')
    if not steps:
        raise ScriptValidationError("Script must have at least one step")
    
    for index, step in enumerate(steps, start=1):
        _validate_step(index, step)
    
    timeout = document.get("timeout")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0):
        raise ScriptValidationError('"timeout" must be a positive number of milliseconds')
    
    try:
        return ScriptDSL.model_validate(document)
    except ValidationError as e:
        error = e.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        raise ScriptValidationError(f"Invalid script at {location}: {error['msg']}") from e


def parse_script(text: Optional[str]) -> ScriptDSL:
    """Parse a serialized script. Raises ScriptValidationError."""
    if not isinstance(text, str) or not text.strip():
        raise ScriptValidationError("Script must be a non-empty JSON document")
    try:
        document = json.loads(text)
    except ValueError as e:
        raise ScriptValidationError(f"Invalid JSON: {e}") from e
    return parse_document(document)


def serialize_script(script: ScriptDSL) -> str:
    """Serialize a script back to its JSON wire form."""
    return json.dumps(script.to_document(), indent=2, ensure_ascii=False)


def validate_script(text: Optional[str]) -> ScriptValidation:
    """Check a script without running it (used by the editor)."""
    try:
        parse_script(text)
    except ScriptValidationError as e:
        return ScriptValidation(valid=False, error=e.message)
    return ScriptValidation(valid=True)


def empty_step(name: str = "step_1") -> dict:
    """Skeleton step for a new script."""
    return {"name": name, "request": {"method": "GET", "url": ""}}


def default_script() -> dict:
    """Starting document for a new monitor."""
    return {
        "steps": [
            {
                "name": "health_check",
                "request": {"method": "GET", "url": "https://example.com/health"},
                "assert": [{"check": "status", "equals": 200}],
            }
        ]
    }


def first_request_url(text: Optional[str]) -> Optional[str]:
    """URL of the first step, or None if the script does not parse."""
    try:
        return parse_script(text).steps[0].request.url
    except ScriptValidationError:
        return None


def score_failures(failures: List[Tuple[str, AssertionResult]]) -> str:
    """Final status from failed assertions: down beats degraded beats up."""
    if any(result.severity == "down" for _step, result in failures):
        return "down"
    if failures:
        return "degraded"
    return "up"


def summarize_failures(failures: List[Tuple[str, AssertionResult]]) -> Optional[str]:
    """Bounded human-readable summary of failed assertions."""
    if not failures:
        return None
    count = len(failures)
    steps = len({step for step, _result in failures})
    examples = "; ".join(
        f"{step}: {result.message}" for step, result in failures[:MAX_FAILURE_EXAMPLES]
    )
    message = (
        f"{count} assertion{'s' if count != 1 else ''} failed "
        f"in {steps} step{'s' if steps != 1 else ''}: {examples}"
    )
    if count > MAX_FAILURE_EXAMPLES:
        message += f" (+{count - MAX_FAILURE_EXAMPLES} more)"
    return message


class ScriptEngine:
    """Runs script documents against live endpoints."""
    
    def __init__(self, executor: Optional[StepExecutor] = None):
        self.executor = executor or StepExecutor()
    
    async def run(self, script_text: str, timeout_ms: Optional[int] = None) -> CheckResult:
        """Run a serialized script. Always returns a result, never raises."""
        budget = timeout_ms or settings.default_timeout_ms
        start = time.perf_counter()
        
        def elapsed_ms() -> int:
            return int((time.perf_counter() - start) * 1000)
        
        try:
            script = parse_script(script_text)
            if script.timeout:
                budget = min(budget, script.timeout)
            return await asyncio.wait_for(self._run_steps(script, budget), timeout=budget / 1000)
        except asyncio.TimeoutError:
            return CheckResult(
                status="down",
                response_time_ms=elapsed_ms(),
                error_message=f"Script error: Script execution timed out after {budget}ms",
            )
        except Exception as e:
            logger.debug(f"Script run failed: {e}")
            return CheckResult(
                status="down",
                response_time_ms=elapsed_ms(),
                error_message=f"Script error: {e}",
            )
    
    async def _run_steps(self, script: ScriptDSL, timeout_ms: int) -> CheckResult:
        variables: Dict[str, Any] = {}
        steps: List[StepResult] = []
        status_code = None
        
        for step in script.steps:
            result = await self.executor.execute(step, variables, timeout_ms)
            steps.append(result)
            if result.status is not None:
                status_code = result.status
            
            if result.error:
                return CheckResult(
                    status="down",
                    response_time_ms=sum(s.response_time_ms for s in steps),
                    status_code=status_code,
                    error_message=f'Step "{step.name}" failed: {result.error}',
                    steps=steps,
                )
        
        failures = [
            (result.name, assertion)
            for result in steps
            for assertion in result.failed_assertions
        ]
        return CheckResult(
            status=score_failures(failures),
            response_time_ms=sum(s.response_time_ms for s in steps),
            status_code=status_code,
            error_message=summarize_failures(failures),
            steps=steps,
        )
