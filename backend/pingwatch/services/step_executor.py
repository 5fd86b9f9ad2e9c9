"""Step executor - runs one scripted HTTP request with assertions and extraction."""
import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..schemas.script import ScriptStep
from .assertions import evaluate_assertion
from .extractor import extract_value, interpolate, interpolate_value
from .results import StepResult

logger = logging.getLogger(__name__)


def _has_header(headers: Dict[str, str], name: str) -> bool:
    name = name.lower()
    return any(key.lower() == name for key in headers)


class StepExecutor:
    """Executes script steps over HTTP.
    
    A transport can be passed in to route requests somewhere other than
    the network (tests use httpx.MockTransport).
    """
    
    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: Optional[str] = None,
    ):
        self._transport = transport
        self.user_agent = user_agent or settings.user_agent
    
    def build_request(self, step: ScriptStep, variables: Dict[str, Any]) -> tuple:
        """Interpolate a step's request template.
        
        Returns (method, url, headers, content).
        """
        request = step.request
        method = request.method.upper()
        url = interpolate(request.url, variables)
        
        headers = {"User-Agent": self.user_agent}
        for key, value in (request.headers or {}).items():
            headers[key] = interpolate(value, variables)
        
        content = None
        if isinstance(request.body, str):
            content = interpolate(request.body, variables)
        elif request.body is not None:
            content = json.dumps(interpolate_value(request.body, variables))
            if not _has_header(headers, "Content-Type"):
                headers["Content-Type"] = "application/json"
        
        return method, url, headers, content
    
    async def execute(
        self,
        step: ScriptStep,
        variables: Dict[str, Any],
        timeout_ms: int,
    ) -> StepResult:
        """Run one step, updating ``variables`` from its ``extract`` map.
        
        Request failures (network, timeout) are returned as a StepResult with
        ``error`` set; no assertions or extraction run in that case.
        """
        method, url, headers, content = self.build_request(step, variables)
        result = StepResult(name=step.name, method=method, url=url)
        
        start = time.perf_counter()
        try:
            # Certificates are not verified so self-signed endpoints stay checkable
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=timeout_ms / 1000,
                follow_redirects=True,
                verify=False,
            ) as client:
                response = await asyncio.wait_for(
                    client.request(method, url, headers=headers, content=content),
                    timeout=timeout_ms / 1000,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            result.response_time_ms = int((time.perf_counter() - start) * 1000)
            result.error = f"Request timeout after {timeout_ms}ms"
            return result
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            result.response_time_ms = int((time.perf_counter() - start) * 1000)
            result.error = str(e) or type(e).__name__
            return result
        
        result.status = response.status_code
        result.body = response.text
        result.response_time_ms = int((time.perf_counter() - start) * 1000)
        result.headers = dict(response.headers.items())
        try:
            result.json = json.loads(result.body) if result.body else None
        except ValueError:
            result.json = None
        
        context = result.context()
        for assertion in step.assertions or []:
            result.assertions.append(evaluate_assertion(assertion, context))
        
        for name, path in (step.extract or {}).items():
            variables[name] = extract_value(context, path)
        
        logger.debug(
            f"Step {step.name}: {method} {url} -> {result.status} "
            f"({result.response_time_ms}ms, {len(result.failed_assertions)} failed assertions)"
        )
        return result
