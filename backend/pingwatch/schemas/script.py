"""Script DSL schemas.

The JSON shape is a contract with script authors, so field aliases mirror
the wire names and unknown keys are kept for round-tripping.
"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD"]
Severity = Literal["degraded", "down"]

# (attribute, wire name) in evaluation order. The first operator present
# on an assertion is the one evaluated.
ASSERTION_OPERATORS = (
    ("equals", "equals"),
    ("not_equals", "notEquals"),
    ("contains", "contains"),
    ("not_contains", "notContains"),
    ("matches", "matches"),
    ("greater_than", "greaterThan"),
    ("less_than", "lessThan"),
    ("greater_or_equal", "greaterOrEqual"),
    ("less_or_equal", "lessOrEqual"),
    ("exists", "exists"),
    ("has_key", "hasKey"),
    ("has_length", "hasLength"),
    ("min_length", "minLength"),
    ("max_length", "maxLength"),
)


class DSLModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Assertion(DSLModel):
    """One predicate against a value extracted from a step response."""
    check: str
    severity: Optional[Severity] = None  # None means degraded
    equals: Any = None
    not_equals: Any = Field(None, alias="notEquals")
    contains: Any = None
    not_contains: Any = Field(None, alias="notContains")
    matches: Any = None
    greater_than: Any = Field(None, alias="greaterThan")
    less_than: Any = Field(None, alias="lessThan")
    greater_or_equal: Any = Field(None, alias="greaterOrEqual")
    less_or_equal: Any = Field(None, alias="lessOrEqual")
    exists: Any = None
    has_key: Any = Field(None, alias="hasKey")
    has_length: Any = Field(None, alias="hasLength")
    min_length: Any = Field(None, alias="minLength")
    max_length: Any = Field(None, alias="maxLength")
    
    @property
    def effective_severity(self) -> str:
        return self.severity or "degraded"
    
    def operator(self) -> Optional[str]:
        """Return the attribute name of the first operator set in the document."""
        for attr, _wire in ASSERTION_OPERATORS:
            if attr in self.model_fields_set:
                return attr
        return None


class StepRequest(DSLModel):
    """HTTP request template. Every string in it may contain ${var}."""
    method: str
    url: str
    headers: Optional[Dict[str, str]] = None
    body: Any = None


class ScriptStep(DSLModel):
    """One request plus optional extraction and assertions."""
    name: str
    request: StepRequest
    extract: Optional[Dict[str, str]] = None
    assertions: Optional[List[Assertion]] = Field(None, alias="assert")


class ScriptDSL(DSLModel):
    """A complete script document."""
    steps: List[ScriptStep]
    timeout: Optional[int] = None  # ms, caps the monitor timeout
    
    def to_document(self) -> dict:
        """Dump back to the wire shape, keeping only keys the author wrote."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class ScriptValidation(BaseModel):
    """Result of validating a script for the editor."""
    valid: bool
    error: Optional[str] = None
