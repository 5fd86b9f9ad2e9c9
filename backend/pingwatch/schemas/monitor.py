"""Monitor schemas for API."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class MonitorCreate(BaseModel):
    """Schema for creating a new monitor."""
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(default="script", pattern="^(script|tcp|dns|push)$")
    script: str = Field(..., min_length=1)
    interval_seconds: int = Field(default=60, ge=10, le=3600)
    timeout_ms: int = Field(default=30000, ge=1000, le=120000)
    active: bool = True
    group_id: Optional[str] = None


class CheckResponse(BaseModel):
    """A stored check row."""
    id: int
    monitor_id: str
    status: str
    response_time_ms: Optional[int] = None
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    checked_at: datetime
    
    class Config:
        from_attributes = True


class ScriptValidateRequest(BaseModel):
    script: str


class MonitorResponse(BaseModel):
    """Schema for monitor response."""
    id: str
    name: str
    type: str
    script: str
    interval_seconds: int
    timeout_ms: int
    active: bool
    group_id: Optional[str] = None
    created_at: datetime
    
    class Config:
        from_attributes = True
