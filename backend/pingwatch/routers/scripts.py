"""Script DSL helpers for the monitor editor."""
from fastapi import APIRouter

from ..schemas.monitor import ScriptValidateRequest
from ..schemas.script import ScriptValidation
from ..services.script_engine import default_script, validate_script

router = APIRouter(prefix="/api/scripts", tags=["scripts"])


@router.post("/validate", response_model=ScriptValidation)
async def validate(request: ScriptValidateRequest):
    """Validate a script document without running it."""
    return validate_script(request.script)


@router.get("/template")
async def get_template():
    """Starter script for a new monitor."""
    return default_script()
