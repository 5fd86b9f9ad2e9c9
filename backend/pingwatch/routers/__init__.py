"""API routers."""
from .cron import router as cron_router
from .scripts import router as scripts_router
from .status import router as status_router
from .push import router as push_router
from .channels import router as channels_router
from .monitors import router as monitors_router

__all__ = [
    "cron_router",
    "scripts_router",
    "status_router",
    "push_router",
    "channels_router",
    "monitors_router",
]
