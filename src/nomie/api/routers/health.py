"""
Health check endpoint for monitoring and load balancers.
"""

import time
from fastapi import APIRouter, Depends

from ..models.common import HealthStatus
from ..dependencies.state import get_model_manager
from nomie import __version__
from nomie.models.manager import ModelManager

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


@router.get("", response_model=HealthStatus)
async def health_check(model_manager: ModelManager = Depends(get_model_manager)):
    """
    Basic health check endpoint.

    Does not call the model provider; reports configured tasks and call stats.
    """
    tasks = model_manager.config.get("tasks", {})
    dependencies = {
        f"task:{name}": f"{cfg['provider']} / {cfg['model']}"
        for name, cfg in tasks.items()
    }

    return HealthStatus(
        status="healthy",
        version=__version__,
        uptime=time.time() - _server_start_time,
        dependencies=dependencies,
        stats=model_manager.get_stats(),
    )
