# horiohop/api/v1/routes_health.py
from fastapi import APIRouter, Depends

from horiohop.api.deps import get_config
from horiohop.core.config import Settings

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get("/", summary="Health check")
async def health_check(config: Settings = Depends(get_config)):
    """
    Simple health check endpoint to verify that the session host is running.
    """
    return {
        "status": "ok",
        "app": config.APP_NAME,
        "version": config.APP_VERSION,
        "environment": config.ENVIRONMENT,
    }
