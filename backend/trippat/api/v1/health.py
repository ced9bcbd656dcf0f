"""Health check endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter

from trippat.core.config import get_settings

router = APIRouter()


@router.get("", summary="Service health status")
async def healthcheck() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
        "checked_at": datetime.now(UTC).isoformat(),
    }
