# quickstats/routers/health.py
from fastapi import APIRouter, Depends

from quickstats.config import Settings
from quickstats.routers.deps import get_app_settings

router = APIRouter()


@router.get("/health")
def health_check(settings: Settings = Depends(get_app_settings)):
    return {"status": "ok", "version": "0.1.0", "port": settings.PORT}


@router.get("/health/env")
def env_preview(settings: Settings = Depends(get_app_settings)):
    # backend URLs and deadlines only; nothing secret lives in Settings
    return {"status": "ok", **settings.to_public()}
