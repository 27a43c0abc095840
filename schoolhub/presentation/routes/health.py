from fastapi import APIRouter, Depends

from schoolhub.presentation.dependencies import get_app_settings
from schoolhub.settings import Settings

router = APIRouter()


@router.get("/healthz")
async def healthz(settings: Settings = Depends(get_app_settings)) -> dict:
    return {"status": "ok", "env": settings.app_env}
