from fastapi import APIRouter, Depends

from portfolio_api.config import Settings
from portfolio_api.deps import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health(settings: Settings = Depends(get_settings)):
    return {"ok": True, "env": settings.ENV, "mail_backend": settings.MAIL_BACKEND}
