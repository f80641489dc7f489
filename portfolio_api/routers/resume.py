# portfolio_api/routers/resume.py
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from portfolio_api.config import ROOT, Settings
from portfolio_api.deps import get_settings

router = APIRouter(tags=["public"])


def _resume_file(settings: Settings) -> Path:
    path = Path(settings.RESUME_PATH)
    return path if path.is_absolute() else ROOT / path


@router.get("/resume")
def resume(settings: Settings = Depends(get_settings)):
    """Serve the resume PDF inline; the browser keeps the filename for downloads."""
    path = _resume_file(settings)
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Resume not available")
    return FileResponse(
        path,
        media_type="application/pdf",
        filename=path.name,
        content_disposition_type="inline",
    )
