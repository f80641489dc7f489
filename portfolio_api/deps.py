# portfolio_api/deps.py
from fastapi import Request

from portfolio_api.config import Settings
from portfolio_api.services.contact import ContactIntake
from portfolio_api.services.visits import VisitRecorder


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_contact_intake(request: Request) -> ContactIntake:
    return request.app.state.contact_intake


def get_visit_recorder(request: Request) -> VisitRecorder:
    return request.app.state.visit_recorder


async def read_body(request: Request) -> dict:
    """Parse JSON or form bodies; anything unreadable becomes {}."""
    ct = (request.headers.get("content-type") or "").lower()
    if ct.startswith("application/x-www-form-urlencoded") or ct.startswith("multipart/form-data"):
        form = await request.form()
        return dict(form)
    try:
        raw = await request.json()
    except ValueError:
        return {}
    return raw if isinstance(raw, dict) else {}
