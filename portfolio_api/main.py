# portfolio_api/main.py
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portfolio_api.config import Settings
from portfolio_api.db import create_db_and_tables, make_engine, session_factory
from portfolio_api.logging_config import setup_logging
from portfolio_api.services.alerts import send_ops_alert
from portfolio_api.services.contact import ContactIntake, ContactSubmission
from portfolio_api.services.email import MailDispatcher, build_dispatcher
from portfolio_api.services.visits import LogVisitSink, SqlVisitSink, VisitRecorder

# Routers
from portfolio_api.routers.contact import router as contact_router
from portfolio_api.routers.health import router as health_router
from portfolio_api.routers.resume import router as resume_router
from portfolio_api.routers.visits import router as visits_router

log = logging.getLogger(__name__)


def build_visit_recorder(settings: Settings) -> VisitRecorder:
    sinks = [LogVisitSink()]
    if settings.VISIT_STORE == "db":
        engine = make_engine(settings.DATABASE_URL)
        create_db_and_tables(engine)
        sinks.append(SqlVisitSink(session_factory(engine)))
    return VisitRecorder(sinks, policy=settings.VISIT_BOT_POLICY)


def build_contact_intake(settings: Settings, dispatcher: MailDispatcher) -> ContactIntake:
    def _alert(submission: ContactSubmission, reason: str) -> None:
        send_ops_alert(
            settings,
            f"Portfolio contact from {submission.sender_email} reached you, "
            f"but their confirmation email failed: {reason}",
        )

    return ContactIntake.from_settings(settings, dispatcher, on_partial_failure=_alert)


def create_app(
    settings: Optional[Settings] = None,
    dispatcher: Optional[MailDispatcher] = None,
    visit_recorder: Optional[VisitRecorder] = None,
) -> FastAPI:
    """
    Build the API with its collaborators constructed once, here.

    Tests pass fakes for `dispatcher` / `visit_recorder`; in production
    everything comes from the environment.
    """
    settings = settings or Settings.from_env()
    dispatcher = dispatcher or build_dispatcher(settings)

    app = FastAPI(title="Portfolio API", version="0.1.0")
    app.state.settings = settings
    app.state.dispatcher = dispatcher
    app.state.contact_intake = build_contact_intake(settings, dispatcher)
    app.state.visit_recorder = visit_recorder or build_visit_recorder(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS or ["*"],
        allow_methods=["POST", "GET"],
        allow_headers=["*"],
    )

    # ---------- Simple root ----------
    @app.get("/")
    def root():
        return {"ok": True, "msg": "root alive"}

    # ---------- Routers ----------
    app.include_router(health_router)
    app.include_router(contact_router)
    app.include_router(visits_router)
    app.include_router(resume_router)

    # ---------- Startup ----------
    @app.on_event("startup")
    def on_startup():
        setup_logging(settings)
        log.info(
            "portfolio api up env=%s mail=%s confirm=%s visits=%s/%s",
            settings.ENV,
            settings.MAIL_BACKEND,
            settings.send_confirmation,
            settings.VISIT_STORE,
            settings.VISIT_BOT_POLICY,
        )

    return app


app = create_app()
