# portfolio_api/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
# load .env into process env vars
load_dotenv(ROOT / ".env")

MAIL_BACKENDS = ("smtp", "sendgrid", "emailjs", "dry_run")
BOT_POLICIES = ("trust", "derive")
VISIT_STORES = ("log", "db")


def _as_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in ("1", "true", "yes", "y", "on")


def _as_int(name: str, default: int) -> int:
    try:
        return int(str(os.getenv(name, default)).strip())
    except (TypeError, ValueError):
        return default


def _as_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _as_list(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name, default) or ""
    return [p.strip() for p in raw.split(",") if p.strip()]


def _choice(name: str, allowed: tuple[str, ...], default: str) -> str:
    val = _as_str(name, default).lower()
    if val not in allowed:
        raise ValueError(f"{name} must be one of {list(allowed)}, got {val!r}")
    return val


@dataclass(frozen=True)
class Settings:
    # App
    ENV: str = "dev"
    FROM_NAME: str = "Portfolio"
    OWNER_EMAIL: str = ""
    RESUME_PATH: str = "public/resume.pdf"
    CORS_ORIGINS: list[str] = field(default_factory=lambda: ["*"])

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # Mail
    MAIL_BACKEND: str = "dry_run"
    MAIL_TIMEOUT_SECONDS: int = 20
    GMAIL_USER: str = ""
    GMAIL_PASS: str = ""
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SENDGRID_API_KEY: str = ""

    # EmailJS relay (client-widget variant, driven server-side)
    EMAILJS_SERVICE_ID: str = ""
    EMAILJS_TEMPLATE_ID: str = ""
    EMAILJS_CONFIRMATION_TEMPLATE_ID: str = ""
    EMAILJS_PUBLIC_KEY: str = ""
    EMAILJS_PRIVATE_KEY: str = ""

    # Contact form
    CONTACT_REQUIRE_NAME: bool = False
    CONTACT_SEND_CONFIRMATION: bool = True

    # Visits
    VISIT_BOT_POLICY: str = "trust"
    VISIT_STORE: str = "log"
    DATABASE_URL: str = "sqlite:///data/visits.db"

    # Ops alerts (Twilio)
    ALERT_SMS_TO: str = ""
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_FROM: str = ""

    @classmethod
    def from_env(cls) -> "Settings":
        # EMAIL_DRY_RUN wins over MAIL_BACKEND so a dev box never sends by accident
        backend = _choice("MAIL_BACKEND", MAIL_BACKENDS, "smtp")
        if _as_bool("EMAIL_DRY_RUN", True):
            backend = "dry_run"

        gmail_user = _as_str("GMAIL_USER")
        return cls(
            ENV=_as_str("ENV", "dev"),
            FROM_NAME=_as_str("FROM_NAME", "Portfolio"),
            OWNER_EMAIL=_as_str("OWNER_EMAIL", gmail_user),
            RESUME_PATH=_as_str("RESUME_PATH", "public/resume.pdf"),
            CORS_ORIGINS=_as_list("CORS_ORIGINS", "*"),
            LOG_LEVEL=_as_str("LOG_LEVEL", "INFO").upper(),
            LOG_FILE=_as_str("LOG_FILE"),
            MAIL_BACKEND=backend,
            MAIL_TIMEOUT_SECONDS=_as_int("MAIL_TIMEOUT_SECONDS", 20),
            GMAIL_USER=gmail_user,
            GMAIL_PASS=_as_str("GMAIL_PASS"),
            SMTP_HOST=_as_str("SMTP_HOST", "smtp.gmail.com"),
            SMTP_PORT=_as_int("SMTP_PORT", 587),
            # Prefer SMTP_*; fall back to the Gmail account pair
            SMTP_USERNAME=_as_str("SMTP_USERNAME", gmail_user),
            SMTP_PASSWORD=_as_str("SMTP_PASSWORD", _as_str("GMAIL_PASS")),
            SENDGRID_API_KEY=_as_str("SENDGRID_API_KEY"),
            EMAILJS_SERVICE_ID=_as_str("EMAILJS_SERVICE_ID"),
            EMAILJS_TEMPLATE_ID=_as_str("EMAILJS_TEMPLATE_ID"),
            EMAILJS_CONFIRMATION_TEMPLATE_ID=_as_str("EMAILJS_CONFIRMATION_TEMPLATE_ID"),
            EMAILJS_PUBLIC_KEY=_as_str("EMAILJS_PUBLIC_KEY"),
            EMAILJS_PRIVATE_KEY=_as_str("EMAILJS_PRIVATE_KEY"),
            CONTACT_REQUIRE_NAME=_as_bool("CONTACT_REQUIRE_NAME", False),
            CONTACT_SEND_CONFIRMATION=_as_bool("CONTACT_SEND_CONFIRMATION", True),
            VISIT_BOT_POLICY=_choice("VISIT_BOT_POLICY", BOT_POLICIES, "trust"),
            VISIT_STORE=_choice("VISIT_STORE", VISIT_STORES, "log"),
            DATABASE_URL=_as_str("DATABASE_URL", "sqlite:///data/visits.db"),
            ALERT_SMS_TO=_as_str("ALERT_SMS_TO"),
            TWILIO_ACCOUNT_SID=_as_str("TWILIO_ACCOUNT_SID"),
            TWILIO_AUTH_TOKEN=_as_str("TWILIO_AUTH_TOKEN"),
            TWILIO_FROM=_as_str("TWILIO_FROM"),
        )

    def override(self, **changes) -> "Settings":
        return replace(self, **changes)

    @property
    def send_confirmation(self) -> bool:
        """
        Whether the intake handler sends the acknowledgment back to the sender.

        The EmailJS relay only confirms when a confirmation template is set up;
        the other backends follow CONTACT_SEND_CONFIRMATION alone.
        """
        if not self.CONTACT_SEND_CONFIRMATION:
            return False
        if self.MAIL_BACKEND == "emailjs":
            return bool(self.EMAILJS_CONFIRMATION_TEMPLATE_ID)
        return True

    @property
    def owner_email(self) -> str:
        return self.OWNER_EMAIL or self.GMAIL_USER
