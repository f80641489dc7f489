# portfolio_api/services/email.py
from __future__ import annotations

import logging
import re
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

import requests
from email_validator import EmailNotValidError, validate_email

from portfolio_api.config import Settings

log = logging.getLogger(__name__)

OWNER_NOTIFICATION = "owner_notification"
SENDER_CONFIRMATION = "sender_confirmation"

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
EMAILJS_URL = "https://api.emailjs.com/api/v1.0/email/send"


@dataclass(frozen=True)
class OutboundMessage:
    sender: str
    to: str
    subject: str
    body: str
    html: bool = False
    kind: str = OWNER_NOTIFICATION
    sender_name: Optional[str] = None
    reply_to: Optional[str] = None


@dataclass(frozen=True)
class DispatchResult:
    ok: bool
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "DispatchResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> "DispatchResult":
        return cls(ok=False, reason=reason or "unknown mail error")


# ---- internal helpers --------------------------------------------------------


def is_valid_email(address: str | None) -> bool:
    """Syntax check only; never touches DNS."""
    if not address or not address.strip():
        return False
    try:
        validate_email(address.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def check_message(message: OutboundMessage) -> Optional[str]:
    if not is_valid_email(message.sender):
        return f"invalid sender address: {message.sender!r}"
    if not is_valid_email(message.to):
        return f"invalid recipient address: {message.to!r}"
    if not (message.subject or "").strip():
        return "empty subject"
    if not (message.body or "").strip():
        return "empty body"
    return None


_TAG_RE = re.compile(r"<[^>]+>")


def _html_to_text(html: str) -> str:
    text = re.sub(r"(?i)<br\s*/?>", "\n", html)
    text = re.sub(r"(?i)</p>", "\n", text)
    text = _TAG_RE.sub("", text)
    return "\n".join(line.strip() for line in text.splitlines() if line.strip())


# ---- dispatchers -------------------------------------------------------------


class MailDispatcher:
    """
    One delivery attempt per `send()` call.

    Subclasses implement `_deliver()` and turn provider errors into a
    failed DispatchResult; nothing is retried here, the caller decides.
    """

    name = "base"

    def send(self, message: OutboundMessage) -> DispatchResult:
        problem = check_message(message)
        if problem:
            log.error("%s: refusing to send %s (%s)", self.name, message.kind, problem)
            return DispatchResult.failure(problem)
        return self._deliver(message)

    def _deliver(self, message: OutboundMessage) -> DispatchResult:
        raise NotImplementedError


class DryRunDispatcher(MailDispatcher):
    name = "dry_run"

    def _deliver(self, message: OutboundMessage) -> DispatchResult:
        log.info("[EMAIL DRY RUN] kind=%s to=%s subject=%s", message.kind, message.to, message.subject)
        return DispatchResult.success()


class SmtpDispatcher(MailDispatcher):
    """SMTP + STARTTLS; a fresh connection per message (Gmail by default)."""

    name = "smtp"

    def __init__(self, host: str, port: int, username: str, password: str, timeout: int = 20):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout

    def build_email(self, message: OutboundMessage) -> EmailMessage:
        msg = EmailMessage()
        if message.sender_name:
            msg["From"] = formataddr((message.sender_name, message.sender))
        else:
            msg["From"] = message.sender
        msg["To"] = message.to
        msg["Subject"] = message.subject
        if message.reply_to:
            msg["Reply-To"] = message.reply_to
        if message.html:
            msg.set_content(_html_to_text(message.body))
            msg.add_alternative(message.body, subtype="html")
        else:
            msg.set_content(message.body)
        return msg

    def _deliver(self, message: OutboundMessage) -> DispatchResult:
        if not (self.host and self.username and self.password):
            log.error("SMTP creds missing (host/user/pwd)")
            return DispatchResult.failure("SMTP credentials are not configured")

        try:
            msg = self.build_email(message)
            context = ssl.create_default_context()
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
                s.ehlo()
                s.starttls(context=context)
                s.ehlo()
                s.login(self.username, self.password)
                s.send_message(msg)
        except smtplib.SMTPException as e:
            log.error("SMTP send failed (%s → %s): %s", message.kind, message.to, e)
            return DispatchResult.failure(str(e))
        except ValueError as e:
            # header injection or unencodable address; nothing was sent
            log.error("SMTP message rejected (%s → %s): %s", message.kind, message.to, e)
            return DispatchResult.failure(str(e))
        except OSError as e:
            log.error("SMTP connection error %s:%s: %s", self.host, self.port, e)
            return DispatchResult.failure(str(e))

        log.info("SMTP send ok %s → %s via %s:%s", message.kind, message.to, self.host, self.port)
        return DispatchResult.success()


class SendGridDispatcher(MailDispatcher):
    """
    SendGrid v3 API. SendGrid only accepts verified senders, so the envelope
    `from` is the configured account and the message sender goes to reply_to.
    """

    name = "sendgrid"

    def __init__(self, api_key: str, from_email: str, from_name: str = "", timeout: int = 20):
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    def build_payload(self, message: OutboundMessage) -> dict:
        content_type = "text/html" if message.html else "text/plain"
        payload = {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {
                "email": self.from_email,
                "name": message.sender_name or self.from_name or self.from_email,
            },
            "subject": message.subject,
            "content": [{"type": content_type, "value": message.body}],
        }
        reply_to = message.reply_to or (message.sender if message.sender != self.from_email else None)
        if reply_to:
            payload["reply_to"] = {"email": reply_to}
        return payload

    def _deliver(self, message: OutboundMessage) -> DispatchResult:
        if not self.api_key:
            log.error("SendGrid API key missing")
            return DispatchResult.failure("SENDGRID_API_KEY is not configured")
        try:
            r = requests.post(
                SENDGRID_URL,
                json=self.build_payload(message),
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.error("SendGrid network error: %s", e)
            return DispatchResult.failure(str(e))

        if r.status_code >= 300:
            log.error("SendGrid HTTP %s: %s", r.status_code, r.text)
            return DispatchResult.failure(f"SendGrid HTTP {r.status_code}: {r.text}")

        log.info("SendGrid API send ok %s → %s", message.kind, message.to)
        return DispatchResult.success()


class EmailJsDispatcher(MailDispatcher):
    """
    EmailJS relay. The provider renders its own templates, so each message
    kind maps onto a template id plus the params that template expects.
    """

    name = "emailjs"

    def __init__(
        self,
        service_id: str,
        template_id: str,
        public_key: str,
        confirmation_template_id: str = "",
        private_key: str = "",
        timeout: int = 20,
    ):
        self.service_id = service_id
        self.template_id = template_id
        self.confirmation_template_id = confirmation_template_id
        self.public_key = public_key
        self.private_key = private_key
        self.timeout = timeout

    def template_for(self, message: OutboundMessage) -> tuple[str, dict]:
        if message.kind == SENDER_CONFIRMATION:
            return self.confirmation_template_id, {
                "user_name": message.sender_name or "there",
                "to_email": message.to,
                "user_subject": message.subject,
            }
        return self.template_id, {
            "from_name": message.sender_name or "",
            "from_email": message.sender,
            "subject": message.subject,
            "message": message.body,
        }

    def _deliver(self, message: OutboundMessage) -> DispatchResult:
        template_id, params = self.template_for(message)
        if not (self.service_id and template_id and self.public_key):
            log.error("EmailJS not configured for %s", message.kind)
            return DispatchResult.failure(f"EmailJS template for {message.kind} is not configured")

        payload = {
            "service_id": self.service_id,
            "template_id": template_id,
            "user_id": self.public_key,
            "template_params": params,
        }
        if self.private_key:
            payload["accessToken"] = self.private_key

        try:
            r = requests.post(EMAILJS_URL, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            log.error("EmailJS network error: %s", e)
            return DispatchResult.failure(str(e))

        if r.status_code != 200:
            log.error("EmailJS HTTP %s: %s", r.status_code, r.text)
            return DispatchResult.failure(f"EmailJS HTTP {r.status_code}: {r.text}")

        log.info("EmailJS send ok %s (template=%s)", message.kind, template_id)
        return DispatchResult.success()


# ---- public API --------------------------------------------------------------


def build_dispatcher(settings: Settings) -> MailDispatcher:
    """Construct the configured backend once per process."""
    backend = settings.MAIL_BACKEND
    timeout = settings.MAIL_TIMEOUT_SECONDS

    if backend == "smtp":
        return SmtpDispatcher(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            timeout=timeout,
        )
    if backend == "sendgrid":
        return SendGridDispatcher(
            api_key=settings.SENDGRID_API_KEY,
            from_email=settings.owner_email,
            from_name=settings.FROM_NAME,
            timeout=timeout,
        )
    if backend == "emailjs":
        return EmailJsDispatcher(
            service_id=settings.EMAILJS_SERVICE_ID,
            template_id=settings.EMAILJS_TEMPLATE_ID,
            confirmation_template_id=settings.EMAILJS_CONFIRMATION_TEMPLATE_ID,
            public_key=settings.EMAILJS_PUBLIC_KEY,
            private_key=settings.EMAILJS_PRIVATE_KEY,
            timeout=timeout,
        )
    return DryRunDispatcher()
