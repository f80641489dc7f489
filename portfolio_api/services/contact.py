# portfolio_api/services/contact.py
"""
Contact-form intake.

A submission turns into two emails, sent one after the other:

1. owner notification (`[Portfolio] <subject>`, from the visitor to the owner)
2. sender confirmation (fixed acknowledgment back to the visitor)

If (1) fails, (2) is never attempted. If (2) fails, (1) has already gone out
and cannot be recalled; that outcome is reported as CONFIRMATION_FAILED so
callers and operators can tell it apart from a total failure.
"""
from __future__ import annotations

import enum
import html
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from portfolio_api.config import Settings
from portfolio_api.services.email import (
    OWNER_NOTIFICATION,
    SENDER_CONFIRMATION,
    DispatchResult,
    MailDispatcher,
    OutboundMessage,
    is_valid_email,
)

log = logging.getLogger(__name__)

MISSING_FIELDS = "Missing fields"
INVALID_EMAIL = "Invalid email address"

SUBJECT_PREFIX = "[Portfolio] "
CONFIRMATION_SUBJECT = "Thanks for reaching out!"


class IntakeState(str, enum.Enum):
    SUCCEEDED = "succeeded"
    INVALID = "invalid"
    OWNER_NOTIFY_FAILED = "owner_notify_failed"
    CONFIRMATION_FAILED = "confirmation_failed"


@dataclass(frozen=True)
class ContactSubmission:
    sender_email: str
    subject: str
    message: str
    sender_name: Optional[str] = None


@dataclass(frozen=True)
class DispatchStep:
    kind: str
    result: DispatchResult


@dataclass
class IntakeResult:
    state: IntakeState
    error: Optional[str] = None
    steps: list[DispatchStep] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is IntakeState.SUCCEEDED

    @property
    def partial(self) -> bool:
        """Owner was notified but the visitor never got a confirmation."""
        return self.state is IntakeState.CONFIRMATION_FAILED


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


_LINE_BREAKS = re.compile(r"\s*[\r\n]+\s*")


def _one_line(value: Any) -> str:
    """Header-bound fields (subject, name) may not carry CR/LF."""
    return _LINE_BREAKS.sub(" ", _clean(value))


def parse_submission(raw: Mapping[str, Any], require_name: bool = False) -> ContactSubmission | str:
    """
    Build a ContactSubmission from a request body, or return the error text.

    The form posts the visitor address as `from`; `email` is accepted too.
    """
    sender_email = _clean(raw.get("from") or raw.get("email"))
    subject = _one_line(raw.get("subject"))
    message = _clean(raw.get("message"))
    name = _one_line(raw.get("name"))

    if not sender_email or not subject or not message:
        return MISSING_FIELDS
    if require_name and not name:
        return MISSING_FIELDS
    if not is_valid_email(sender_email):
        return INVALID_EMAIL

    return ContactSubmission(
        sender_email=sender_email,
        subject=subject,
        message=message,
        sender_name=name or None,
    )


def owner_notification(submission: ContactSubmission, owner_email: str) -> OutboundMessage:
    return OutboundMessage(
        sender=submission.sender_email,
        to=owner_email,
        subject=f"{SUBJECT_PREFIX}{submission.subject}",
        body=submission.message,
        kind=OWNER_NOTIFICATION,
        sender_name=submission.sender_name,
        reply_to=submission.sender_email,
    )


def confirmation_html(submission: ContactSubmission, signature: str) -> str:
    greeting = f"Hey {html.escape(submission.sender_name)}!" if submission.sender_name else "Hey there!"
    return f"""
    <p>{greeting}</p>
    <p>Thanks for contacting me. I've got your message about <b>{html.escape(submission.subject)}</b> and will get back to you soon.</p>
    <p>Cheers,<br/>{html.escape(signature)}</p>
    """.strip()


def sender_confirmation(submission: ContactSubmission, owner_email: str, signature: str) -> OutboundMessage:
    return OutboundMessage(
        sender=owner_email,
        to=submission.sender_email,
        subject=CONFIRMATION_SUBJECT,
        body=confirmation_html(submission, signature),
        html=True,
        kind=SENDER_CONFIRMATION,
        sender_name=submission.sender_name,
    )


class ContactIntake:
    def __init__(
        self,
        dispatcher: MailDispatcher,
        owner_email: str,
        signature: str = "Portfolio",
        require_name: bool = False,
        send_confirmation: bool = True,
        on_partial_failure: Optional[Callable[[ContactSubmission, str], Any]] = None,
    ):
        self.dispatcher = dispatcher
        self.owner_email = owner_email
        self.signature = signature
        self.require_name = require_name
        self.send_confirmation = send_confirmation
        self.on_partial_failure = on_partial_failure

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        dispatcher: MailDispatcher,
        on_partial_failure: Optional[Callable[[ContactSubmission, str], Any]] = None,
    ) -> "ContactIntake":
        return cls(
            dispatcher=dispatcher,
            owner_email=settings.owner_email,
            signature=settings.FROM_NAME,
            require_name=settings.CONTACT_REQUIRE_NAME,
            send_confirmation=settings.send_confirmation,
            on_partial_failure=on_partial_failure,
        )

    def handle(self, raw: Mapping[str, Any]) -> IntakeResult:
        parsed = parse_submission(raw, require_name=self.require_name)
        if isinstance(parsed, str):
            log.info("contact rejected: %s", parsed)
            return IntakeResult(state=IntakeState.INVALID, error=parsed)

        submission = parsed
        result = IntakeResult(state=IntakeState.SUCCEEDED)

        # 1) notify owner
        sent = self.dispatcher.send(owner_notification(submission, self.owner_email))
        result.steps.append(DispatchStep(OWNER_NOTIFICATION, sent))
        if not sent.ok:
            log.error("contact from %s: owner notification failed: %s", submission.sender_email, sent.reason)
            result.state = IntakeState.OWNER_NOTIFY_FAILED
            result.error = sent.reason
            return result

        if not self.send_confirmation:
            log.info("contact from %s: owner notified (confirmation disabled)", submission.sender_email)
            return result

        # 2) confirmation back to sender
        confirmed = self.dispatcher.send(sender_confirmation(submission, self.owner_email, self.signature))
        result.steps.append(DispatchStep(SENDER_CONFIRMATION, confirmed))
        if not confirmed.ok:
            log.error(
                "contact from %s: owner notified but confirmation failed: %s",
                submission.sender_email,
                confirmed.reason,
            )
            result.state = IntakeState.CONFIRMATION_FAILED
            result.error = confirmed.reason
            if self.on_partial_failure is not None:
                self.on_partial_failure(submission, confirmed.reason or "")
            return result

        log.info("contact from %s: owner notified and sender confirmed", submission.sender_email)
        return result
