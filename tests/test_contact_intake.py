# tests/test_contact_intake.py
import pytest

from conftest import OWNER, FakeDispatcher
from portfolio_api.services.contact import (
    CONFIRMATION_SUBJECT,
    INVALID_EMAIL,
    MISSING_FIELDS,
    ContactIntake,
    IntakeState,
    parse_submission,
)
from portfolio_api.services import email as email_service
from portfolio_api.services.email import (
    OWNER_NOTIFICATION,
    SENDER_CONFIRMATION,
    DispatchResult,
    SmtpDispatcher,
)


def _intake(dispatcher, **kwargs):
    return ContactIntake(dispatcher, owner_email=OWNER, signature="Dhruvil", **kwargs)


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"subject": "Hi", "message": "Hello"},
        {"from": "a@x.com", "message": "Hello"},
        {"from": "a@x.com", "subject": "Hi"},
        {"from": "a@x.com", "subject": "   ", "message": "Hello"},
        {"from": "", "subject": "Hi", "message": "Hello"},
        {"from": "a@x.com", "subject": "Hi", "message": None},
    ],
)
def test_missing_fields_send_nothing(raw):
    dispatcher = FakeDispatcher()
    result = _intake(dispatcher).handle(raw)

    assert result.state is IntakeState.INVALID
    assert result.error == MISSING_FIELDS
    assert result.steps == []
    assert dispatcher.sent == []


def test_name_required_variant_rejects_missing_name(valid_submission):
    dispatcher = FakeDispatcher()
    result = _intake(dispatcher, require_name=True).handle(valid_submission)

    assert result.state is IntakeState.INVALID
    assert result.error == "Missing fields"
    assert dispatcher.sent == []


def test_bad_email_shape_is_rejected_before_sending():
    dispatcher = FakeDispatcher()
    result = _intake(dispatcher).handle({"from": "not-an-email", "subject": "Hi", "message": "Hello"})

    assert result.state is IntakeState.INVALID
    assert result.error == INVALID_EMAIL
    assert dispatcher.sent == []


def test_valid_submission_sends_owner_then_confirmation(valid_submission):
    dispatcher = FakeDispatcher()
    result = _intake(dispatcher).handle(valid_submission)

    assert result.ok
    assert [m.kind for m in dispatcher.sent] == [OWNER_NOTIFICATION, SENDER_CONFIRMATION]
    assert [s.kind for s in result.steps] == [OWNER_NOTIFICATION, SENDER_CONFIRMATION]

    owner, confirm = dispatcher.sent
    assert owner.sender == "a@x.com"
    assert owner.to == OWNER
    assert owner.subject == "[Portfolio] Hi"
    assert owner.body == "Hello"
    assert owner.reply_to == "a@x.com"
    assert not owner.html

    assert confirm.sender == OWNER
    assert confirm.to == "a@x.com"
    assert confirm.subject == CONFIRMATION_SUBJECT
    assert confirm.html
    assert "Hey there!" in confirm.body
    assert "Dhruvil" in confirm.body


def test_confirmation_greets_sender_by_name_and_escapes_it():
    dispatcher = FakeDispatcher()
    raw = {"from": "a@x.com", "name": "<Ann>", "subject": "Hi", "message": "Hello"}
    assert _intake(dispatcher).handle(raw).ok

    confirm = dispatcher.sent[1]
    assert "Hey &lt;Ann&gt;!" in confirm.body
    assert dispatcher.sent[0].sender_name == "<Ann>"


def test_owner_failure_skips_confirmation(valid_submission):
    dispatcher = FakeDispatcher([DispatchResult.failure("535 auth rejected")])
    result = _intake(dispatcher).handle(valid_submission)

    assert result.state is IntakeState.OWNER_NOTIFY_FAILED
    assert result.error == "535 auth rejected"
    assert len(dispatcher.sent) == 1
    assert dispatcher.sent[0].kind == OWNER_NOTIFICATION
    assert not result.partial


def test_confirmation_failure_is_reported_as_partial(valid_submission):
    dispatcher = FakeDispatcher([DispatchResult.success(), DispatchResult.failure("quota exceeded")])
    partials = []
    intake = _intake(dispatcher, on_partial_failure=lambda sub, reason: partials.append((sub.sender_email, reason)))

    result = intake.handle(valid_submission)

    assert result.state is IntakeState.CONFIRMATION_FAILED
    assert result.partial
    assert not result.ok
    assert result.error == "quota exceeded"
    assert [s.result.ok for s in result.steps] == [True, False]
    assert partials == [("a@x.com", "quota exceeded")]


def test_confirmation_can_be_switched_off(valid_submission):
    dispatcher = FakeDispatcher()
    result = _intake(dispatcher, send_confirmation=False).handle(valid_submission)

    assert result.ok
    assert [m.kind for m in dispatcher.sent] == [OWNER_NOTIFICATION]


def test_from_settings_follows_emailjs_confirmation_template(settings, valid_submission):
    relay = settings.override(MAIL_BACKEND="emailjs", EMAILJS_CONFIRMATION_TEMPLATE_ID="")
    dispatcher = FakeDispatcher()

    assert ContactIntake.from_settings(relay, dispatcher).handle(valid_submission).ok
    assert len(dispatcher.sent) == 1


def test_parse_submission_accepts_email_alias_and_strips():
    sub = parse_submission({"email": " a@x.com ", "subject": " Hi ", "message": "Hello\n"})
    assert sub.sender_email == "a@x.com"
    assert sub.subject == "Hi"
    assert sub.message == "Hello"
    assert sub.sender_name is None


def test_line_breaks_in_header_fields_are_collapsed():
    sub = parse_submission({"from": "a@x.com", "name": "Ann\r\nBcc: x@evil.com", "subject": "Hi\nthere", "message": "line 1\nline 2"})

    assert sub.subject == "Hi there"
    assert sub.sender_name == "Ann Bcc: x@evil.com"
    assert sub.message == "line 1\nline 2"


def test_multiline_subject_goes_out_over_smtp(monkeypatch):
    sent = []

    class RecordingSMTP:
        def __init__(self, host, port, timeout=None):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def ehlo(self):
            pass

        def starttls(self, context=None):
            pass

        def login(self, user, pwd):
            pass

        def send_message(self, msg):
            sent.append(msg)

    monkeypatch.setattr(email_service.smtplib, "SMTP", RecordingSMTP)
    intake = _intake(SmtpDispatcher("smtp.gmail.com", 587, "me@gmail.com", "app-pass"))

    result = intake.handle({"from": "a@x.com", "subject": "Hi\nthere", "message": "Hello"})

    assert result.ok
    assert sent[0]["Subject"] == "[Portfolio] Hi there"
    assert len(sent) == 2
