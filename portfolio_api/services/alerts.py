# portfolio_api/services/alerts.py
import logging

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from portfolio_api.config import Settings

log = logging.getLogger(__name__)

MAX_SMS_CHARS = 900


def _client(settings: Settings) -> Client:
    return Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)


def alerts_configured(settings: Settings) -> bool:
    return bool(
        settings.ALERT_SMS_TO
        and settings.TWILIO_ACCOUNT_SID
        and settings.TWILIO_AUTH_TOKEN
        and settings.TWILIO_FROM
    )


def send_ops_alert(settings: Settings, message: str) -> bool:
    """
    Text the site owner about something that needs a human (e.g. a contact
    whose confirmation email bounced after the owner was already notified).

    Best-effort: returns False instead of raising.
    """
    msg = (message or "").strip() or "Portfolio API alert (empty detail)"
    # keep it short-ish for SMS
    if len(msg) > MAX_SMS_CHARS:
        msg = msg[:MAX_SMS_CHARS] + "..."

    if not alerts_configured(settings):
        log.warning("[alerts] SMS alerts not configured; alert was: %s", msg)
        return False

    try:
        sms = _client(settings).messages.create(
            to=settings.ALERT_SMS_TO,
            from_=settings.TWILIO_FROM,
            body=msg,
        )
    except (TwilioException, OSError) as e:
        log.error("[alerts] failed to send SMS alert: %r", e)
        return False

    log.info("[alerts] sent alert SMS sid=%s to %s", sms.sid, settings.ALERT_SMS_TO)
    return True
