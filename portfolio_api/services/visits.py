# portfolio_api/services/visits.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional

from dateutil import parser as dtparse
from sqlmodel import Session

from portfolio_api.models import VisitLog

log = logging.getLogger(__name__)

BOT_SIGNATURES = ("bot", "crawl", "spider", "slurp", "ia_archiver")
BOT_RE = re.compile("(" + "|".join(BOT_SIGNATURES) + ")", re.IGNORECASE)

TRUST = "trust"
DERIVE = "derive"


def classify_user_agent(user_agent: str | None) -> bool:
    """True when the UA carries a known crawler signature."""
    return bool(user_agent) and BOT_RE.search(user_agent) is not None


def _as_flag(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v in ("1", "true", "yes", "on"):
            return True
        if v in ("0", "false", "no", "off"):
            return False
    return None


def _utc_iso_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_dt(s: str) -> Optional[datetime]:
    """Parse ISO string to datetime; return None if invalid."""
    if not s:
        return None
    try:
        return dtparse.isoparse(s)
    except (ValueError, OverflowError):
        return None


@dataclass(frozen=True)
class VisitEvent:
    url: str
    user_agent: str
    is_bot: bool
    timestamp: str
    reported_is_bot: Optional[bool] = None

    @property
    def disputed(self) -> bool:
        return self.reported_is_bot is not None and self.reported_is_bot != classify_user_agent(self.user_agent)


@dataclass(frozen=True)
class RecordResult:
    event: VisitEvent
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_event(raw: Mapping[str, Any], policy: str = TRUST) -> VisitEvent:
    url = str(raw.get("url") or "")
    user_agent = str(raw.get("userAgent") or raw.get("user_agent") or "")
    reported = _as_flag(raw.get("isBot", raw.get("is_bot")))
    timestamp = str(raw.get("timestamp") or "") or _utc_iso_now()

    derived = classify_user_agent(user_agent)
    if policy == TRUST and reported is not None:
        is_bot = reported
    else:
        is_bot = derived

    return VisitEvent(
        url=url,
        user_agent=user_agent,
        is_bot=is_bot,
        timestamp=timestamp,
        reported_is_bot=reported,
    )


# ---- sinks -------------------------------------------------------------------


class LogVisitSink:
    name = "log"

    def write(self, event: VisitEvent) -> None:
        log.info(
            "visit logged url=%s bot=%s reported_bot=%s ts=%s ua=%r",
            event.url,
            event.is_bot,
            event.reported_is_bot,
            event.timestamp,
            event.user_agent,
        )


class SqlVisitSink:
    name = "db"

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def write(self, event: VisitEvent) -> None:
        with self.session_factory() as session:
            session.add(
                VisitLog(
                    url=event.url,
                    user_agent=event.user_agent,
                    is_bot=event.is_bot,
                    reported_is_bot=event.reported_is_bot,
                    timestamp=event.timestamp,
                    occurred_at=_parse_dt(event.timestamp),
                )
            )
            session.commit()


class VisitRecorder:
    def __init__(self, sinks: Iterable[Any], policy: str = TRUST):
        if policy not in (TRUST, DERIVE):
            raise ValueError(f"unknown bot policy {policy!r}")
        self.sinks = list(sinks)
        self.policy = policy

    def record(self, raw: Mapping[str, Any]) -> RecordResult:
        event = build_event(raw, self.policy)
        if event.disputed:
            log.warning(
                "visit bot flag mismatch: page said %s, user agent says %s (policy=%s) ua=%r",
                event.reported_is_bot,
                not event.reported_is_bot,
                self.policy,
                event.user_agent,
            )

        error = None
        for sink in self.sinks:
            # Best-effort only: a broken sink must never fail the page view.
            try:
                sink.write(event)
            except Exception as e:
                log.exception("visit sink %s failed", getattr(sink, "name", sink))
                error = f"{getattr(sink, 'name', 'sink')}: {e}"
        return RecordResult(event=event, error=error)
