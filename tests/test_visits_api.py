# tests/test_visits_api.py
import asyncio
import time

import httpx
import pytest

from conftest import BrokenSink, FakeDispatcher
from portfolio_api.main import create_app
from portfolio_api.services.visits import VisitRecorder
from fastapi.testclient import TestClient

GOOGLEBOT = {"url": "/", "userAgent": "Googlebot/2.1", "isBot": False, "timestamp": "2024-01-01T00:00:00Z"}


def test_log_visit_acknowledges(client, sink):
    resp = client.post("/api/log-visit", json=GOOGLEBOT)

    assert resp.status_code == 200
    assert resp.json() == {"message": "Visit logged successfully"}
    assert len(sink.events) == 1


def test_log_visit_trusts_caller_flag_by_default(client, sink):
    client.post("/api/log-visit", json=GOOGLEBOT)
    assert sink.events[0].is_bot is False


def test_log_visit_derive_policy_overrides_caller_flag(make_client, sink):
    client = make_client(policy="derive")

    client.post("/api/log-visit", json=GOOGLEBOT)

    event = sink.events[0]
    assert event.is_bot is True
    assert event.reported_is_bot is False
    assert event.timestamp == "2024-01-01T00:00:00Z"


@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
def test_log_visit_other_methods_not_allowed(client, sink, method):
    resp = client.request(method, "/api/log-visit")

    assert resp.status_code == 405
    assert resp.text == f"Method {method} Not Allowed"
    assert resp.headers["allow"] == "POST"
    assert sink.events == []


def test_log_visit_never_fails_on_sink_error(settings, dispatcher):
    app = create_app(settings=settings, dispatcher=dispatcher, visit_recorder=VisitRecorder([BrokenSink()]))
    client = TestClient(app)

    resp = client.post("/api/log-visit", json=GOOGLEBOT)

    assert resp.status_code == 200
    assert resp.json() == {"message": "Visit logged successfully"}


def test_log_visit_tolerates_empty_body(client, sink):
    resp = client.post("/api/log-visit")

    assert resp.status_code == 200
    assert sink.events[0].url == ""
    assert sink.events[0].is_bot is False


def test_db_store_is_wired_from_settings(settings, dispatcher):
    app = create_app(settings=settings.override(VISIT_STORE="db", DATABASE_URL="sqlite://"), dispatcher=dispatcher)

    sink_names = [s.name for s in app.state.visit_recorder.sinks]
    assert sink_names == ["log", "db"]

    resp = TestClient(app).post("/api/log-visit", json=GOOGLEBOT)
    assert resp.status_code == 200


def test_log_visit_head_is_not_allowed(client, sink):
    resp = client.head("/api/log-visit")

    assert resp.status_code == 405
    assert resp.headers["allow"] == "POST"
    assert sink.events == []


class SlowDispatcher(FakeDispatcher):
    def _deliver(self, message):
        time.sleep(0.3)
        return super()._deliver(message)


def test_slow_mail_does_not_stall_visit_logging(settings, sink, valid_submission):
    app = create_app(settings=settings, dispatcher=SlowDispatcher(), visit_recorder=VisitRecorder([sink]))

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            contact = asyncio.create_task(ac.post("/api/contact", json=valid_submission))
            await asyncio.sleep(0.05)
            started = time.perf_counter()
            visit = await ac.post("/api/log-visit", json=GOOGLEBOT)
            elapsed = time.perf_counter() - started
            return await contact, visit, elapsed

    contact, visit, elapsed = asyncio.run(scenario())

    assert visit.status_code == 200
    assert contact.status_code == 200
    # the contact request needs ~0.6s for its two sends
    assert elapsed < 0.3
    assert len(sink.events) == 1
