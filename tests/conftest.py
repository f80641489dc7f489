# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from portfolio_api.config import Settings
from portfolio_api.main import create_app
from portfolio_api.services.email import DispatchResult, MailDispatcher
from portfolio_api.services.visits import VisitRecorder

OWNER = "owner@example.com"


class FakeDispatcher(MailDispatcher):
    """Records every message; answers with scripted results in order."""

    name = "fake"

    def __init__(self, results=None):
        self.results = list(results or [])
        self.sent = []

    def _deliver(self, message):
        self.sent.append(message)
        if self.results:
            return self.results.pop(0)
        return DispatchResult.success()


class ListSink:
    name = "list"

    def __init__(self):
        self.events = []

    def write(self, event):
        self.events.append(event)


class BrokenSink:
    name = "broken"

    def write(self, event):
        raise RuntimeError("disk full")


@pytest.fixture
def settings():
    return Settings(OWNER_EMAIL=OWNER, FROM_NAME="Dhruvil", MAIL_BACKEND="dry_run")


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def sink():
    return ListSink()


@pytest.fixture
def make_client(settings, dispatcher, sink):
    def _make(settings=settings, dispatcher=dispatcher, policy="trust"):
        recorder = VisitRecorder([sink], policy=policy)
        app = create_app(settings=settings, dispatcher=dispatcher, visit_recorder=recorder)
        return TestClient(app)
    return _make


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def valid_submission():
    return {"from": "a@x.com", "subject": "Hi", "message": "Hello"}
