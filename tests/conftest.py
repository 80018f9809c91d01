"""Pytest configuration for the intake API tests."""

import pytest

from app import create_app
from models import db
from security.otp import OtpSessionManager
from security.rate_limit import RateLimiter

TEST_SECRET = "test-signing-secret"


class FakeClock:
    """Callable clock the limiter and token manager read instead of time.time."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    def __init__(self, status_code=200, payload=None, json_error=False):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload if payload is not None else {"success": True}
        self._json_error = json_error

    def json(self):
        if self._json_error:
            raise ValueError("not json")
        return self._payload


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(clock):
    app = create_app(
        overrides={
            "TESTING": True,
            "APP_ENV": "testing",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "OTP_SIGNING_SECRET": TEST_SECRET,
            "WEB3FORMS_API_KEY": "test-relay-key",
            "FORMSPREE_URL": None,
            "SMTP_HOST": None,
            "SMTP_USERNAME": None,
            "SMTP_PASSWORD": None,
        },
        rate_limiter=RateLimiter(clock=clock),
        otp_sessions=OtpSessionManager(TEST_SECRET, clock=clock),
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


class RelayRecorder:
    def __init__(self) -> None:
        self.calls = []
        self.response = FakeResponse()
        self.error = None

    def respond(self, **kwargs) -> None:
        self.response = FakeResponse(**kwargs)

    def post(self, url, data=None, files=None, timeout=None):
        self.calls.append({"url": url, "data": data, "files": files, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def relay(monkeypatch):
    """Replaces the HTTP relay with a recorder that answers success."""
    recorder = RelayRecorder()
    monkeypatch.setattr("utils.form_relay.requests.post", recorder.post)
    return recorder


@pytest.fixture
def sent_emails(monkeypatch):
    """Captures OTP and confirmation emails instead of talking to SMTP."""
    outbox = []

    def fake_send(to_email, subject, body, html=None):
        outbox.append({"to": to_email, "subject": subject, "body": body})
        return True, None

    monkeypatch.setattr("utils.emailer.send_email", fake_send)
    return outbox
