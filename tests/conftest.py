import base64
import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RECONCILE_INTERVAL_SECONDS", "0")
os.environ.setdefault("CLERK_WEBHOOK_SECRET", "whsec_" + base64.b64encode(b"riglii-test-webhook-secret").decode())
os.environ.setdefault("CHATBASE_SECRET_KEY", "chatbase-test-key")
os.environ.setdefault("SITE_URL", "https://riglii.test")

import pytest
from fastapi.testclient import TestClient

from app.core.realtime import get_realtime_source
from app.database.supabase_client import get_supabase, get_service_supabase, get_session_supabase
from app.main import app
from tests.fake_supabase import FakeSupabase, FakeRealtimeSource, auth_user


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def client(db):
    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_service_supabase] = lambda: db
    app.dependency_overrides[get_session_supabase] = lambda: db
    app.dependency_overrides[get_realtime_source] = lambda: FakeRealtimeSource(db)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Seed a local users row plus a bearer token that resolves to it"""
    def _make(name, is_freelancer=False):
        subject = f"user_{name}"
        row = db.seed("users", clerk_id=subject, email=f"{name}@example.com", is_freelancer=is_freelancer)
        token = f"tok_{name}"
        db.auth.tokens[token] = auth_user(subject, f"{name}@example.com")
        return row, {"Authorization": f"Bearer {token}"}
    return _make
