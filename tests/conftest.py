import os

os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "x")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-0123456789")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_x")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("STRIPE_PRICE_STANDARD_MONTHLY", "price_standard_monthly")
os.environ.setdefault("STRIPE_PRICE_STANDARD_QUARTERLY", "price_standard_quarterly")
os.environ.setdefault("STRIPE_PRICE_FEEDBACK_MONTHLY", "price_feedback_monthly")
os.environ.setdefault("STRIPE_PRICE_FEEDBACK_QUARTERLY", "price_feedback_quarterly")
os.environ.setdefault("FRONTEND_URL", "http://localhost:5173")
os.environ.setdefault("BILLING_MODE", "stripe")

import pytest
from fastapi.testclient import TestClient

import auth.middleware as middleware_module
from auth.dependencies import get_current_user
from index import app
from services.billing_provider import get_billing_service
from services.mock_billing_service import MockBillingService
from services.stripe_service import StripeService
from fakes import FakeSupabase

TEST_USER = {
    "id": "user-1",
    "email": "learner@example.com",
    "name": "Learner",
    "bio": "",
}


@pytest.fixture(autouse=True)
def reset_dependency_overrides():
    original = dict(app.dependency_overrides)
    try:
        yield
    finally:
        app.dependency_overrides.clear()
        app.dependency_overrides.update(original)


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def auth_middleware(monkeypatch, fake_supabase):
    # Fresh middleware per test, wired to the in-memory Supabase
    monkeypatch.setattr(middleware_module, "create_client", lambda url, key: fake_supabase)
    monkeypatch.setattr(middleware_module, "auth_middleware", None)
    return middleware_module.get_auth_middleware()


@pytest.fixture
def stripe_service(fake_supabase):
    return StripeService(fake_supabase)


@pytest.fixture
def mock_billing():
    return MockBillingService()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def user():
    return dict(TEST_USER)


@pytest.fixture
def signed_in(user):
    app.dependency_overrides[get_current_user] = lambda: user
    return user


@pytest.fixture
def use_billing(mock_billing):
    """Route billing through the given service; defaults to the in-memory mock."""
    def _use(service=None):
        service = service or mock_billing
        app.dependency_overrides[get_billing_service] = lambda: service
        return service
    return _use
