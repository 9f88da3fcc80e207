import json
from types import SimpleNamespace

import pytest
import stripe
from fastapi import HTTPException

from models.subscription import PlanType, BillingPeriod, SubscriptionStatus
from services.stripe_service import _invoice_subscription_id
from fakes import stripe_subscription

USER = {"id": "user-1", "email": "learner@example.com"}


@pytest.fixture
def stripe_calls(monkeypatch):
    """Record Stripe SDK calls instead of hitting the API."""
    calls = {"customers": [], "sessions": [], "portals": [], "modify": [], "retrieve": []}
    subscriptions = {}

    def create_customer(**kwargs):
        calls["customers"].append(kwargs)
        return SimpleNamespace(id=f"cus_{len(calls['customers'])}")

    def create_session(**kwargs):
        calls["sessions"].append(kwargs)
        return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/cs_test_1")

    def create_portal(**kwargs):
        calls["portals"].append(kwargs)
        return SimpleNamespace(url="https://billing.stripe.com/p/session_1")

    def modify(subscription_id, **kwargs):
        calls["modify"].append((subscription_id, kwargs))
        data = dict(subscriptions.get(subscription_id) or stripe_subscription(subscription_id))
        data.update(kwargs)
        return data

    def retrieve(subscription_id):
        calls["retrieve"].append(subscription_id)
        return subscriptions.get(subscription_id) or stripe_subscription(subscription_id)

    monkeypatch.setattr(stripe.Customer, "create", create_customer)
    monkeypatch.setattr(stripe.checkout.Session, "create", create_session)
    monkeypatch.setattr(stripe.billing_portal.Session, "create", create_portal)
    monkeypatch.setattr(stripe.Subscription, "modify", modify)
    monkeypatch.setattr(stripe.Subscription, "retrieve", retrieve)
    calls["subscriptions"] = subscriptions
    return calls


def deliver(monkeypatch, event):
    """Make signature verification accept the given event."""
    def construct_event(payload, signature, secret):
        assert secret == "whsec_test"
        return event
    monkeypatch.setattr(stripe.Webhook, "construct_event", construct_event)


def checkout_event(metadata=None, subscription="sub_1"):
    return {
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_test_1",
            "subscription": subscription,
            "metadata": metadata if metadata is not None else {
                "user_id": "user-1",
                "plan_type": "feedback",
                "billing_period": "quarterly",
            },
        }},
    }


@pytest.mark.asyncio
async def test_checkout_creates_customer_once_and_passes_metadata(stripe_service, stripe_calls, fake_supabase):
    url = await stripe_service.create_checkout_session(USER, PlanType.STANDARD, BillingPeriod.MONTHLY)
    await stripe_service.create_checkout_session(USER, PlanType.STANDARD, BillingPeriod.MONTHLY)

    assert url == "https://checkout.stripe.com/c/cs_test_1"
    assert len(stripe_calls["customers"]) == 1
    assert stripe_calls["customers"][0]["metadata"] == {"user_id": "user-1"}
    assert fake_supabase.tables["customer_info"][0]["stripe_customer_id"] == "cus_1"

    params = stripe_calls["sessions"][0]
    assert params["customer"] == "cus_1"
    assert params["mode"] == "subscription"
    assert params["line_items"] == [{"price": "price_standard_monthly", "quantity": 1}]
    assert params["metadata"] == {"user_id": "user-1", "plan_type": "standard", "billing_period": "monthly"}
    assert params["success_url"].startswith("http://localhost:5173/account?success=true")
    assert params["cancel_url"] == "http://localhost:5173/pricing?canceled=true"
    assert "discounts" not in params


@pytest.mark.asyncio
async def test_quarterly_checkout_applies_coupon_and_return_url(stripe_service, stripe_calls):
    stripe_service.quarterly_coupon = "quarterly_discount"

    await stripe_service.create_checkout_session(
        USER, PlanType.FEEDBACK, BillingPeriod.QUARTERLY, return_url="https://courses.example.com"
    )

    params = stripe_calls["sessions"][0]
    assert params["discounts"] == [{"coupon": "quarterly_discount"}]
    assert params["cancel_url"] == "https://courses.example.com/pricing?canceled=true"


@pytest.mark.asyncio
async def test_checkout_rejects_free_and_unconfigured_plans(stripe_service, stripe_calls, monkeypatch):
    with pytest.raises(HTTPException) as free_exc:
        await stripe_service.create_checkout_session(USER, PlanType.FREE, BillingPeriod.MONTHLY)
    assert free_exc.value.status_code == 400

    monkeypatch.delenv("STRIPE_PRICE_FEEDBACK_MONTHLY")
    with pytest.raises(HTTPException) as exc:
        await stripe_service.create_checkout_session(USER, PlanType.FEEDBACK, BillingPeriod.MONTHLY)
    assert exc.value.detail == "Plan not configured"
    assert stripe_calls["sessions"] == []


@pytest.mark.asyncio
async def test_stripe_errors_become_bad_gateway(stripe_service, stripe_calls, monkeypatch):
    def fail(**kwargs):
        raise stripe.StripeError("Rate limit exceeded")
    monkeypatch.setattr(stripe.checkout.Session, "create", fail)

    with pytest.raises(HTTPException) as exc:
        await stripe_service.create_checkout_session(USER, PlanType.STANDARD, BillingPeriod.MONTHLY)

    assert exc.value.status_code == 502
    assert "Rate limit exceeded" in exc.value.detail


@pytest.mark.asyncio
async def test_portal_requires_customer(stripe_service, stripe_calls):
    with pytest.raises(HTTPException) as exc:
        await stripe_service.create_portal_session("user-1")
    assert exc.value.status_code == 404

    stripe_service.subscriptions.save_customer_id("user-1", "cus_9")
    url = await stripe_service.create_portal_session("user-1")

    assert url == "https://billing.stripe.com/p/session_1"
    assert stripe_calls["portals"][0] == {"customer": "cus_9", "return_url": "http://localhost:5173/account"}


@pytest.mark.asyncio
async def test_webhook_with_bad_signature_is_rejected(stripe_service, monkeypatch):
    def construct_event(payload, signature, secret):
        raise stripe.SignatureVerificationError("No signatures found", signature)
    monkeypatch.setattr(stripe.Webhook, "construct_event", construct_event)

    with pytest.raises(HTTPException) as exc:
        await stripe_service.handle_webhook(b"{}", "t=1,v1=bad")

    assert exc.value.status_code == 400
    assert exc.value.detail == "Invalid signature"


@pytest.mark.asyncio
async def test_checkout_completed_records_subscription(stripe_service, stripe_calls, monkeypatch):
    deliver(monkeypatch, checkout_event())

    result = await stripe_service.handle_webhook(b"{}", "sig")

    assert result == {"received": True, "event_type": "checkout.session.completed"}
    assert stripe_calls["retrieve"] == ["sub_1"]
    subscription = await stripe_service.get_subscription("user-1")
    assert subscription.plan_type == PlanType.FEEDBACK
    assert subscription.billing_period == BillingPeriod.QUARTERLY
    assert subscription.status == SubscriptionStatus.ACTIVE


@pytest.mark.asyncio
async def test_checkout_completed_without_metadata_is_rejected(stripe_service, stripe_calls, monkeypatch):
    deliver(monkeypatch, checkout_event(metadata={"user_id": "user-1"}))

    with pytest.raises(HTTPException) as exc:
        await stripe_service.handle_webhook(b"{}", "sig")

    assert exc.value.status_code == 400
    assert stripe_calls["retrieve"] == []


@pytest.mark.asyncio
async def test_subscription_lifecycle_events(stripe_service, stripe_calls, monkeypatch):
    deliver(monkeypatch, checkout_event())
    await stripe_service.handle_webhook(b"{}", "sig")

    stripe_calls["subscriptions"]["sub_1"] = stripe_subscription("sub_1", status="past_due")
    deliver(monkeypatch, {"type": "invoice.payment_failed", "data": {"object": {"id": "in_1", "subscription": "sub_1"}}})
    await stripe_service.handle_webhook(b"{}", "sig")
    assert (await stripe_service.get_subscription("user-1")).status == SubscriptionStatus.PAST_DUE

    stripe_calls["subscriptions"]["sub_1"] = stripe_subscription("sub_1", status="active")
    deliver(monkeypatch, {"type": "invoice.payment_succeeded", "data": {"object": {"id": "in_2", "subscription": "sub_1"}}})
    await stripe_service.handle_webhook(b"{}", "sig")
    assert (await stripe_service.get_subscription("user-1")).status == SubscriptionStatus.ACTIVE

    deliver(monkeypatch, {"type": "customer.subscription.deleted", "data": {"object": stripe_subscription("sub_1", status="canceled")}})
    await stripe_service.handle_webhook(b"{}", "sig")
    final = await stripe_service.get_subscription("user-1")
    assert final.status == SubscriptionStatus.CANCELED
    assert final.cancel_at_period_end is True


@pytest.mark.asyncio
async def test_late_paid_invoice_keeps_deleted_subscription_canceled(stripe_service, stripe_calls, monkeypatch):
    deliver(monkeypatch, checkout_event())
    await stripe_service.handle_webhook(b"{}", "sig")
    deliver(monkeypatch, {"type": "customer.subscription.deleted", "data": {"object": stripe_subscription("sub_1", status="canceled")}})
    await stripe_service.handle_webhook(b"{}", "sig")

    stripe_calls["subscriptions"]["sub_1"] = stripe_subscription("sub_1", status="canceled", cancel_at_period_end=True)
    deliver(monkeypatch, {"type": "invoice.payment_succeeded", "data": {"object": {"id": "in_3", "subscription": "sub_1"}}})
    await stripe_service.handle_webhook(b"{}", "sig")

    subscription = await stripe_service.get_subscription("user-1")
    assert subscription.status == SubscriptionStatus.CANCELED


@pytest.mark.asyncio
async def test_redelivered_checkout_event_keeps_one_row(stripe_service, stripe_calls, monkeypatch, fake_supabase):
    deliver(monkeypatch, checkout_event())

    await stripe_service.handle_webhook(b"{}", "sig")
    await stripe_service.handle_webhook(b"{}", "sig")

    rows = [row for row in fake_supabase.tables["subscriptions"] if row["stripe_subscription_id"] == "sub_1"]
    assert len(rows) == 1
    assert rows[0]["status"] == "active"


@pytest.mark.asyncio
async def test_webhook_without_configured_secret_is_rejected(stripe_service, monkeypatch):
    def construct_event(payload, signature, secret):
        raise AssertionError("signature check must not run without a secret")
    monkeypatch.setattr(stripe.Webhook, "construct_event", construct_event)
    stripe_service.webhook_secret = None

    with pytest.raises(HTTPException) as exc:
        await stripe_service.handle_webhook(b"{}", "t=1,v1=abc")

    assert exc.value.status_code == 400
    assert exc.value.detail == "Invalid signature"


@pytest.mark.asyncio
async def test_unhandled_events_are_acknowledged(stripe_service, monkeypatch):
    deliver(monkeypatch, {"type": "customer.created", "data": {"object": {"id": "cus_1"}}})

    result = await stripe_service.handle_webhook(json.dumps({}).encode(), "sig")

    assert result["received"] is True


@pytest.mark.asyncio
async def test_invoice_without_subscription_is_ignored(stripe_service, stripe_calls, monkeypatch):
    deliver(monkeypatch, {"type": "invoice.payment_failed", "data": {"object": {"id": "in_1"}}})

    await stripe_service.handle_webhook(b"{}", "sig")

    assert stripe_calls["retrieve"] == []


def test_invoice_subscription_id_from_parent_details():
    invoice = {"id": "in_1", "parent": {"subscription_details": {"subscription": "sub_7"}}}
    assert _invoice_subscription_id(invoice) == "sub_7"
    assert _invoice_subscription_id({"subscription": "sub_8"}) == "sub_8"


@pytest.mark.asyncio
async def test_cancel_sets_cancel_at_period_end(stripe_service, stripe_calls, monkeypatch):
    with pytest.raises(HTTPException) as exc:
        await stripe_service.cancel_subscription("user-1")
    assert exc.value.status_code == 404

    deliver(monkeypatch, checkout_event())
    await stripe_service.handle_webhook(b"{}", "sig")

    subscription = await stripe_service.cancel_subscription("user-1")

    assert stripe_calls["modify"] == [("sub_1", {"cancel_at_period_end": True})]
    assert subscription.cancel_at_period_end is True
    # Stripe keeps the subscription active until the period ends
    assert subscription.status == SubscriptionStatus.ACTIVE
