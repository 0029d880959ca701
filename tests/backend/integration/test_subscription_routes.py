import datetime as dt
from decimal import Decimal

import pytest

from sunnah_audio.models import SubscriptionPlan, SubscriptionStatus, UserSubscription
from sunnah_audio.services.subscriptions import utc_today


pytestmark = pytest.mark.asyncio

INTENT = {
    "subscription_plan_id": 3,
    "payment_method": "mobile_money",
    "transaction_reference": "TX-001",
    "payment_amount": 1000,
}


async def test_plans_are_public_and_money_is_a_string(client, catalog):
    await SubscriptionPlan.create(name="Hidden", duration_type="monthly", duration_months=1,
                                  price=Decimal("5"), is_active=False)
    resp = await client.get("/api/v1/subscriptions/plans")
    assert resp.status_code == 200
    plans = resp.json()["data"]
    assert [p["name"] for p in plans] == ["Monthly"]
    assert plans[0]["price"] == "1000.00"
    assert plans[0]["currency"] == "CFA"


async def test_subscribe_verify_scenario(client, catalog, create_admin, create_user, auth_header_factory):
    user, user_pw = await create_user(user_id=42)
    admin, admin_pw = await create_admin()
    user_headers = await auth_header_factory(user.email, user_pw)
    admin_headers = await auth_header_factory(admin.email, admin_pw)

    first = await client.post("/api/v1/subscriptions/subscribe", json=INTENT, headers=user_headers)
    assert first.status_code == 201
    sub = first.json()["data"]
    assert sub["status"] == "pending"
    assert sub["payment_currency"] == "CFA"
    assert sub["payment_amount"] == "1000.00"

    second = await client.post(
        "/api/v1/subscriptions/subscribe", json={**INTENT, "transaction_reference": "TX-002"}, headers=user_headers
    )
    assert second.status_code == 409
    assert second.json()["message"] == "You already have a pending subscription. Please wait for verification."

    pending = await client.get("/api/v1/subscriptions/admin/pending", headers=admin_headers)
    assert [s["id"] for s in pending.json()["data"]] == [sub["id"]]

    verified = await client.put(
        f"/api/v1/subscriptions/admin/verify/{sub['id']}", json={"status": "active"}, headers=admin_headers
    )
    assert verified.status_code == 200
    expected_end = (utc_today() + dt.timedelta(days=30)).isoformat()
    assert verified.json()["data"]["status"] == "active"
    assert verified.json()["data"]["end_date"] == expected_end

    status = await client.get("/api/v1/subscriptions/status", headers=user_headers)
    data = status.json()["data"]
    assert data["has_active_subscription"] is True
    assert data["subscription_expires_at"] == expected_end
    assert data["days_remaining"] == 30
    assert data["current_subscription"]["plan"]["name"] == "Monthly"

    active = await client.get("/api/v1/subscriptions/active", headers=user_headers)
    assert active.json()["data"]["id"] == sub["id"]


async def test_admin_endpoints_are_admin_only(client, catalog, create_user, auth_header_factory):
    user, pw = await create_user()
    headers = await auth_header_factory(user.email, pw)
    assert (await client.get("/api/v1/subscriptions/admin/pending", headers=headers)).status_code == 403
    assert (await client.put(
        "/api/v1/subscriptions/admin/verify/1", json={"status": "active"}, headers=headers
    )).status_code == 403
    assert (await client.post("/api/v1/subscriptions/admin/expire-now", headers=headers)).status_code == 403


async def test_subscribe_requires_token(client, catalog):
    resp = await client.post("/api/v1/subscriptions/subscribe", json=INTENT)
    assert resp.status_code == 401


async def test_subscribe_to_unknown_plan_is_400(client, catalog, create_user, auth_header_factory):
    user, pw = await create_user()
    resp = await client.post(
        "/api/v1/subscriptions/subscribe",
        json={**INTENT, "subscription_plan_id": 77},
        headers=await auth_header_factory(user.email, pw),
    )
    assert resp.status_code == 400


async def test_verify_rejects_bad_decision(client, catalog, create_admin, create_user, auth_header_factory):
    user, user_pw = await create_user()
    admin, admin_pw = await create_admin()
    sub = (await client.post(
        "/api/v1/subscriptions/subscribe", json=INTENT, headers=await auth_header_factory(user.email, user_pw)
    )).json()["data"]
    admin_headers = await auth_header_factory(admin.email, admin_pw)

    bad = await client.put(
        f"/api/v1/subscriptions/admin/verify/{sub['id']}", json={"status": "expired"}, headers=admin_headers
    )
    assert bad.status_code == 400
    assert bad.json()["message"] == "Invalid status. Must be 'active' or 'cancelled'."

    missing = await client.put(
        "/api/v1/subscriptions/admin/verify/9999", json={"status": "active"}, headers=admin_headers
    )
    assert missing.status_code == 404


async def test_expire_now_scenario(client, catalog, create_admin, create_user, auth_header_factory):
    user, user_pw = await create_user()
    admin, admin_pw = await create_admin()
    yesterday = utc_today() - dt.timedelta(days=1)
    sub = await UserSubscription.create(
        user=user, plan=catalog["plan"], status=SubscriptionStatus.ACTIVE,
        start_date=yesterday - dt.timedelta(days=30), end_date=yesterday,
        payment_amount=Decimal("1000"),
    )

    resp = await client.post(
        "/api/v1/subscriptions/admin/expire-now", headers=await auth_header_factory(admin.email, admin_pw)
    )
    assert resp.status_code == 200
    assert resp.json()["data"] == {"expired": 1}
    assert (await UserSubscription.get(id=sub.id)).status is SubscriptionStatus.EXPIRED

    user_headers = await auth_header_factory(user.email, user_pw)
    status = await client.get("/api/v1/subscriptions/status", headers=user_headers)
    assert status.json()["data"]["has_active_subscription"] is False

    history = await client.get("/api/v1/subscriptions/my-subscriptions", headers=user_headers)
    assert [s["status"] for s in history.json()["data"]] == ["expired"]
