import jwt
import pytest

from sunnah_audio.core.otp_store import otp_key
from sunnah_audio.models import User, UserStatus
from sunnah_audio.services import accounts


pytestmark = pytest.mark.asyncio

AISHA = {"name": "Aisha", "email": "aisha@example.org", "password": "p@ss123"}


async def register_user(client, payload=None):
    return await client.post("/api/v1/auth/register", json=payload or AISHA)


async def login_user(client, email: str, password: str):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


async def test_register_and_login_flow(client):
    resp = await register_user(client)
    body = resp.json()
    assert resp.status_code == 201
    assert body["success"] is True
    assert body["data"]["email"] == "aisha@example.org"
    assert body["data"]["role"] == "user"
    assert "password" not in str(body["data"])
    user_id = body["data"]["id"]

    login_resp = await login_user(client, "aisha@example.org", "p@ss123")
    login_body = login_resp.json()
    assert login_resp.status_code == 200
    token = login_body["data"]["token"]
    claims = jwt.decode(token, options={"verify_signature": False})
    assert claims["sub"] == str(user_id)
    assert claims["email"] == "aisha@example.org"
    assert login_body["data"]["expires_at"]
    assert login_body["data"]["subscription_status"]["has_active_subscription"] is False

    bad_login = await login_user(client, "aisha@example.org", "wrong")
    assert bad_login.status_code == 401
    assert bad_login.json() == {"success": False, "message": "Email or password is incorrect"}


async def test_register_normalises_email_and_ignores_role(client):
    resp = await register_user(client, {**AISHA, "email": "  Aisha@Example.ORG ", "role": "admin"})
    assert resp.status_code == 201
    assert resp.json()["data"]["email"] == "aisha@example.org"
    assert resp.json()["data"]["role"] == "user"


async def test_duplicate_email_conflicts(client):
    await register_user(client)
    dup = await register_user(client, {**AISHA, "email": "AISHA@example.org"})
    assert dup.status_code == 409
    assert dup.json()["success"] is False


@pytest.mark.parametrize(
    "payload",
    [
        {**AISHA, "password": "12345"},
        {**AISHA, "email": "not-an-email"},
        {"email": "aisha@example.org", "password": "p@ss123"},
    ],
)
async def test_register_validation_is_400(client, payload):
    resp = await register_user(client, payload)
    assert resp.status_code == 400
    assert resp.json()["success"] is False


async def test_unknown_email_login_is_401_and_checks_a_hash(client, monkeypatch):
    calls = []
    original = accounts.verify_password_async

    async def spy(plain, hashed):
        calls.append(hashed)
        return await original(plain, hashed)

    monkeypatch.setattr(accounts, "verify_password_async", spy)
    resp = await login_user(client, "nobody@example.org", "whatever")
    assert resp.status_code == 401
    assert len(calls) == 1


async def test_protected_routes_reject_bad_tokens(client):
    for headers in ({}, {"Authorization": "Token abc"}, {"Authorization": "Bearer not.a.jwt"}):
        resp = await client.get("/api/v1/auth/profile", headers=headers)
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "Invalid or missing authentication token"}


async def test_profile_read_and_update(client, auth_header_factory):
    await register_user(client)
    headers = await auth_header_factory("aisha@example.org", "p@ss123")

    resp = await client.get("/api/v1/auth/profile", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Aisha"

    resp = await client.put(
        "/api/v1/auth/profile", json={"phone": "+221700000000", "address": "Dakar"}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["phone"] == "+221700000000"
    assert resp.json()["data"]["name"] == "Aisha"


async def test_change_password(client, auth_header_factory):
    await register_user(client)
    headers = await auth_header_factory("aisha@example.org", "p@ss123")

    wrong = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "nope", "new_password": "N3w!pass"},
        headers=headers,
    )
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "The current password you provided is incorrect"

    short = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "p@ss123", "new_password": "abc"},
        headers=headers,
    )
    assert short.status_code == 400

    ok = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "p@ss123", "new_password": "N3w!pass"},
        headers=headers,
    )
    assert ok.status_code == 200
    assert (await login_user(client, "aisha@example.org", "p@ss123")).status_code == 401
    assert (await login_user(client, "aisha@example.org", "N3w!pass")).status_code == 200


async def test_forgot_and_reset_password(client, fake_redis, mailer, monkeypatch):
    await register_user(client)
    monkeypatch.setattr(accounts, "generate_otp", lambda: "482913")

    resp = await client.post("/api/v1/auth/forgot-password", json={"email": "aisha@example.org"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "If the email exists, an OTP has been sent to your email address"
    assert mailer.otps == [("aisha@example.org", "482913")]
    assert await fake_redis.get(otp_key("aisha@example.org")) is not None
    assert 0 < await fake_redis.ttl(otp_key("aisha@example.org")) <= 600

    reset = {"email": "aisha@example.org", "otp": "482913", "new_password": "N3w!pass"}
    first = await client.post("/api/v1/auth/reset-password", json=reset)
    assert first.status_code == 200
    assert mailer.confirmations == ["aisha@example.org"]

    second = await client.post("/api/v1/auth/reset-password", json=reset)
    assert second.status_code == 400
    assert second.json()["message"] == "Invalid or expired OTP. Please request a new one."

    assert (await login_user(client, "aisha@example.org", "p@ss123")).status_code == 401
    assert (await login_user(client, "aisha@example.org", "N3w!pass")).status_code == 200


async def test_forgot_password_for_unknown_email_looks_the_same(client, mailer):
    resp = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.org"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "If the email exists, an OTP has been sent to your email address"
    assert [email for email, _ in mailer.otps] == ["ghost@example.org"]


async def test_forgot_password_mailer_failure_is_502(client, mailer):
    mailer.fail_otp = True
    resp = await client.post("/api/v1/auth/forgot-password", json={"email": "aisha@example.org"})
    assert resp.status_code == 502


async def test_reset_with_wrong_code_is_generic_400(client, mailer, monkeypatch):
    await register_user(client)
    monkeypatch.setattr(accounts, "generate_otp", lambda: "482913")
    await client.post("/api/v1/auth/forgot-password", json={"email": "aisha@example.org"})

    resp = await client.post(
        "/api/v1/auth/reset-password",
        json={"email": "aisha@example.org", "otp": "111111", "new_password": "N3w!pass"},
    )
    assert resp.status_code == 400
    unknown = await client.post(
        "/api/v1/auth/reset-password",
        json={"email": "ghost@example.org", "otp": "482913", "new_password": "N3w!pass"},
    )
    assert unknown.status_code == 400
    assert unknown.json()["message"] == resp.json()["message"]


async def test_reset_survives_confirmation_mail_failure(client, mailer, monkeypatch):
    await register_user(client)
    monkeypatch.setattr(accounts, "generate_otp", lambda: "482913")
    await client.post("/api/v1/auth/forgot-password", json={"email": "aisha@example.org"})
    mailer.fail_confirmation = True

    resp = await client.post(
        "/api/v1/auth/reset-password",
        json={"email": "aisha@example.org", "otp": "482913", "new_password": "N3w!pass"},
    )
    assert resp.status_code == 200
    assert (await login_user(client, "aisha@example.org", "N3w!pass")).status_code == 200


async def test_deactivate_locks_account(client, auth_header_factory):
    await register_user(client)
    headers = await auth_header_factory("aisha@example.org", "p@ss123")

    resp = await client.delete("/api/v1/auth/deactivate", headers=headers)
    assert resp.status_code == 200
    user = await User.get(email="aisha@example.org")
    assert user.status is UserStatus.DISABLED

    # existing token stops working, and so does the password
    assert (await client.get("/api/v1/auth/profile", headers=headers)).status_code == 401
    assert (await login_user(client, "aisha@example.org", "p@ss123")).status_code == 401
