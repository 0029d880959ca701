import os
import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from fakeredis import aioredis as fake_aioredis
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

os.environ.setdefault("SUNNAH_AUDIO_ENV", "local")

from sunnah_audio.config import Settings
from sunnah_audio.core import db as db_module
from sunnah_audio.core.container import Services
from sunnah_audio.core.jobs import SubscriptionExpirySweeper
from sunnah_audio.core.otp_store import OtpStore
from sunnah_audio.core.security import TokenService, hash_password
from sunnah_audio.main import create_app
from sunnah_audio.models import (
    AudioFile,
    Book,
    Role,
    Scholar,
    SubscriptionPlan,
    User,
)


TEST_DB_URL = "sqlite://:memory:?cache=shared"


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.build_tortoise_config(TEST_DB_URL, with_aerich=False))
    await Tortoise.generate_schemas()


class RecordingMailer:
    """Stands in for the SMTP mailer; keeps what would have been sent."""

    def __init__(self):
        self.otps: list[tuple[str, str]] = []
        self.confirmations: list[str] = []
        self.fail_otp = False
        self.fail_confirmation = False

    async def send_otp(self, email: str, code: str) -> None:
        from sunnah_audio.core.errors import UpstreamFailure

        if self.fail_otp:
            raise UpstreamFailure("Failed to send email")
        self.otps.append((email, code))

    async def send_reset_confirmation(self, email: str) -> None:
        from sunnah_audio.core.errors import UpstreamFailure

        if self.fail_confirmation:
            raise UpstreamFailure("Failed to send email")
        self.confirmations.append(email)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="local",
        database_url=TEST_DB_URL,
        jwt_secret="test-secret",
        email_transport="dummy",
        uploads_dir=str(tmp_path / "uploads"),
        images_dir=str(tmp_path / "images"),
        max_upload_bytes=1024 * 1024,
        enable_subscription_sweeper=False,
    )


@pytest_asyncio.fixture
async def fake_redis():
    redis = fake_aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.flushall()
    await redis.aclose()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def services(settings, fake_redis, mailer) -> Services:
    return Services(
        settings=settings,
        tokens=TokenService(settings.jwt_secret, settings.access_token_expire_minutes),
        otp_store=OtpStore(fake_redis),
        mailer=mailer,
        redis=fake_redis,
        sweeper=SubscriptionExpirySweeper(settings.subscription_sweep_interval_seconds),
    )


@pytest_asyncio.fixture
async def db():
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client(db, settings, services):
    """
    Provide an HTTPX AsyncClient bound to a fresh app with a fresh DB.
    """
    app = create_app(settings=settings, services=services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


@pytest_asyncio.fixture
async def create_admin(db):
    """
    Factory fixture to create admin users directly via ORM for privileged endpoints.
    """

    async def _create_admin(password: str = "AdminPass!23") -> tuple[User, str]:
        user = await User.create(
            name="Admin",
            email=f"admin_{uuid.uuid4().hex[:6]}@example.com",
            password_hash=hash_password(password),
            role=Role.ADMIN,
        )
        return user, password

    return _create_admin


@pytest_asyncio.fixture
async def create_user(db):
    """
    Factory fixture to create users directly.
    """

    async def _create_user(
        password: str = "UserPass!23",
        role: Role = Role.USER,
        email: str | None = None,
        user_id: int | None = None,
    ) -> tuple[User, str]:
        extra = {"id": user_id} if user_id is not None else {}
        user = await User.create(
            name="User",
            email=email or f"{uuid.uuid4().hex[:6]}@example.com",
            password_hash=hash_password(password),
            role=role,
            **extra,
        )
        return user, password

    return _create_user


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the login endpoint.
    """

    async def _get_headers(email: str, password: str) -> dict[str, str]:
        resp = await client.post(
            "/api/v1/auth/login",
            json={"email": email, "password": password},
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["token"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers


@pytest_asyncio.fixture
async def catalog(db):
    """Two scholars (7 and 9), a book under each, and plan 3 (one month)."""
    s7 = await Scholar.create(id=7, name="Scholar Seven")
    s9 = await Scholar.create(id=9, name="Scholar Nine")
    b7 = await Book.create(scholar=s7, name="Kitab at-Tawhid")
    b9 = await Book.create(scholar=s9, name="Al-Arba'in")
    plan = await SubscriptionPlan.create(
        id=3,
        name="Monthly",
        duration_type="monthly",
        duration_months=1,
        price=Decimal("1000.00"),
        sort_order=1,
    )
    return {"scholar7": s7, "scholar9": s9, "book7": b7, "book9": b9, "plan": plan}


@pytest_asyncio.fixture
async def audio_file(catalog, settings):
    """File 100 under scholar 7, present on disk."""
    uploads = settings.uploads_dir
    os.makedirs(uploads, exist_ok=True)
    payload = b"ID3" + b"\x00" * 2045
    with open(os.path.join(uploads, "lecture_ab12c.mp3"), "wb") as fh:
        fh.write(payload)
    return await AudioFile.create(
        id=100,
        name="lecture.mp3",
        location="lecture_ab12c.mp3",
        size=len(payload),
        content_type="audio/mpeg",
        book=catalog["book7"],
        scholar=catalog["scholar7"],
    )
