# sunnah_audio/core/container.py
"""
Long-lived collaborators shared by every request handler.

Built once by `create_app` and stored on `app.state.services`; handlers reach
it through the `get_services` dependency instead of module globals.
"""
from dataclasses import dataclass

from redis import asyncio as aioredis

from sunnah_audio.config import Settings
from sunnah_audio.core.jobs import SubscriptionExpirySweeper
from sunnah_audio.core.mailer import Mailer
from sunnah_audio.core.otp_store import OtpStore
from sunnah_audio.core.security import TokenService


@dataclass
class Services:
    settings: Settings
    tokens: TokenService
    otp_store: OtpStore
    mailer: Mailer
    redis: aioredis.Redis
    sweeper: SubscriptionExpirySweeper

    @classmethod
    def from_settings(cls, settings: Settings) -> "Services":
        redis = aioredis.from_url(settings.redis_url, decode_responses=True)
        return cls(
            settings=settings,
            tokens=TokenService(settings.jwt_secret, settings.access_token_expire_minutes),
            otp_store=OtpStore(redis),
            mailer=Mailer(settings),
            redis=redis,
            sweeper=SubscriptionExpirySweeper(settings.subscription_sweep_interval_seconds),
        )

    async def aclose(self) -> None:
        await self.sweeper.stop()
        await self.redis.aclose()
