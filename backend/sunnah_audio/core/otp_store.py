# sunnah_audio/core/otp_store.py
"""
One-time password reset codes kept in Redis.

One record per email under `password_reset_otp:<email>`, expiring after ten
minutes. A new record for the same email replaces the old one. `take`
compares and deletes inside a WATCH/MULTI transaction, so at most one caller
can ever get ACCEPTED for a given record.
"""
import enum
import hmac
import json
import logging
import secrets
import time

from redis import asyncio as aioredis
from redis.exceptions import RedisError, WatchError

from sunnah_audio.core.errors import InternalFailure

logger = logging.getLogger(__name__)

OTP_KEY_PREFIX = "password_reset_otp"
OTP_TTL_SECONDS = 10 * 60


class OtpOutcome(str, enum.Enum):
    ACCEPTED = "accepted"
    MISMATCH = "mismatch"
    EXPIRED_OR_ABSENT = "expired_or_absent"


def generate_otp() -> str:
    """Six decimal digits, never starting with 0."""
    return str(100000 + secrets.randbelow(900000))


def otp_key(email: str) -> str:
    return f"{OTP_KEY_PREFIX}:{email}"


class OtpStore:
    def __init__(self, redis: aioredis.Redis, ttl_seconds: int = OTP_TTL_SECONDS):
        self._redis = redis
        self.ttl_seconds = ttl_seconds

    async def put(self, email: str, code: str, ttl_seconds: int | None = None) -> None:
        ttl = ttl_seconds or self.ttl_seconds
        record = json.dumps({"email": email, "otp": code, "created_at": int(time.time())})
        try:
            # SET with EX replaces value and TTL in one command
            await self._redis.set(otp_key(email), record, ex=ttl)
        except RedisError as e:
            raise InternalFailure("Failed to store OTP") from e

    async def take(self, email: str, presented: str) -> OtpOutcome:
        key = otp_key(email)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                raw = await pipe.get(key)
                if raw is None:
                    await pipe.unwatch()
                    return OtpOutcome.EXPIRED_OR_ABSENT

                record = _decode(raw)
                if record is None or self._is_stale(record):
                    pipe.multi()
                    pipe.delete(key)
                    await pipe.execute()
                    return OtpOutcome.EXPIRED_OR_ABSENT

                if not hmac.compare_digest(str(record.get("otp", "")), presented or ""):
                    await pipe.unwatch()
                    return OtpOutcome.MISMATCH

                pipe.multi()
                pipe.delete(key)
                deleted, = await pipe.execute()
        except WatchError:
            # someone else consumed or replaced the record between GET and DEL
            return OtpOutcome.EXPIRED_OR_ABSENT
        except RedisError as e:
            raise InternalFailure("Failed to read OTP") from e

        return OtpOutcome.ACCEPTED if deleted else OtpOutcome.EXPIRED_OR_ABSENT

    def _is_stale(self, record: dict) -> bool:
        created_at = record.get("created_at")
        if not isinstance(created_at, int):
            return True
        return time.time() - created_at > self.ttl_seconds


def _decode(raw) -> dict | None:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning("Discarding unreadable OTP record")
        return None
    return value if isinstance(value, dict) else None
