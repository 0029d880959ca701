# sunnah_audio/services/subscriptions.py
"""
Subscription lifecycle: plan catalog, purchase intents, admin verification,
status lookup and the expiry sweep.

Dates are calendar dates in UTC. A verified subscription runs for
`duration_months * 30` days from the day it was verified.
"""
import datetime as dt
from decimal import Decimal

from tortoise.exceptions import IntegrityError
from tortoise.expressions import Q
from tortoise.transactions import in_transaction

from sunnah_audio.core.errors import NotFound, ValidationFailed, Conflict
from sunnah_audio.models.subscription import (
    DEFAULT_CURRENCY,
    SubscriptionPlan,
    SubscriptionStatus,
    UserSubscription,
)

DAYS_PER_MONTH = 30

PENDING_EXISTS_MESSAGE = "You already have a pending subscription. Please wait for verification."
ACTIVE_EXISTS_MESSAGE = "You already have an active subscription."


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def utc_today() -> dt.date:
    return utc_now().date()


def subscription_end_date(start: dt.date, duration_months: int) -> dt.date:
    return start + dt.timedelta(days=duration_months * DAYS_PER_MONTH)


async def list_active_plans() -> list[SubscriptionPlan]:
    return await SubscriptionPlan.filter(is_active=True).order_by("sort_order", "price", "id")


async def create_intent(
    user_id: int,
    plan_id: int,
    payment_method: str,
    transaction_reference: str,
    payment_amount: Decimal,
    payment_currency: str | None = None,
) -> UserSubscription:
    """
    Record a user's claim of an out-of-band payment as a pending subscription.

    Raises ValidationFailed for an unknown or inactive plan and Conflict when
    the user already has a pending or a current active subscription. The
    unique `pending_guard` column catches the race where two requests pass
    the pending check together.
    """
    plan = await SubscriptionPlan.get_or_none(id=plan_id, is_active=True)
    if plan is None:
        raise ValidationFailed("Invalid subscription plan ID")

    if await UserSubscription.filter(user_id=user_id, status=SubscriptionStatus.PENDING).exists():
        raise Conflict(PENDING_EXISTS_MESSAGE)
    if await get_active_subscription(user_id) is not None:
        raise Conflict(ACTIVE_EXISTS_MESSAGE)

    try:
        return await UserSubscription.create(
            user_id=user_id,
            plan=plan,
            status=SubscriptionStatus.PENDING,
            payment_method=payment_method,
            transaction_reference=transaction_reference,
            payment_amount=payment_amount,
            payment_currency=payment_currency or DEFAULT_CURRENCY,
            payment_date=utc_now(),
            pending_guard=user_id,
        )
    except IntegrityError as e:
        raise Conflict(PENDING_EXISTS_MESSAGE) from e


async def get_active_subscription(user_id: int) -> UserSubscription | None:
    """
    The user's current subscription: status active and end date unset or not
    yet passed. Newest first; ties on created_at go to the higher id.
    """
    return await (
        UserSubscription.filter(user_id=user_id, status=SubscriptionStatus.ACTIVE)
        .filter(Q(end_date__isnull=True) | Q(end_date__gte=utc_today()))
        .order_by("-created_at", "-id")
        .select_related("plan")
        .first()
    )


async def get_status(user_id: int) -> dict:
    current = await get_active_subscription(user_id)
    if current is None:
        return {"has_active": False, "current": None, "expires_at": None, "days_remaining": None}

    days_remaining = None
    if current.end_date is not None:
        days_remaining = (current.end_date - utc_today()).days
    return {
        "has_active": True,
        "current": current,
        "expires_at": current.end_date,
        "days_remaining": days_remaining,
    }


async def list_user_subscriptions(user_id: int) -> list[UserSubscription]:
    return await UserSubscription.filter(user_id=user_id).order_by("-created_at", "-id").select_related("plan")


async def list_pending() -> list[UserSubscription]:
    return await (
        UserSubscription.filter(status=SubscriptionStatus.PENDING)
        .order_by("-created_at", "-id")
        .select_related("plan")
    )


async def verify(subscription_id: int, decision: str, notes: str | None = None) -> UserSubscription:
    """
    Admin decision on a subscription.

    active:    pending -> active, start = today, end = today + months * 30 days
    cancelled: pending|active -> cancelled, dates untouched

    Each branch is a single UPDATE conditioned on the current status, so two
    admins acting at once cannot both apply. Activation runs in a transaction
    that first expires the user's lapsed active rows and then raises Conflict
    if another active row remains. `notes` is always written, so None clears it.
    """
    try:
        target = SubscriptionStatus(decision)
    except ValueError:
        target = None
    if target not in (SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED):
        raise ValidationFailed("Invalid status. Must be 'active' or 'cancelled'.")

    subscription = await UserSubscription.get_or_none(id=subscription_id)
    if subscription is None:
        raise NotFound("Subscription not found")

    changes = {"status": target, "pending_guard": None, "notes": notes, "updated_at": utc_now()}

    if target == SubscriptionStatus.ACTIVE:
        plan = await SubscriptionPlan.get_or_none(id=subscription.plan_id)
        if plan is None:
            raise NotFound("Subscription plan not found")
        start = utc_today()
        changes["start_date"] = start
        changes["end_date"] = subscription_end_date(start, plan.duration_months)
        allowed_from = [SubscriptionStatus.PENDING]
    else:
        allowed_from = [SubscriptionStatus.PENDING, SubscriptionStatus.ACTIVE]

    async with in_transaction():
        if target == SubscriptionStatus.ACTIVE:
            await _expire_lapsed(subscription.user_id)
            other_active = UserSubscription.filter(
                user_id=subscription.user_id, status=SubscriptionStatus.ACTIVE
            ).exclude(id=subscription_id)
            if await other_active.exists():
                raise Conflict("User already has an active subscription")
        updated = await UserSubscription.filter(id=subscription_id, status__in=allowed_from).update(**changes)
    if not updated:
        current = await UserSubscription.get(id=subscription_id)
        raise ValidationFailed(
            f"Subscription is {current.status.value} and cannot be set to {target.value}"
        )
    return await UserSubscription.get(id=subscription_id).select_related("plan")


async def sweep_expired() -> int:
    """
    Move every active subscription whose end date has passed to expired.
    Idempotent; returns the number of rows changed.
    """
    return await _lapsed().update(status=SubscriptionStatus.EXPIRED, updated_at=utc_now())


def _lapsed():
    return UserSubscription.filter(
        status=SubscriptionStatus.ACTIVE,
        end_date__isnull=False,
        end_date__lt=utc_today(),
    )


async def _expire_lapsed(user_id: int) -> int:
    return await _lapsed().filter(user_id=user_id).update(
        status=SubscriptionStatus.EXPIRED, updated_at=utc_now()
    )
