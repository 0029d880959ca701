# sunnah_audio/api/v1/routers/subscriptions.py
from fastapi import APIRouter, Depends, status

from sunnah_audio.api.v1.deps import get_identity, require_admin
from sunnah_audio.core.responses import success
from sunnah_audio.core.security import Identity
from sunnah_audio.schemas.subscription import (
    PlanOut,
    StatusOut,
    SubscribeIn,
    SubscriptionOut,
    VerifyIn,
)
from sunnah_audio.services import subscriptions

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _sub(sub, with_plan: bool = False) -> dict:
    return SubscriptionOut.from_model(sub, with_plan=with_plan).model_dump(mode="json")


@router.get("/plans")
async def list_plans():
    plans = await subscriptions.list_active_plans()
    return success([PlanOut.from_model(p).model_dump(mode="json") for p in plans],
                   "Subscription plans retrieved successfully")


@router.post("/subscribe", status_code=status.HTTP_201_CREATED)
async def subscribe(body: SubscribeIn, identity: Identity = Depends(get_identity)):
    """
    Record a purchase intent. The subscription stays pending until an admin
    verifies the payment; a second intent while one is pending is a 409.
    """
    sub = await subscriptions.create_intent(
        user_id=identity.user_id,
        plan_id=body.subscription_plan_id,
        payment_method=body.payment_method,
        transaction_reference=body.transaction_reference,
        payment_amount=body.payment_amount,
        payment_currency=body.payment_currency,
    )
    return success(_sub(sub), "Subscription created successfully. Awaiting payment verification.")


@router.get("/status")
async def subscription_status(identity: Identity = Depends(get_identity)):
    data = StatusOut.from_status(await subscriptions.get_status(identity.user_id))
    return success(data.model_dump(mode="json"), "Subscription status retrieved successfully")


@router.get("/my-subscriptions")
async def my_subscriptions(identity: Identity = Depends(get_identity)):
    subs = await subscriptions.list_user_subscriptions(identity.user_id)
    return success([_sub(s, with_plan=True) for s in subs], "Subscriptions retrieved successfully")


@router.get("/active")
async def active_subscription(identity: Identity = Depends(get_identity)):
    sub = await subscriptions.get_active_subscription(identity.user_id)
    return success(_sub(sub, with_plan=True) if sub else None, "Active subscription retrieved successfully")


@router.get("/admin/pending")
async def pending_subscriptions(_: Identity = Depends(require_admin)):
    subs = await subscriptions.list_pending()
    return success([_sub(s, with_plan=True) for s in subs], "Pending subscriptions retrieved successfully")


@router.put("/admin/verify/{subscription_id}")
async def verify_subscription(
    subscription_id: int,
    body: VerifyIn,
    admin: Identity = Depends(require_admin),
):
    sub = await subscriptions.verify(subscription_id, body.status, body.notes)
    return success(_sub(sub, with_plan=True), f"Subscription {sub.status.value} successfully")


@router.post("/admin/expire-now")
async def expire_now(_: Identity = Depends(require_admin)):
    expired = await subscriptions.sweep_expired()
    return success({"expired": expired}, f"Expired {expired} subscription(s)")
