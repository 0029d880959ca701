# sunnah_audio/schemas/subscription.py
"""
Pydantic schemas for subscription endpoints.
Money is Decimal in the models and a string in JSON output.
"""
import datetime as dt
from decimal import Decimal
from typing import Annotated, Any, Optional, List

from pydantic import BaseModel, Field, PlainSerializer

__all__ = [
    "Money",
    "SubscribeIn",
    "VerifyIn",
    "PlanOut",
    "PlanSummaryOut",
    "SubscriptionOut",
    "StatusOut",
]

# Two decimal places as a string in JSON, e.g. "1000.00"
Money = Annotated[Decimal, PlainSerializer(lambda v: f"{v:.2f}", return_type=str, when_used="json")]


class SubscribeIn(BaseModel):
    """
    Purchase intent: the user claims an out-of-band payment.
    Currency defaults to CFA when omitted.
    """
    subscription_plan_id: int
    payment_method: str = Field(min_length=1, max_length=64)
    transaction_reference: str = Field(min_length=1, max_length=255)
    payment_amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    payment_currency: Optional[str] = Field(default=None, min_length=1, max_length=8)


class VerifyIn(BaseModel):
    status: str  # "active" or "cancelled"; anything else is rejected by the service
    notes: Optional[str] = None


class PlanOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    duration_type: str
    duration_months: int
    price: Money
    currency: str
    features: Optional[Any] = None
    is_active: bool
    sort_order: int

    @classmethod
    def from_model(cls, plan) -> "PlanOut":
        return cls(
            id=plan.id,
            name=plan.name,
            description=plan.description,
            duration_type=plan.duration_type,
            duration_months=plan.duration_months,
            price=plan.price,
            currency=plan.currency,
            features=plan.features,
            is_active=plan.is_active,
            sort_order=plan.sort_order,
        )


class PlanSummaryOut(BaseModel):
    id: int
    name: str
    duration_type: str
    duration_months: int
    price: Money
    currency: str

    @classmethod
    def from_model(cls, plan) -> "PlanSummaryOut":
        return cls(
            id=plan.id,
            name=plan.name,
            duration_type=plan.duration_type,
            duration_months=plan.duration_months,
            price=plan.price,
            currency=plan.currency,
        )


class SubscriptionOut(BaseModel):
    id: int
    user_id: int
    subscription_plan_id: int
    status: str
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    payment_method: Optional[str] = None
    transaction_reference: Optional[str] = None
    payment_amount: Money
    payment_currency: str
    payment_date: Optional[dt.datetime] = None
    notes: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime
    plan: Optional[PlanSummaryOut] = None

    @classmethod
    def from_model(cls, sub, with_plan: bool = False) -> "SubscriptionOut":
        return cls(
            id=sub.id,
            user_id=sub.user_id,
            subscription_plan_id=sub.plan_id,
            status=sub.status.value,
            start_date=sub.start_date,
            end_date=sub.end_date,
            payment_method=sub.payment_method,
            transaction_reference=sub.transaction_reference,
            payment_amount=sub.payment_amount,
            payment_currency=sub.payment_currency,
            payment_date=sub.payment_date,
            notes=sub.notes,
            created_at=sub.created_at,
            updated_at=sub.updated_at,
            plan=PlanSummaryOut.from_model(sub.plan) if with_plan else None,
        )


class StatusOut(BaseModel):
    has_active_subscription: bool
    current_subscription: Optional[SubscriptionOut] = None
    subscription_expires_at: Optional[dt.date] = None
    days_remaining: Optional[int] = None

    @classmethod
    def from_status(cls, status: dict) -> "StatusOut":
        current = status["current"]
        return cls(
            has_active_subscription=status["has_active"],
            current_subscription=SubscriptionOut.from_model(current, with_plan=True) if current else None,
            subscription_expires_at=status["expires_at"],
            days_remaining=status["days_remaining"],
        )
