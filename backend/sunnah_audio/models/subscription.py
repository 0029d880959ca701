# sunnah_audio/models/subscription.py
"""
Subscription plans and the subscriptions users buy against them.

Lifecycle of a UserSubscription:
    pending -> active | cancelled      (admin verification)
    active  -> expired                 (hourly sweep, end_date < today)
    active  -> cancelled               (admin)
expired and cancelled are terminal.
"""
from enum import Enum

from tortoise import fields, models

DEFAULT_CURRENCY = "CFA"


class SubscriptionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class SubscriptionPlan(models.Model):
    id = fields.IntField(pk=True)
    name = fields.CharField(max_length=128)
    description = fields.TextField(null=True)
    duration_type = fields.CharField(max_length=32, default="monthly")  # monthly, quarterly, bi_annually, yearly
    duration_months = fields.IntField()
    price = fields.DecimalField(max_digits=12, decimal_places=2)
    currency = fields.CharField(max_length=8, default=DEFAULT_CURRENCY)
    features = fields.JSONField(null=True)
    is_active = fields.BooleanField(default=True)
    sort_order = fields.IntField(default=0)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "subscription_plans"


class UserSubscription(models.Model):
    id = fields.IntField(pk=True)
    user = fields.ForeignKeyField("models.User", related_name="subscriptions", on_delete=fields.CASCADE)
    # RESTRICT: a plan referenced by any subscription cannot be deleted
    plan = fields.ForeignKeyField("models.SubscriptionPlan", related_name="subscriptions", on_delete=fields.RESTRICT)
    status = fields.CharEnumField(SubscriptionStatus, max_length=16, default=SubscriptionStatus.PENDING)
    start_date = fields.DateField(null=True)
    end_date = fields.DateField(null=True)
    payment_method = fields.CharField(max_length=64, null=True)
    transaction_reference = fields.CharField(max_length=255, null=True)
    payment_amount = fields.DecimalField(max_digits=12, decimal_places=2)
    payment_currency = fields.CharField(max_length=8, default=DEFAULT_CURRENCY)
    payment_date = fields.DatetimeField(null=True)
    notes = fields.TextField(null=True)
    # Equals user_id while pending and NULL afterwards; the unique index
    # allows one pending row per user (NULLs never collide).
    pending_guard = fields.IntField(null=True, unique=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "user_subscriptions"
