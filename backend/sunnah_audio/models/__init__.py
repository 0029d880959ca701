"""
Database models module initialization.
Exports all Tortoise ORM models for convenient imports.

Models exported:
- User: account, credentials and role
- Scholar, Book: the content tree that access rights are granted on
- ScholarAccess: per-scholar write ACL
- SubscriptionPlan, UserSubscription: plan catalog and purchases
- AudioFile, DownloadLog: audio assets and their download audit trail
"""
from .user import User, Role, UserStatus
from .scholar import Scholar, Book
from .access import ScholarAccess
from .subscription import SubscriptionPlan, UserSubscription, SubscriptionStatus
from .file import AudioFile, DownloadLog
