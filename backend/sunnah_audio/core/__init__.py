# sunnah_audio/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Application initialization and default admin creation
- container: Shared services handed to request handlers
- db: Database configuration and connection management
- errors, responses: Error taxonomy and JSON envelopes
- jobs: Subscription expiry sweeper
- mailer, otp_store: Password reset delivery and one-time codes
- security: Password hashing and bearer tokens
"""
