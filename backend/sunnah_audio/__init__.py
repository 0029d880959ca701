"""Sunnah Audio API: accounts, subscriptions and metered audio downloads."""
