"""
Services Module

Domain logic shared by the HTTP routers and the background jobs:
- access_policy: role + per-scholar ACL decisions for write and download paths
- subscriptions: plan catalog, purchase intents, admin verification, expiry sweep
- downloads: permission check, audit log and counter for file downloads
- accounts: registration, credentials, password reset and access grants
- content: book and file writes gated by access_policy
- uploads: storing uploaded audio under the uploads directory
"""
