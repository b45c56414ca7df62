"""
Infrastructure layer for external services and data access.

This layer contains:
- database: Database models, repositories, and session management
- cache: Application cache, class-scoped cache views and the Redis client
- security: Token signing, password hashing and login rate limiting
"""
