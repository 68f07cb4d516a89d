"""API route handlers."""

from api.routes import health, issue, keys, redeem

__all__ = ["health", "issue", "keys", "redeem"]
