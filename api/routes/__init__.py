"""API route handlers."""

from api.routes import admin, health, prices

__all__ = ["admin", "health", "prices"]
