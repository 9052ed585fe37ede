"""API routers package."""

from apps.api.routers import files

__all__ = ["files"]
