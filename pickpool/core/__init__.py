"""Core app configuration, security primitives and database."""

from pickpool.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
