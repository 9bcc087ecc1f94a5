"""
Application configuration using Pydantic settings.

Re-exports the engine settings so routers can import from the app package:
    from ..config import get_settings
"""

from sportsfeed.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
