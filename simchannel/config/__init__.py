"""Client configuration."""

from .settings import DEFAULT_SERVER_URL, ClientSettings, get_settings

__all__ = ["DEFAULT_SERVER_URL", "ClientSettings", "get_settings"]
