"""Core configuration and factory components."""

from docfill.core.config import Settings, get_settings
from docfill.core.factory import ComponentFactory, get_factory

__all__ = [
    "Settings",
    "get_settings",
    "ComponentFactory",
    "get_factory",
]
