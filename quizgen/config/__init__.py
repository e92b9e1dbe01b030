"""Configuration and logging."""

from .logging import configure_logging
from .settings import QualitySettings, Settings, get_settings

__all__ = ["Settings", "QualitySettings", "get_settings", "configure_logging"]
