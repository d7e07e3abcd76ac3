"""Core: config, constants, and data-layer bootstrap.

Single place for settings and shared constants.
"""

from lmsclient.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
