"""Configuration package for PaperLens.

Re-exports the settings from :mod:`config.config` so that `import config`
exposes the expected configuration objects.
"""

from .config import Settings, get_settings

__all__ = [
    "get_settings",
    "Settings",
]
