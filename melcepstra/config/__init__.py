# melcepstra/config/__init__.py

"""
Configuration management for melcepstra.

This package handles loading configuration from files (TOML),
environment variables, and internal defaults, providing a unified
configuration object.
"""

from .models import MelcepstraConfig, MFCCParams
from .loaders import load_configuration

__all__ = [
    "MelcepstraConfig",
    "MFCCParams",
    "load_configuration",
]
