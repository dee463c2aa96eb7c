"""
Configuration package for platform-specific settings.

Provides abstract configuration interface and the desktop implementation
that reads its values from the environment and an optional .env file.
"""
from .base import BaseConfiguration, ConfigurationError
from .desktop import DesktopConfiguration

__all__ = [
    'BaseConfiguration',
    'ConfigurationError',
    'DesktopConfiguration'
]
