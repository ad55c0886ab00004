"""
Configuration module for skillrules.

Exports the main components for convenient imports.
"""

from .loader import load_config
from .schema import AppConfig, LoggingConfig, ReminderConfig, SessionsConfig

__all__ = [
    "load_config",
    "AppConfig",
    "LoggingConfig",
    "ReminderConfig",
    "SessionsConfig",
]
