"""Configuration and logging setup for chainstats."""

from .settings import Settings, get_settings
from .logging import configure_logging, log_error

__all__ = [
    'Settings',
    'get_settings',
    'configure_logging',
    'log_error'
]
