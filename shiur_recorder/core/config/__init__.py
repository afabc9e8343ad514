"""Configuration loading and dependency wiring"""

from .settings import RecorderSettings, DEFAULT_CONFIG

__all__ = [
    'RecorderSettings',
    'DEFAULT_CONFIG'
]
