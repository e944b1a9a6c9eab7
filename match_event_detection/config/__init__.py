"""Configuration components for the match event detection system."""

from .defaults import (
    DEFAULT_CONFIG,
    SYSTEM_CONSTANTS,
    DEFAULT_PATHS,
    PREPROCESSING_SETTINGS,
    OCR_SETTINGS
)

__all__ = [
    'DEFAULT_CONFIG',
    'SYSTEM_CONSTANTS',
    'DEFAULT_PATHS',
    'PREPROCESSING_SETTINGS',
    'OCR_SETTINGS'
]
