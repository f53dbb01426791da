"""Configuration module for knocker-monitor."""

from .config import Config
from .settings import Settings

__all__ = ['Config', 'Settings']
