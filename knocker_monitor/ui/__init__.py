"""
UI module for knocker-monitor.

This module provides the terminal user interface for the application.
"""

from .app import KnockerApp

__all__ = ['KnockerApp']
