"""Utilities module for knocker-monitor."""

from .formatting import FormattingUtils

__all__ = ['FormattingUtils']
