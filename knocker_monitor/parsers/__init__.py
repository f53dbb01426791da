"""Parsers module for knocker-monitor."""

from .entry_parser import EntryParser

__all__ = ['EntryParser']
