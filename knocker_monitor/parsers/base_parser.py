"""
Base parser module for knocker-monitor.

This module provides a base class for record parsers with the value
coercion helpers shared by all of them.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Union

from ..core.errors import MalformedRecord


# ASCII decimal digits only, no underscores
INTEGER_PATTERN = re.compile(r'[+-]?[0-9]+', re.ASCII)


class BaseParser(ABC):
    """
    Abstract base class for journal record parsers.
    """

    def __init__(self, config=None):
        """
        Initialize the base parser.

        Args:
            config: Application configuration (optional)
        """
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def parse(self, source: Union[str, bytes, Mapping[str, Any]]) -> Any:
        """
        Parse one record and return structured data.

        Args:
            source: Raw record (JSON text or decoded mapping)

        Returns:
            Parsed value, or None when the record is not relevant
        """
        pass

    def load_record(self, source: Union[str, bytes, Mapping[str, Any]]) -> Mapping[str, Any]:
        """
        Turn a raw record into a mapping of field name to value.

        Args:
            source: JSON text line, bytes, or an already decoded mapping

        Returns:
            The record as a mapping

        Raises:
            MalformedRecord: If the record is not a JSON object
        """
        if isinstance(source, Mapping):
            return source

        if isinstance(source, bytes):
            source = source.decode('utf-8', errors='replace')

        if not isinstance(source, str):
            raise MalformedRecord(f"Unsupported record type: {type(source).__name__}")

        try:
            data = json.loads(source)
        except ValueError as e:
            raise MalformedRecord(f"Invalid JSON record: {e}") from e

        if not isinstance(data, dict):
            raise MalformedRecord(f"Expected a JSON object, got {type(data).__name__}")

        return data

    def safe_get_text(self, record: Mapping[str, Any], key: str) -> Optional[str]:
        """
        Get a field as text, treating empty or missing values as absent.

        journalctl encodes non-UTF-8 values as byte arrays and repeated
        fields as arrays of strings; both are reduced to a single string.

        Args:
            record: Decoded journal record
            key: Field name

        Returns:
            Field value or None
        """
        value = record.get(key)
        if value is None:
            return None

        if isinstance(value, list):
            if value and all(isinstance(item, int) for item in value):
                try:
                    value = bytes(value).decode('utf-8', errors='replace')
                except ValueError:
                    return None
            elif value:
                value = value[-1]
            else:
                return None

        if not isinstance(value, str):
            value = str(value)

        return value if value != '' else None

    def safe_parse_int(self, value: Optional[str]) -> Optional[int]:
        """
        Parse a base-10 integer.

        Args:
            value: Value to parse

        Returns:
            Parsed integer, or None if the value is missing or not numeric
        """
        if not isinstance(value, str):
            return None
        value = value.strip()
        if not INTEGER_PATTERN.fullmatch(value):
            return None
        return int(value, 10)

    def collect(self, record: Mapping[str, Any], keys: Mapping[str, str]) -> Dict[str, str]:
        """
        Collect the present text fields named in ``keys``.

        Args:
            record: Decoded journal record
            keys: Mapping of wire key to output name

        Returns:
            Dictionary of output name to text value
        """
        result = {}
        for wire_key, name in keys.items():
            value = self.safe_get_text(record, wire_key)
            if value is not None:
                result[name] = value
        return result
