"""Utility modules for semexplore."""

from .value_capture import normalize_value, strict_equals, to_number, to_text

__all__ = ["normalize_value", "strict_equals", "to_number", "to_text"]
