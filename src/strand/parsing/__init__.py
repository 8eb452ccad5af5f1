"""Streaming output parsing: JSON repair and typed partial values."""

from strand.parsing.partial import PartialParser, partial_type
from strand.parsing.repair import repair_json

__all__ = ["PartialParser", "partial_type", "repair_json"]
