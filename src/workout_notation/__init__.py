"""Parser and validator for free-text workout notation."""
from .parsers import parse, validate

__all__ = ["parse", "validate"]
