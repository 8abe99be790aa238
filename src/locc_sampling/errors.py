"""Typed failures raised by the category tree and its loaders."""
from __future__ import annotations


class LoccSamplingError(Exception):
    """Base class for all category tree errors."""


class CategoryNotFound(LoccSamplingError, LookupError):
    """Raised when a category falls entirely outside the known outline."""

    def __init__(self, category: str) -> None:
        super().__init__(f"{category} is not found!")
        self.category = category


class SampleTooLarge(LoccSamplingError, ValueError):
    """Raised when more volumes are requested than a subtree holds."""

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            f"Sampling number {requested} is larger than the total number {available}"
        )
        self.requested = requested
        self.available = available


class RangeParseError(LoccSamplingError, ValueError):
    """Raised when the numeric part of a category does not parse."""

    def __init__(self, text: str, category: str | None = None) -> None:
        where = f" for {category}" if category else ""
        super().__init__(f"Fail to parse {text!r} to range{where}")
        self.text = text
        self.category = category


class MalformedCategoryString(LoccSamplingError, ValueError):
    """Raised when a category or outline entry fails its grammar."""

    def __init__(self, category: str) -> None:
        super().__init__(f"Malformed category string: {category!r}")
        self.category = category


class OverlappingRange(LoccSamplingError, ValueError):
    """Raised when an outline range partly overlaps a sibling range."""

    def __init__(self, category: str, sibling: str) -> None:
        super().__init__(f"{category} overlaps sibling {sibling} without containing it")
        self.category = category
        self.sibling = sibling
