# braincell/braincell_errors.py
from __future__ import annotations


class BraincellError(Exception):
    """
    Base class for every error raised by the braincell core.

    All of these are programming / configuration defects, not transient
    conditions. The failing operation aborts and nothing is retried.
    """


class InvalidDimensionError(BraincellError, ValueError):
    """Non-positive matrix dimensions, or an architecture that cannot form a network."""


class DimensionMismatchError(BraincellError, ValueError):
    """Shape-incompatible operands (dot, add, copy, split, cost)."""


class IndexOutOfBoundsError(BraincellError, IndexError):
    """Row / column access beyond the extent of a matrix or buffer."""
