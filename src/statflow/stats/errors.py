"""Exceptions raised by the statistics engines."""

from __future__ import annotations


class NotComputableError(ValueError):
    """A statistic cannot be computed from the available data (too few values, groups or levels)."""


class GroupCountError(NotComputableError):
    """The grouping column does not have the number of distinct labels a test requires."""

    def __init__(self, column: str, expected: str, found: list):
        self.column = column
        self.expected = expected
        self.found = list(found)
        super().__init__(
            f"Wrong group count for '{column}': expected {expected} distinct labels, "
            f"found {len(self.found)} ({', '.join(map(str, self.found))})"
        )
