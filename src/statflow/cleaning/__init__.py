"""Cleaning rules and the ordered rule runner."""

from statflow.cleaning.rules import (
    CleaningRule,
    CleaningStep,
    RemapRule,
    InvalidateRule,
    CoerceNumericRule,
    RangeRule,
    ValidityRule,
    DeriveRule,
    RequireRule,
    KeepRowsRule,
)
from statflow.cleaning.cleaner import CleaningResult, apply_rules

__all__ = [
    "CleaningRule",
    "CleaningStep",
    "RemapRule",
    "InvalidateRule",
    "CoerceNumericRule",
    "RangeRule",
    "ValidityRule",
    "DeriveRule",
    "RequireRule",
    "KeepRowsRule",
    "CleaningResult",
    "apply_rules",
]
