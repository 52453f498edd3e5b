"""Apply an ordered list of cleaning rules to a Dataset."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Sequence

from statflow.data.dataset import Dataset
from statflow.cleaning.rules import CleaningRule, CleaningStep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleaningResult:
    """Cleaned dataset plus the ordered log of applied rules.

    Attributes:
        dataset: Dataset after every rule
        steps: One CleaningStep per rule, in application order
        rows_before: Row count of the input dataset
    """

    dataset: Dataset
    steps: List[CleaningStep] = field(default_factory=list)
    rows_before: int = 0

    @property
    def rows_after(self) -> int:
        return self.dataset.n_rows

    @property
    def coercion_counts(self) -> Dict[str, int]:
        """Column -> missing values introduced by numeric coercion."""
        counts: Dict[str, int] = {}
        for step in self.steps:
            if step.rule == "coerce":
                counts[step.column] = counts.get(step.column, 0) + step.new_missing
        return counts

    @property
    def row_filters(self) -> List[CleaningStep]:
        """Steps that changed the row set."""
        return [s for s in self.steps if s.rule in ("require", "keep")]


def apply_rules(dataset: Dataset, rules: Sequence[CleaningRule]) -> CleaningResult:
    """Apply cleaning rules in exactly the configured order.

    Rules are never reordered: later rules see the output of earlier ones, so
    remap → invalidate → coerce → filter is the conventional order.

    Args:
        dataset: Input dataset (not modified)
        rules: Ordered cleaning rules

    Returns:
        CleaningResult with the new dataset and one step per rule

    Raises:
        ValueError: If a rule references a missing column or a column of the wrong kind
    """
    current = dataset
    steps = []

    for i, rule in enumerate(rules, start=1):
        current, step = rule.apply(current)
        steps.append(step)

        if step.rows_removed:
            logger.info(f"[{i}/{len(rules)}] {step.description}: rows {step.rows_before} -> {step.rows_after}")
        elif step.new_missing:
            logger.info(f"[{i}/{len(rules)}] {step.description}: {step.new_missing} values set to missing")
        else:
            logger.debug(f"[{i}/{len(rules)}] {step.description}: {step.changed} values changed")

    return CleaningResult(dataset=current, steps=steps, rows_before=dataset.n_rows)
