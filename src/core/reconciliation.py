"""
Checkpoint reconciliation: did a 14:00 shortage persist to 18:00?

A 14:00 record is UNRESOLVED when the 18:00 snapshot contains a record with
the same natural key (product, normalized section, work order, requisition,
and by default the week). Otherwise it is RESOLVED.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable

import pandas as pd

from .records import Checkpoint

logger = logging.getLogger(__name__)

NATURAL_KEY_COLUMNS = ["product_code", "section_normalized", "work_order_id", "requisition_id"]


class Resolution(str, Enum):
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class RecordOutcome:
    """Classification of a single 14:00 record."""

    record_index: Hashable
    matched_index: Hashable | None  # First matching 18:00 record, if any
    checkpoint_status: Resolution  # From checkpoint matching only
    status: Resolution  # Quantity-aware: nothing short means resolved


@dataclass
class ReconciliationResult:
    """Outcome of reconciling one batch."""

    checkpoint_14_count: int
    checkpoint_18_count: int
    unknown_checkpoint_count: int
    outcomes: list[RecordOutcome] = field(default_factory=list)

    @property
    def unresolved_count(self) -> int:
        return sum(1 for o in self.outcomes if o.checkpoint_status is Resolution.UNRESOLVED)

    @property
    def resolved_count(self) -> int:
        return self.checkpoint_14_count - self.unresolved_count

    @property
    def quantity_resolved_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status is Resolution.RESOLVED)

    @property
    def resolution_rate(self) -> float:
        """Percentage of 14:00 shortages that did not reappear at 18:00."""
        if self.checkpoint_14_count == 0:
            return 0.0
        return self.resolved_count / self.checkpoint_14_count * 100

    def unresolved_flags(self, index: pd.Index) -> pd.Series:
        """Boolean Series over ``index``; False outside the 14:00 subset."""
        unresolved = {
            o.record_index for o in self.outcomes if o.checkpoint_status is Resolution.UNRESOLVED
        }
        return pd.Series([i in unresolved for i in index], index=index, dtype=bool)

    def as_frame(self) -> pd.DataFrame:
        columns = ["matched_index", "checkpoint_status", "status"]
        if not self.outcomes:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame(
            {
                "matched_index": [o.matched_index for o in self.outcomes],
                "checkpoint_status": [o.checkpoint_status.value for o in self.outcomes],
                "status": [o.status.value for o in self.outcomes],
            },
            index=[o.record_index for o in self.outcomes],
        )

    def summary(self) -> dict:
        return {
            "checkpoint_14": self.checkpoint_14_count,
            "checkpoint_18": self.checkpoint_18_count,
            "unknown_checkpoint": self.unknown_checkpoint_count,
            "unresolved": self.unresolved_count,
            "resolved": self.resolved_count,
            "resolution_rate": f"{self.resolution_rate:.1f}%",
        }


class ReconciliationEngine:
    """
    Matches 14:00 records against the 18:00 snapshot of a prepared batch.

    The 18:00 subset is indexed by natural key, so a pass is O(n + m).
    Records with a blank key component have no key and never match, which
    makes them RESOLVED rather than falsely paired.

    With week scoping the key also holds the month and week of the record;
    two records of the same month and week match unless both carry a year
    and the years differ.

    Usage:
        engine = ReconciliationEngine(prepare_batch(records))
        result = engine.reconcile()
    """

    def __init__(self, batch: pd.DataFrame, week_scoped: bool = True):
        self.batch = batch
        self.week_scoped = week_scoped
        self.key_columns = NATURAL_KEY_COLUMNS + (["week_match_key"] if week_scoped else [])

    def matching_keys(self, subset: pd.DataFrame) -> list[tuple | None]:
        """Natural key per row, or None when any component is blank."""
        keys = []
        for values in zip(*(subset[col] for col in self.key_columns)):
            parts = tuple(_key_part(v) for v in values)
            keys.append(None if any(p == "" for p in parts) else parts)
        return keys

    def _years(self, subset: pd.DataFrame) -> list[int]:
        if not self.week_scoped:
            return [0] * len(subset)
        return [int(y) for y in subset["week_year"]]

    def _index_checkpoint_18(self, subset: pd.DataFrame) -> dict[tuple, list[tuple[Any, int]]]:
        lookup: dict[tuple, list[tuple[Any, int]]] = defaultdict(list)
        for idx, key, year in zip(subset.index, self.matching_keys(subset), self._years(subset)):
            if key is not None:
                lookup[key].append((idx, year))
        return lookup

    def reconcile(self) -> ReconciliationResult:
        checkpoints = self.batch["checkpoint"]
        cp14 = self.batch[checkpoints == Checkpoint.CHECKPOINT_14.value]
        cp18 = self.batch[checkpoints == Checkpoint.CHECKPOINT_18.value]

        lookup = self._index_checkpoint_18(cp18)

        outcomes = []
        rows = zip(cp14.index, self.matching_keys(cp14), self._years(cp14), cp14["quantity_short"])
        for idx, key, year, short in rows:
            candidates = lookup.get(key, []) if key is not None else []
            matches = [m for m, m_year in candidates if _same_year(year, m_year)]
            checkpoint_status = Resolution.UNRESOLVED if matches else Resolution.RESOLVED
            status = Resolution.RESOLVED if short == 0 else checkpoint_status

            outcomes.append(
                RecordOutcome(
                    record_index=idx,
                    matched_index=matches[0] if matches else None,
                    checkpoint_status=checkpoint_status,
                    status=status,
                )
            )

        result = ReconciliationResult(
            checkpoint_14_count=len(cp14),
            checkpoint_18_count=len(cp18),
            unknown_checkpoint_count=len(self.batch) - len(cp14) - len(cp18),
            outcomes=outcomes,
        )
        logger.debug("Reconciliation: %s", result.summary())
        return result


def _key_part(value) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


def _same_year(a: int, b: int) -> bool:
    """Years match when equal or when either is unknown (0)."""
    return a == b or a == 0 or b == 0
