"""
Shortage analytics over a prepared batch.

Computes the rollups the dashboard shows:
- Most affected products (14:00 / 18:00 / unresolved counts)
- Most affected sections
- Shortage type and product category distributions
- Weekly trend
- Stock indicators and resolution rate
- Critical products by quantity missing

Every function is a pure function of its inputs; nothing is cached
between calls.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Iterable

import pandas as pd

from .batch import prepare_batch
from .config import AnalysisConfig
from .filters import ShortageFilter
from .reconciliation import ReconciliationEngine, ReconciliationResult
from .records import Checkpoint, ShortageRecord

logger = logging.getLogger(__name__)

PRODUCT_ROLLUP_COLUMNS = [
    "product_code",
    "product_description",
    "checkpoint_14_count",
    "checkpoint_18_count",
    "unresolved_count",
    "sections_affected",
    "priority_score",
]
SECTION_ROLLUP_COLUMNS = ["section", "count"]
DISTRIBUTION_COLUMNS = ["category", "count", "percentage"]
WEEKLY_TREND_COLUMNS = [
    "week_key",
    "week_label",
    "total",
    "checkpoint_14_count",
    "checkpoint_18_count",
    "unresolved_count",
    "resolution_rate",
]
CRITICAL_PRODUCT_COLUMNS = ["product_code", "product_description", "quantity_short"]

DISTRIBUTION_SOURCES = {
    "shortage_type": "shortage_type_resolved",
    "product_category": "product_category",
}


def _top(df: pd.DataFrame, top_n: int | None) -> pd.DataFrame:
    if top_n is None:
        return df
    return df.head(top_n).reset_index(drop=True)


def _with_checkpoint_flags(
    batch: pd.DataFrame, reconciliation: ReconciliationResult | None = None
) -> pd.DataFrame:
    flags = {
        "is_checkpoint_14": batch["checkpoint"] == Checkpoint.CHECKPOINT_14.value,
        "is_checkpoint_18": batch["checkpoint"] == Checkpoint.CHECKPOINT_18.value,
    }
    if reconciliation is not None:
        flags["is_unresolved"] = reconciliation.unresolved_flags(batch.index)
    return batch.assign(**flags)


def compute_product_rollup(
    batch: pd.DataFrame,
    reconciliation: ReconciliationResult,
    top_n: int | None = 10,
) -> pd.DataFrame:
    """
    Most affected products.

    Sorted by unresolved + 14:00 occurrences, descending. Ties keep the
    order in which products first appear in the batch.
    """
    if len(batch) == 0:
        return pd.DataFrame(columns=PRODUCT_ROLLUP_COLUMNS)

    work = _with_checkpoint_flags(batch, reconciliation)
    rollup = (
        work.groupby("product_code", sort=False)
        .agg(
            product_description=("product_description", "first"),
            checkpoint_14_count=("is_checkpoint_14", "sum"),
            checkpoint_18_count=("is_checkpoint_18", "sum"),
            unresolved_count=("is_unresolved", "sum"),
            sections_affected=("section_normalized", "nunique"),
        )
        .reset_index()
    )
    for col in ["checkpoint_14_count", "checkpoint_18_count", "unresolved_count", "sections_affected"]:
        rollup[col] = rollup[col].astype(int)

    rollup["priority_score"] = rollup["unresolved_count"] + rollup["checkpoint_14_count"]
    rollup = rollup.sort_values("priority_score", ascending=False, kind="stable")

    return _top(rollup.reset_index(drop=True)[PRODUCT_ROLLUP_COLUMNS], top_n)


def compute_section_rollup(batch: pd.DataFrame, top_n: int | None = 10) -> pd.DataFrame:
    """Records per normalized section, most affected first."""
    if len(batch) == 0:
        return pd.DataFrame(columns=SECTION_ROLLUP_COLUMNS)

    counts = (
        batch.groupby("section_normalized", sort=False)
        .size()
        .reset_index(name="count")
        .rename(columns={"section_normalized": "section"})
        .sort_values("count", ascending=False, kind="stable")
        .reset_index(drop=True)
    )
    counts["count"] = counts["count"].astype(int)
    return _top(counts, top_n)


def compute_distribution(batch: pd.DataFrame, by: str = "shortage_type") -> pd.DataFrame:
    """
    Count and share of records per shortage type or product category.

    Percentages are taken against the batch passed in, so a filtered batch
    yields shares of the filtered total.

    Args:
        by: "shortage_type" or "product_category"
    """
    if by not in DISTRIBUTION_SOURCES:
        raise ValueError(f"Unknown distribution: {by!r}")
    if len(batch) == 0:
        return pd.DataFrame(columns=DISTRIBUTION_COLUMNS)

    column = DISTRIBUTION_SOURCES[by]
    total = len(batch)
    dist = (
        batch[column]
        .fillna("")
        .groupby(batch[column].fillna(""), sort=False)
        .size()
        .reset_index(name="count")
        .rename(columns={column: "category"})
        .sort_values("count", ascending=False, kind="stable")
        .reset_index(drop=True)
    )
    dist["count"] = dist["count"].astype(int)
    dist["percentage"] = dist["count"] / total * 100
    return dist[DISTRIBUTION_COLUMNS]


def compute_weekly_trend(batch: pd.DataFrame, reconciliation: ReconciliationResult) -> pd.DataFrame:
    """
    14:00 / 18:00 / unresolved counts per week, oldest week first.

    Dated weeks are ordered by their period key; weeks known only by label
    follow, and the "unknown week" bucket comes last.
    """
    if len(batch) == 0:
        return pd.DataFrame(columns=WEEKLY_TREND_COLUMNS)

    work = _with_checkpoint_flags(batch, reconciliation)
    trend = (
        work.groupby(["week_rank", "week_key"], sort=True)
        .agg(
            week_label=("week_label", "first"),
            total=("checkpoint", "size"),
            checkpoint_14_count=("is_checkpoint_14", "sum"),
            checkpoint_18_count=("is_checkpoint_18", "sum"),
            unresolved_count=("is_unresolved", "sum"),
        )
        .reset_index()
    )
    for col in ["total", "checkpoint_14_count", "checkpoint_18_count", "unresolved_count"]:
        trend[col] = trend[col].astype(int)

    trend["resolution_rate"] = [
        resolution_rate(cp14, unresolved)
        for cp14, unresolved in zip(trend["checkpoint_14_count"], trend["unresolved_count"])
    ]
    return trend[WEEKLY_TREND_COLUMNS]


@dataclass(frozen=True)
class StockIndicators:
    zero_primary: int = 0
    zero_secondary: int = 0
    in_transit: int = 0
    no_stock_anywhere: int = 0


def compute_stock_indicators(batch: pd.DataFrame) -> StockIndicators:
    """Predicate counts over the whole batch."""
    if len(batch) == 0:
        return StockIndicators()

    zero_primary = batch["stock_primary"] == 0
    zero_secondary = batch["stock_secondary"] == 0
    return StockIndicators(
        zero_primary=int(zero_primary.sum()),
        zero_secondary=int(zero_secondary.sum()),
        in_transit=int((batch["in_transit_secondary"] > 0).sum()),
        no_stock_anywhere=int((zero_primary & zero_secondary & (batch["quantity_short"] > 0)).sum()),
    )


def resolution_rate(checkpoint_14_count: int, unresolved_count: int) -> float:
    """Share of 14:00 shortages gone by 18:00, in percent (0 when none)."""
    if checkpoint_14_count == 0:
        return 0.0
    return (checkpoint_14_count - unresolved_count) / checkpoint_14_count * 100


def identify_critical_products(batch: pd.DataFrame, top_n: int | None = 5) -> pd.DataFrame:
    """Products ranked by total quantity short, regardless of checkpoint."""
    if len(batch) == 0:
        return pd.DataFrame(columns=CRITICAL_PRODUCT_COLUMNS)

    critical = (
        batch.groupby("product_code", sort=False)
        .agg(
            product_description=("product_description", "first"),
            quantity_short=("quantity_short", "sum"),
        )
        .reset_index()
        .sort_values("quantity_short", ascending=False, kind="stable")
        .reset_index(drop=True)
    )
    return _top(critical[CRITICAL_PRODUCT_COLUMNS], top_n)


def compute_key_metrics(batch: pd.DataFrame, reconciliation: ReconciliationResult) -> dict:
    """Headline numbers for the metrics row."""
    return {
        "total_records": len(batch),
        "checkpoint_14_count": reconciliation.checkpoint_14_count,
        "checkpoint_18_count": reconciliation.checkpoint_18_count,
        "unknown_checkpoint_count": reconciliation.unknown_checkpoint_count,
        "sections_affected": int(batch["section_normalized"].nunique()),
        "distinct_products": int(batch["product_code"].nunique()),
        "active_shortages": int((batch["quantity_short"] > 0).sum()),
        "total_quantity_short": float(batch["quantity_short"].sum()),
        "unresolved_count": reconciliation.unresolved_count,
        "resolution_rate": reconciliation.resolution_rate,
    }


@dataclass
class ShortageAnalytics:
    """Everything one analysis pass produces for the presentation layer."""

    total_records: int
    reconciliation: ReconciliationResult
    key_metrics: dict
    product_rollup: pd.DataFrame
    section_rollup: pd.DataFrame
    type_distribution: pd.DataFrame
    category_distribution: pd.DataFrame
    weekly_trend: pd.DataFrame
    stock_indicators: StockIndicators
    critical_products: pd.DataFrame
    resolution_rate: float = 0.0
    filters: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Plain Python structures, e.g. for JSON export."""
        return {
            "total_records": self.total_records,
            "key_metrics": dict(self.key_metrics),
            "reconciliation": self.reconciliation.summary(),
            "product_rollup": self.product_rollup.to_dict(orient="records"),
            "section_rollup": self.section_rollup.to_dict(orient="records"),
            "type_distribution": self.type_distribution.to_dict(orient="records"),
            "category_distribution": self.category_distribution.to_dict(orient="records"),
            "weekly_trend": self.weekly_trend.to_dict(orient="records"),
            "stock_indicators": asdict(self.stock_indicators),
            "critical_products": self.critical_products.to_dict(orient="records"),
            "resolution_rate": self.resolution_rate,
            "filters": dict(self.filters),
        }


def analyze_batch(batch: pd.DataFrame, config: AnalysisConfig | None = None) -> ShortageAnalytics:
    """Reconcile and aggregate an already prepared (and filtered) batch."""
    config = config or AnalysisConfig()

    reconciliation = ReconciliationEngine(batch, week_scoped=config.week_scoped_matching).reconcile()

    analytics = ShortageAnalytics(
        total_records=len(batch),
        reconciliation=reconciliation,
        key_metrics=compute_key_metrics(batch, reconciliation),
        product_rollup=compute_product_rollup(batch, reconciliation, config.top_products),
        section_rollup=compute_section_rollup(batch, config.top_sections),
        type_distribution=compute_distribution(batch, "shortage_type"),
        category_distribution=compute_distribution(batch, "product_category"),
        weekly_trend=compute_weekly_trend(batch, reconciliation),
        stock_indicators=compute_stock_indicators(batch),
        critical_products=identify_critical_products(batch, config.top_critical_products),
        resolution_rate=resolution_rate(
            reconciliation.checkpoint_14_count, reconciliation.unresolved_count
        ),
    )
    logger.debug("Analyzed %d records", analytics.total_records)
    return analytics


def analyze_shortages(
    records: Iterable[ShortageRecord],
    config: AnalysisConfig | None = None,
    filters: ShortageFilter | None = None,
) -> ShortageAnalytics:
    """Full pass: prepare -> filter -> reconcile -> aggregate."""
    config = config or AnalysisConfig()
    batch = prepare_batch(records, config)

    if filters is not None:
        batch = filters.apply(batch, config)

    analytics = analyze_batch(batch, config)
    if filters is not None:
        analytics.filters = filters.describe()
    return analytics
