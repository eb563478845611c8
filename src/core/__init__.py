# Core shortage ("rutura") reconciliation and analytics
# Pure functions of an in-memory batch: no I/O, no state kept between calls

from .records import Checkpoint, SourceSheet, ShortageRecord, records_to_frame
from .parsers import (
    DateParser,
    SectionNormalizer,
    WeekLabeler,
    WeekPeriod,
    classify_checkpoint,
    is_placeholder_week_label,
    normalize_section,
    resolve_checkpoint,
    week_label_from_date,
)
from .classification import ShortageType, classify_shortage_type
from .config import AnalysisConfig
from .batch import prepare_batch
from .reconciliation import (
    ReconciliationEngine,
    ReconciliationResult,
    RecordOutcome,
    Resolution,
)
from .filters import ShortageFilter, filter_options
from .analysis import (
    ShortageAnalytics,
    StockIndicators,
    analyze_batch,
    analyze_shortages,
    compute_distribution,
    compute_key_metrics,
    compute_product_rollup,
    compute_section_rollup,
    compute_stock_indicators,
    compute_weekly_trend,
    identify_critical_products,
    resolution_rate,
)
from .quality import DataQualityChecker, DataQualityIssue, DataQualityReport, assess_batch_quality

__all__ = [
    "Checkpoint",
    "SourceSheet",
    "ShortageRecord",
    "records_to_frame",
    "DateParser",
    "SectionNormalizer",
    "WeekLabeler",
    "WeekPeriod",
    "classify_checkpoint",
    "is_placeholder_week_label",
    "normalize_section",
    "resolve_checkpoint",
    "week_label_from_date",
    "ShortageType",
    "classify_shortage_type",
    "AnalysisConfig",
    "prepare_batch",
    "ReconciliationEngine",
    "ReconciliationResult",
    "RecordOutcome",
    "Resolution",
    "ShortageFilter",
    "filter_options",
    "ShortageAnalytics",
    "StockIndicators",
    "analyze_batch",
    "analyze_shortages",
    "compute_distribution",
    "compute_key_metrics",
    "compute_product_rollup",
    "compute_section_rollup",
    "compute_stock_indicators",
    "compute_weekly_trend",
    "identify_critical_products",
    "resolution_rate",
    "DataQualityChecker",
    "DataQualityIssue",
    "DataQualityReport",
    "assess_batch_quality",
]
