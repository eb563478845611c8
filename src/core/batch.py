"""
Batch preparation: records -> normalized DataFrame.

Derives the comparison keys every later step relies on. The input records
are never modified; each call builds a fresh frame.
"""

import logging
from collections import defaultdict
from typing import Iterable

import pandas as pd

from .classification import ShortageType, classify_shortage_type
from .config import AnalysisConfig
from .parsers import SectionNormalizer, WeekLabeler, WeekPeriod, resolve_checkpoint
from .records import ShortageRecord, records_to_frame

logger = logging.getLogger(__name__)

# week_rank values, in trend order
WEEK_RANK_DATED = 0  # year known
WEEK_RANK_LABEL_ONLY = 1  # month and week read from the label
WEEK_RANK_FREE_TEXT = 2  # label that names no month
WEEK_RANK_UNKNOWN = 3

DERIVED_COLUMNS = [
    "section_normalized",
    "checkpoint",
    "week_key",
    "week_label",
    "week_rank",
    "week_match_key",
    "week_year",
    "shortage_type_resolved",
]


def prepare_batch(
    records: Iterable[ShortageRecord],
    config: AnalysisConfig | None = None,
) -> pd.DataFrame:
    """
    Build the prepared batch for reconciliation and aggregation.

    Adds:
    - section_normalized: alias-folded section name
    - checkpoint: Checkpoint value ("14H", "18H" or "UNKNOWN")
    - week_key / week_label / week_rank: week grouping, label and sort rank
    - week_match_key / week_year: "MM-Wn" and year (0 when unknown) for matching
    - shortage_type_resolved: shortage type, inferred when blank
    """
    config = config or AnalysisConfig()
    df = records_to_frame(records)

    section_normalizer = SectionNormalizer(config.section_aliases)
    labeler = WeekLabeler(config.locale)

    df["section_normalized"] = section_normalizer.normalize_series(df["section"])
    df["checkpoint"] = [
        resolve_checkpoint(text, sheet, config.checkpoint_from_source_sheet).value
        for text, sheet in zip(df["checkpoint_text"], df["source_sheet"])
    ]

    weeks = _week_columns(df, labeler)
    for col in weeks.columns:
        df[col] = weeks[col]

    df["shortage_type_resolved"] = [
        _resolve_shortage_type(row, config.auto_classify_shortage_type)
        for row in df.itertuples(index=False)
    ]

    logger.debug(
        "Prepared batch of %d records (%d with unknown week)",
        len(df),
        int((df["week_rank"] == WEEK_RANK_UNKNOWN).sum()),
    )
    return df


def _week_columns(df: pd.DataFrame, labeler: WeekLabeler) -> pd.DataFrame:
    """
    week_key, week_label, week_rank, week_match_key and week_year per record.

    Undated records with a readable label ("2ª Semana de Abril") take the
    year of the dated records of that week when exactly one year fits;
    otherwise their key carries month and week only.
    """
    weeks = [_week_of(labeler, label, when) for label, when in zip(df["week_label"], df["date"])]

    years_by_week: dict[str, set[int]] = defaultdict(set)
    for period, _, _ in weeks:
        if period is not None and period.year is not None:
            years_by_week[period.month_week].add(period.year)

    rows = []
    for period, display, known in weeks:
        if period is not None:
            if period.year is None and len(years_by_week[period.month_week]) == 1:
                period = period._replace(year=next(iter(years_by_week[period.month_week])))
            rank = WEEK_RANK_DATED if period.year is not None else WEEK_RANK_LABEL_ONLY
            rows.append((period.key, display, rank, period.month_week, period.year or 0))
        elif known:
            rows.append((display, display, WEEK_RANK_FREE_TEXT, display, 0))
        else:
            rows.append(("", display, WEEK_RANK_UNKNOWN, "", 0))

    columns = ["week_key", "week_label", "week_rank", "week_match_key", "week_year"]
    weeks_df = pd.DataFrame(rows, columns=columns, index=df.index)
    return weeks_df.astype({"week_rank": "int64", "week_year": "int64"})


def _week_of(labeler: WeekLabeler, label: str, when) -> tuple[WeekPeriod | None, str, bool]:
    """(period, display label, whether the week is known at all) for one record."""
    keep_label = not WeekLabeler.is_placeholder(label)

    period = labeler.period(when)
    if period is not None:
        display = label.strip() if keep_label else labeler.label_for_period(period)
        return period, display, True
    if keep_label:
        return WeekLabeler.parse_label(label), label.strip(), True
    return None, labeler.unknown_label, False


def _resolve_shortage_type(row, auto_classify: bool) -> str:
    given = str(row.shortage_type or "").strip()
    if given:
        return given
    if not auto_classify:
        return ShortageType.OTHER.value

    return classify_shortage_type(
        quantity_short=row.quantity_short,
        quantity_requested=row.quantity_requested,
        quantity_delivered=row.quantity_delivered,
        stock_primary=row.stock_primary,
        stock_secondary=row.stock_secondary,
        in_transit=row.in_transit_secondary,
    ).value
