"""
Data quality checks for shortage batches.

The sheets are typed in by hand, so missing work orders, free-text
checkpoints that match nothing and impossible quantities are common.
Problems are reported, never fixed silently: records stay in the batch.
"""

from dataclasses import dataclass, field
from typing import Callable, Any

import pandas as pd

from .batch import WEEK_RANK_UNKNOWN
from .records import Checkpoint
from .reconciliation import NATURAL_KEY_COLUMNS


@dataclass
class DataQualityIssue:
    """A single data quality issue found in the data."""

    column: str
    issue_type: str  # e.g., "blank", "invalid_value", "outlier", "duplicate"
    severity: str  # "critical", "warning", "info"
    count: int
    percentage: float
    sample_values: list[Any] = field(default_factory=list)
    description: str = ""


@dataclass
class DataQualityReport:
    """Summary report of data quality for one batch."""

    source_name: str
    total_rows: int
    issues: list[DataQualityIssue] = field(default_factory=list)

    @property
    def critical_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "critical"]

    @property
    def warning_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def has_critical_issues(self) -> bool:
        return len(self.critical_issues) > 0

    def summary(self) -> dict:
        return {
            "source": self.source_name,
            "total_rows": self.total_rows,
            "critical": len(self.critical_issues),
            "warnings": len(self.warning_issues),
            "info": len([i for i in self.issues if i.severity == "info"]),
        }


def _blank_mask(series: pd.Series) -> pd.Series:
    return series.isna() | (series.astype(str).str.strip() == "")


def _severity_for_share(pct: float) -> str:
    return "critical" if pct > 20 else "warning" if pct > 5 else "info"


class DataQualityChecker:
    """
    Chainable set of checks run against a batch.

    Usage:
        report = (
            DataQualityChecker("Import 14H")
            .check_blank_values(["work_order_id", "requisition_id"])
            .check_outliers("stock_primary", min_val=0)
            .run(batch)
        )
    """

    def __init__(self, source_name: str):
        self.source_name = source_name
        self._checks: list[Callable[[pd.DataFrame], list[DataQualityIssue]]] = []

    def add_check(
        self, check_fn: Callable[[pd.DataFrame], list[DataQualityIssue]]
    ) -> "DataQualityChecker":
        """Add a custom check function. Returns self for chaining."""
        self._checks.append(check_fn)
        return self

    def check_blank_values(
        self, columns: list[str], severity: str | None = None
    ) -> "DataQualityChecker":
        """
        Flag blank cells. Without an explicit severity it scales with the
        share of blank rows (>20% critical, >5% warning, else info).
        """

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            issues = []
            for col in columns:
                if col not in df.columns:
                    continue
                blank = int(_blank_mask(df[col]).sum())
                if blank == 0:
                    continue
                pct = blank / len(df) * 100
                issues.append(
                    DataQualityIssue(
                        column=col,
                        issue_type="blank",
                        severity=severity or _severity_for_share(pct),
                        count=blank,
                        percentage=pct,
                        description=f"{blank:,} blank values ({pct:.1f}%)",
                    )
                )
            return issues

        return self.add_check(check)

    def check_duplicates(
        self, key_columns: list[str], severity: str = "warning"
    ) -> "DataQualityChecker":
        """Add a duplicate check for the given columns."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if len(df) == 0:
                return []
            dupes = int(df.duplicated(subset=key_columns, keep=False).sum())
            if dupes == 0:
                return []
            return [
                DataQualityIssue(
                    column=", ".join(key_columns),
                    issue_type="duplicate",
                    severity=severity,
                    count=dupes,
                    percentage=dupes / len(df) * 100,
                    description=f"{dupes:,} rows share the same key",
                )
            ]

        return self.add_check(check)

    def check_invalid_values(
        self,
        column: str,
        valid_values: set | None = None,
        validator: Callable[[pd.DataFrame], pd.Series] | None = None,
        severity: str = "warning",
        description: str = "invalid values",
    ) -> "DataQualityChecker":
        """
        Flag rows whose value isn't in ``valid_values``, or for which the
        row-wise ``validator`` returns False.
        """

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in df.columns or len(df) == 0:
                return []

            if valid_values is not None:
                invalid_mask = ~df[column].isin(valid_values)
            elif validator is not None:
                invalid_mask = ~validator(df).astype(bool)
            else:
                return []

            invalid = int(invalid_mask.sum())
            if invalid == 0:
                return []
            return [
                DataQualityIssue(
                    column=column,
                    issue_type="invalid_value",
                    severity=severity,
                    count=invalid,
                    percentage=invalid / len(df) * 100,
                    sample_values=df.loc[invalid_mask, column].head(5).tolist(),
                    description=f"{invalid:,} {description}",
                )
            ]

        return self.add_check(check)

    def check_outliers(
        self,
        column: str,
        min_val: float | None = None,
        max_val: float | None = None,
        severity: str = "warning",
    ) -> "DataQualityChecker":
        """Add a check for values outside min/max bounds."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in df.columns or len(df) == 0:
                return []

            values = pd.to_numeric(df[column], errors="coerce")
            outlier_mask = pd.Series(False, index=df.index)
            if min_val is not None:
                outlier_mask |= values < min_val
            if max_val is not None:
                outlier_mask |= values > max_val

            outliers = int(outlier_mask.sum())
            if outliers == 0:
                return []
            return [
                DataQualityIssue(
                    column=column,
                    issue_type="outlier",
                    severity=severity,
                    count=outliers,
                    percentage=outliers / len(df) * 100,
                    sample_values=df.loc[outlier_mask, column].head(5).tolist(),
                    description=f"{outliers:,} values outside expected range",
                )
            ]

        return self.add_check(check)

    def run(self, df: pd.DataFrame) -> DataQualityReport:
        """Run all checks and return a quality report."""
        all_issues = []
        for check_fn in self._checks:
            all_issues.extend(check_fn(df))

        return DataQualityReport(source_name=self.source_name, total_rows=len(df), issues=all_issues)


def assess_batch_quality(batch: pd.DataFrame, source_name: str = "Shortages") -> DataQualityReport:
    """Standard checks for a prepared batch."""
    checker = (
        DataQualityChecker(source_name)
        .check_blank_values(["product_code", "work_order_id", "requisition_id"], severity="warning")
        .check_blank_values(["section"], severity="warning")
        .check_invalid_values(
            "checkpoint",
            valid_values={Checkpoint.CHECKPOINT_14.value, Checkpoint.CHECKPOINT_18.value},
            description="records with no 14h/18h checkpoint (left out of reconciliation)",
        )
        .check_invalid_values(
            "quantity_short",
            validator=lambda d: d["quantity_short"] <= d["quantity_requested"],
            description="records missing more than was requested",
        )
        .check_outliers("stock_primary", min_val=0)
        .check_outliers("stock_secondary", min_val=0)
        .check_outliers("in_transit_secondary", min_val=0)
        .check_duplicates(NATURAL_KEY_COLUMNS + ["checkpoint", "week_key"], severity="info")
    )

    def check_missing_dates(df: pd.DataFrame) -> list[DataQualityIssue]:
        missing = int(df["date"].isna().sum()) if len(df) else 0
        if missing == 0:
            return []
        unknown_week = int((df["week_rank"] == WEEK_RANK_UNKNOWN).sum())
        return [
            DataQualityIssue(
                column="date",
                issue_type="blank",
                severity="warning",
                count=missing,
                percentage=missing / len(df) * 100,
                description=f"{missing:,} records without a date ({unknown_week:,} with no week at all)",
            )
        ]

    checker.add_check(check_missing_dates)
    return checker.run(batch)
