"""
Filtering of a prepared batch (the dashboard's filter panel).

Analytics run on the filtered batch, so shares and rates are relative to
what the user selected.
"""

from dataclasses import dataclass, fields
from datetime import date

import pandas as pd

from .config import AnalysisConfig
from .parsers import SectionNormalizer
from .records import SourceSheet

SEARCH_COLUMNS = [
    "product_code",
    "product_description",
    "section_normalized",
    "work_order_id",
    "requisition_id",
]

OPTION_COLUMNS = {
    "week_label": "week_label",
    "section": "section_normalized",
    "requisition_type": "requisition_type",
    "product_category": "product_category",
    "shortage_type": "shortage_type_resolved",
    "source_sheet": "source_sheet",
}


@dataclass(frozen=True)
class ShortageFilter:
    """
    Optional criteria; unset fields don't filter.

    Date bounds are inclusive. When a bound is set, records without a
    date are left out.
    """

    week_label: str | None = None
    section: str | None = None
    requisition_type: str | None = None
    product_category: str | None = None
    product_code: str | None = None
    shortage_type: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    source_sheet: SourceSheet | None = None
    search: str | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) in (None, "") for f in fields(self))

    def describe(self) -> dict:
        """The criteria that are set, as plain values."""
        described = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value in (None, ""):
                continue
            if isinstance(value, SourceSheet):
                value = value.value
            elif isinstance(value, date):
                value = value.isoformat()
            described[f.name] = value
        return described

    def apply(self, batch: pd.DataFrame, config: AnalysisConfig | None = None) -> pd.DataFrame:
        """Return the matching rows (a copy; the input is untouched)."""
        config = config or AnalysisConfig()
        mask = pd.Series(True, index=batch.index)

        if self.week_label:
            mask &= batch["week_label"] == self.week_label
        if self.section:
            wanted = SectionNormalizer(config.section_aliases).normalize(self.section)
            mask &= batch["section_normalized"] == wanted
        if self.requisition_type:
            mask &= batch["requisition_type"].str.upper() == self.requisition_type.upper()
        if self.product_category:
            mask &= batch["product_category"] == self.product_category
        if self.product_code:
            mask &= batch["product_code"].str.strip() == self.product_code.strip()
        if self.shortage_type:
            mask &= batch["shortage_type_resolved"] == self.shortage_type
        if self.source_sheet is not None:
            mask &= batch["source_sheet"] == SourceSheet(self.source_sheet).value

        if self.date_from is not None:
            mask &= batch["date"].notna() & (batch["date"] >= pd.Timestamp(self.date_from))
        if self.date_to is not None:
            mask &= batch["date"].notna() & (batch["date"] <= pd.Timestamp(self.date_to))

        if self.search:
            needle = self.search.strip().casefold()
            hits = pd.Series(False, index=batch.index)
            for col in SEARCH_COLUMNS:
                hits |= batch[col].astype(str).str.casefold().str.contains(needle, regex=False)
            mask &= hits

        return batch[mask].copy()


def filter_options(batch: pd.DataFrame) -> dict[str, list[str]]:
    """Distinct non-blank values per selectable filter, sorted."""
    options = {}
    for name, column in OPTION_COLUMNS.items():
        values = batch[column].dropna().astype(str).str.strip()
        options[name] = sorted(v for v in values.unique() if v)
    return options
