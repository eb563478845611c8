"""
Shortage ("rutura") record model.

One ShortageRecord is one row of the daily 14:00 / 18:00 shortage sheets.
Field aliases are the short keys used by the compressed storage format, so
the same model validates imported rows and persisted payloads.
"""

import datetime as dt
from enum import Enum
from typing import Iterable

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field


class Checkpoint(str, Enum):
    """Daily observation time a record belongs to."""

    CHECKPOINT_14 = "14H"
    CHECKPOINT_18 = "18H"
    UNKNOWN = "UNKNOWN"  # Excluded from checkpoint-based reconciliation


class SourceSheet(str, Enum):
    """Sheet/tab a record was imported from."""

    CHECKPOINT_14 = "14H"
    CHECKPOINT_18 = "18H"
    IMPORT = "IMPORT"
    OTHER = "OTHER"


class ShortageRecord(BaseModel):
    """A single observed shortage event."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    record_id: str | None = Field(default=None, alias="id")
    week_label: str = Field(default="", alias="s")
    checkpoint_text: str = Field(default="", alias="hr", description="e.g. 'Rutura 14h'")
    checkpoint_detail: str = Field(default="", alias="hdr")
    section: str = Field(default="", alias="sec")
    requisition_type: str = Field(default="NORMAL", alias="tr")
    work_order_id: str = Field(default="", alias="ot")
    requisition_id: str = Field(default="", alias="req")
    product_category: str = Field(default="", alias="tp")
    product_code: str = Field(default="", alias="np")
    product_description: str = Field(default="", alias="desc")
    quantity_requested: float = Field(default=0.0, ge=0, alias="qr")
    quantity_delivered: float = Field(default=0.0, ge=0, alias="qe")
    quantity_short: float = Field(default=0.0, ge=0, alias="qf")
    unit_of_measure: str = Field(default="UN", alias="um")
    date: dt.date | None = Field(default=None, alias="d")
    stock_primary: float = Field(default=0.0, alias="sct", description="Stock at CT")
    stock_secondary: float = Field(default=0.0, alias="sff", description="Stock at FF")
    in_transit_secondary: float = Field(default=0.0, alias="etf")
    shortage_type: str = Field(default="", alias="tip")
    source_sheet: SourceSheet = Field(default=SourceSheet.OTHER, alias="ab")


RECORD_COLUMNS = list(ShortageRecord.model_fields)

NUMERIC_COLUMNS = [
    "quantity_requested",
    "quantity_delivered",
    "quantity_short",
    "stock_primary",
    "stock_secondary",
    "in_transit_secondary",
]


def records_to_frame(records: Iterable[ShortageRecord]) -> pd.DataFrame:
    """
    Build a DataFrame with one row per record and one column per field.

    The column set is fixed, so an empty batch still yields every column.
    Enums are stored as their string values.
    """
    rows = [record.model_dump(mode="python") for record in records]
    df = pd.DataFrame(rows, columns=RECORD_COLUMNS)

    for col in NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).astype(float)

    df["source_sheet"] = df["source_sheet"].map(
        lambda s: s.value if isinstance(s, SourceSheet) else str(s)
    )
    df["date"] = pd.to_datetime(df["date"], errors="coerce")

    return df
