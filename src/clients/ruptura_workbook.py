"""
Loader for the daily shortage ("rutura") workbooks.

THIS FILE CONTAINS SHEET-SPECIFIC LOGIC:
- Column headers as typed in the 14H / 18H sheets (accents and dots vary)
- Portuguese decimal commas ("1,495" is 1.495 KG)
- Identifier cells that Excel turns into floats (463418 -> 463418.0)
- Sheet names that tell which checkpoint a tab holds

To adapt for a new sheet layout:
1. Add the new header spellings to COLUMN_MAP
2. Adjust the coercion helpers if the number format differs
3. The core normalizers, reconciliation and analytics stay as they are
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd
from pydantic import ValidationError

from core.parsers import DateParser
from core.records import ShortageRecord, SourceSheet

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Records read from a file plus the problems found on the way."""

    records: list[ShortageRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def extend(self, other: "ImportResult") -> None:
        self.records.extend(other.records)
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


class RupturaWorkbookLoader:
    """
    Maps shortage sheets to ShortageRecord objects.

    Sheet quirks handled:
    - Headers differ between versions of the template ("Qtd. Falta", "Qtd Falta", "Falta")
    - Dates can be real dates, serial numbers or DD/MM vs MM/DD strings
    - Quantities use decimal commas; thousands may use dots
    - The checkpoint may only be known from the tab name ("Ruturas 14H")
    """

    # Normalized header -> record field
    COLUMN_MAP = {
        "semana": "week_label",
        "hora rutura": "checkpoint_text",
        "hora": "checkpoint_text",
        "hora da rutura": "checkpoint_detail",
        "secao": "section",
        "seccao": "section",
        "departamento": "section",
        "tipo requisicao": "requisition_type",
        "tipo de requisicao": "requisition_type",
        "ot": "work_order_id",
        "req": "requisition_id",
        "requisicao": "requisition_id",
        "tipo produto": "product_category",
        "n produto": "product_code",
        "no produto": "product_code",
        "numero produto": "product_code",
        "codigo": "product_code",
        "descricao": "product_description",
        "produto": "product_description",
        "qtd req": "quantity_requested",
        "quantidade": "quantity_requested",
        "qtd env": "quantity_delivered",
        "enviado": "quantity_delivered",
        "qtd falta": "quantity_short",
        "falta": "quantity_short",
        "un med": "unit_of_measure",
        "unidade": "unit_of_measure",
        "data": "date",
        "stock ct": "stock_primary",
        "stock ff": "stock_secondary",
        "em transito ff": "in_transit_secondary",
        "tipologia rutura": "shortage_type",
        "tipologia": "shortage_type",
    }

    NUMERIC_FIELDS = [
        "quantity_requested",
        "quantity_delivered",
        "quantity_short",
        "stock_primary",
        "stock_secondary",
        "in_transit_secondary",
    ]

    IDENTIFIER_FIELDS = ["work_order_id", "requisition_id", "product_code"]

    def __init__(self, day_first: bool = True):
        self.date_parser = DateParser(day_first=day_first)

    @staticmethod
    def normalize_header(header) -> str:
        """'Nº Produto' -> 'no produto', 'Qtd. Falta' -> 'qtd falta'."""
        text = unicodedata.normalize("NFKD", str(header))
        text = "".join(c for c in text if not unicodedata.combining(c))
        text = re.sub(r"[^a-z0-9]+", " ", text.lower())
        return " ".join(text.split())

    @staticmethod
    def sheet_source(sheet_name: str) -> SourceSheet:
        name = sheet_name.lower()
        if "14h" in name and "18h" not in name:
            return SourceSheet.CHECKPOINT_14
        if "18h" in name and "14h" not in name:
            return SourceSheet.CHECKPOINT_18
        return SourceSheet.IMPORT

    def load_workbook(self, path: Path | str) -> ImportResult:
        """Load every sheet of an .xlsx workbook."""
        sheets = pd.read_excel(Path(path), sheet_name=None, dtype=object)

        result = ImportResult()
        for sheet_name, df in sheets.items():
            sheet_result = self.load_frame(df, self.sheet_source(str(sheet_name)), label=str(sheet_name))
            result.extend(sheet_result)

        logger.info(
            "Loaded %d records from %s (%d sheets, %d errors, %d warnings)",
            len(result.records), path, len(sheets), len(result.errors), len(result.warnings),
        )
        return result

    def load_csv(self, path: Path | str, source_sheet: SourceSheet = SourceSheet.IMPORT) -> ImportResult:
        """Load a CSV export of a single sheet."""
        df = pd.read_csv(Path(path), dtype=object, keep_default_na=False)
        result = self.load_frame(df, source_sheet, label=Path(path).name)
        logger.info("Loaded %d records from %s", len(result.records), path)
        return result

    def load_frame(
        self,
        df: pd.DataFrame,
        source_sheet: SourceSheet = SourceSheet.IMPORT,
        label: str = "sheet",
    ) -> ImportResult:
        """Map a raw sheet frame to records, one row at a time."""
        result = ImportResult()

        mapping = {}
        for col in df.columns:
            target = self.COLUMN_MAP.get(self.normalize_header(col))
            if target and target not in mapping.values():
                mapping[col] = target

        if not mapping:
            result.warnings.append(f"{label}: no recognizable columns, sheet skipped")
            return result

        mapped = df[list(mapping)].rename(columns=mapping)

        for position, (_, row) in enumerate(mapped.iterrows()):
            line = position + 2  # header is line 1
            if all(_is_blank(v) for v in row.values):
                continue

            fields, row_warnings = self._row_fields(row)
            result.warnings.extend(f"{label} line {line}: {w}" for w in row_warnings)

            problem = self._row_problem(fields)
            if problem:
                result.errors.append(f"{label} line {line}: {problem}")
                continue

            try:
                record = ShortageRecord(
                    record_id=f"{source_sheet.value}-{label}-{line}",
                    source_sheet=source_sheet,
                    **fields,
                )
            except ValidationError as e:
                result.errors.append(f"{label} line {line}: {e.error_count()} invalid fields")
                logger.debug("Rejected %s line %d: %s", label, line, e)
                continue

            result.records.append(record)

        if result.errors:
            logger.warning("%s: %d rows rejected", label, len(result.errors))
        return result

    def _row_fields(self, row: pd.Series) -> tuple[dict, list[str]]:
        fields: dict = {}
        warnings: list[str] = []

        for name, value in row.items():
            if name in self.NUMERIC_FIELDS:
                number = parse_number(value)
                if number is None:
                    warnings.append(f"{name} {value!r} is not a number, using 0")
                    number = 0.0
                fields[name] = number
            elif name == "date":
                parsed = self.date_parser.parse(value)
                if parsed is None and not _is_blank(value):
                    warnings.append(f"date {value!r} could not be parsed")
                fields[name] = parsed
            elif name in self.IDENTIFIER_FIELDS:
                fields[name] = identifier_text(value)
            else:
                fields[name] = "" if _is_blank(value) else str(value).strip()

        if not fields.get("requisition_type"):
            fields.pop("requisition_type", None)
        if not fields.get("unit_of_measure"):
            fields.pop("unit_of_measure", None)
        return fields, warnings

    @staticmethod
    def _row_problem(fields: dict) -> str | None:
        if not fields.get("product_code") and not fields.get("product_description"):
            return "missing product code and description"
        if not fields.get("section"):
            return "missing section"
        return None


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return bool(pd.isna(value))


def parse_number(value) -> float | None:
    """
    Parse a sheet number. Blank is 0; text that isn't a number is None.

    "1,495" -> 1.495, "1.234,5" -> 1234.5, "2.5" -> 2.5
    """
    if _is_blank(value):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip().replace(" ", "")
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        return float(text)
    except ValueError:
        return None


def identifier_text(value) -> str:
    """Render OT / REQ / product cells as text; 463418.0 -> '463418'."""
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    if re.fullmatch(r"\d+\.0+", text):
        return text.split(".")[0]
    return text
