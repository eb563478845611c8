"""
Parsers and normalizers for the shortage sheets.

The sheets are filled in by hand at two checkpoints a day, so:
- Section names come in several spellings (case, abbreviations, "CF - EK" vs "CF-EK")
- The checkpoint lives in free text ("Rutura 14h", "RUTURA 18H")
- Dates mix DD/MM/YYYY, MM/DD/YYYY and spreadsheet serial numbers
"""

import re
import unicodedata
from datetime import date, datetime, timedelta
from typing import NamedTuple

import pandas as pd

from .records import Checkpoint, SourceSheet


class DateParser:
    """
    Resolves the date cells of the shortage sheets to calendar dates.

    Handles date/datetime objects, spreadsheet serial numbers (1900 system),
    ISO strings and ambiguous slash dates. For A/B/YYYY: A > 12 means
    DD/MM, B > 12 means MM/DD, otherwise ``day_first`` decides.
    """

    # Day zero of the 1900 spreadsheet date system (includes the 1900 leap bug)
    SERIAL_EPOCH = datetime(1899, 12, 30)

    DASH_FORMATS = [
        "%Y-%m-%d",      # ISO: 2025-04-01
        "%d-%m-%Y",      # EU: 01-04-2025
        "%Y-%m-%d %H:%M:%S",
    ]

    def __init__(self, day_first: bool = True):
        self.day_first = day_first
        self._cache: dict[str, date | None] = {}

    def parse(self, value) -> date | None:
        """Parse a single cell. Returns None when it isn't a usable date."""
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return None

        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, (int, float)):
            return self._from_serial(float(value))

        raw = str(value).strip()
        if not raw:
            return None

        if raw in self._cache:
            return self._cache[raw]

        result = self._parse_text(raw)
        self._cache[raw] = result
        return result

    def parse_series(self, series: pd.Series) -> pd.Series:
        """Parse an entire pandas Series of date cells."""
        return series.map(self.parse)

    def _parse_text(self, raw: str) -> date | None:
        if re.fullmatch(r"\d{1,6}(\.\d+)?", raw):
            return self._from_serial(float(raw))

        if "/" in raw:
            return self._parse_slash(raw)

        for fmt in self.DASH_FORMATS:
            try:
                return datetime.strptime(raw, fmt).date()
            except ValueError:
                continue
        return None

    def _parse_slash(self, raw: str) -> date | None:
        parts = raw.split(" ")[0].split("/")
        if len(parts) != 3 or not all(p.isdigit() for p in parts):
            return None

        first, second, year = (int(p) for p in parts)
        if year < 100:
            year += 2000

        if first > 12:
            day, month = first, second
        elif second > 12:
            month, day = first, second
        elif self.day_first:
            day, month = first, second
        else:
            month, day = first, second

        try:
            return date(year, month, day)
        except ValueError:
            return None

    def _from_serial(self, serial: float) -> date | None:
        if serial < 1:
            return None
        result = (self.SERIAL_EPOCH + timedelta(days=int(serial))).date()
        if not 1900 < result.year < 2100:
            return None
        return result


class SectionNormalizer:
    """
    Folds the spellings of an organizational section into one label.

    Lookup is insensitive to case, repeated whitespace and the spacing
    around hyphens. Unknown sections are returned stripped, otherwise
    unchanged.
    """

    DEFAULT_ALIASES = {
        "cozinha fria": "COZINHA FRIA",
        "cf": "COZINHA FRIA",
        "cozinha fria - ek": "COZINHA FRIA - EK",
        "cf - ek": "COZINHA FRIA - EK",
        "cozinha fria - ke": "COZINHA FRIA - KE",
        "cf - ke": "COZINHA FRIA - KE",
        "cozinha quente": "COZINHA QUENTE",
        "cq": "COZINHA QUENTE",
        "cozinha quente - ek": "COZINHA QUENTE - EK",
        "cq - ek": "COZINHA QUENTE - EK",
        "cozinha quente - ke": "COZINHA QUENTE - KE",
        "cq - ke": "COZINHA QUENTE - KE",
        "pastelaria": "PASTELARIA",
        "pas": "PASTELARIA",
        "refeitorio": "REFEITÓRIO",
        "refeitório": "REFEITÓRIO",
        "ref": "REFEITÓRIO",
        "tsu": "TSU",
        "tsu - ac": "TSU - AC",
    }

    def __init__(self, aliases: dict[str, str] | None = None):
        """
        Args:
            aliases: Extra raw -> canonical mappings (override the defaults)
        """
        self.aliases = {
            self.lookup_key(raw): canonical
            for raw, canonical in {**self.DEFAULT_ALIASES, **(aliases or {})}.items()
        }

    @staticmethod
    def lookup_key(raw: str) -> str:
        key = " ".join(str(raw).split()).casefold()
        return re.sub(r"\s*-\s*", " - ", key)

    def normalize(self, raw: str | None) -> str:
        """Normalize a single section name. Never fails; None becomes ''."""
        if raw is None or (not isinstance(raw, str) and pd.isna(raw)):
            return ""

        stripped = str(raw).strip()
        return self.aliases.get(self.lookup_key(stripped), stripped)

    def normalize_series(self, series: pd.Series) -> pd.Series:
        """Normalize an entire pandas Series of section names."""
        return series.map(self.normalize)


_default_section_normalizer = SectionNormalizer()


def normalize_section(raw: str | None, aliases: dict[str, str] | None = None) -> str:
    normalizer = SectionNormalizer(aliases) if aliases else _default_section_normalizer
    return normalizer.normalize(raw)


def classify_checkpoint(free_text: str | None) -> Checkpoint:
    """
    Classify the checkpoint from free text such as "Rutura 14h".

    Text mentioning both checkpoints, or neither, is UNKNOWN.
    """
    if free_text is None or (not isinstance(free_text, str) and pd.isna(free_text)):
        return Checkpoint.UNKNOWN

    text = str(free_text).lower()
    has_14 = "14h" in text
    has_18 = "18h" in text

    if has_14 and not has_18:
        return Checkpoint.CHECKPOINT_14
    if has_18 and not has_14:
        return Checkpoint.CHECKPOINT_18
    return Checkpoint.UNKNOWN


def resolve_checkpoint(
    free_text: str | None,
    source_sheet: SourceSheet | str | None,
    use_source_sheet: bool = True,
) -> Checkpoint:
    """Text first; the 14H/18H source sheet only fills in an UNKNOWN."""
    checkpoint = classify_checkpoint(free_text)
    if checkpoint is not Checkpoint.UNKNOWN or not use_source_sheet:
        return checkpoint

    sheet = source_sheet.value if isinstance(source_sheet, SourceSheet) else source_sheet
    if sheet == SourceSheet.CHECKPOINT_14.value:
        return Checkpoint.CHECKPOINT_14
    if sheet == SourceSheet.CHECKPOINT_18.value:
        return Checkpoint.CHECKPOINT_18
    return Checkpoint.UNKNOWN


class WeekPeriod(NamedTuple):
    """
    A week within a month. ``key`` sorts chronologically.

    ``year`` is None for weeks known only from a label such as
    "2ª Semana de Abril"; ``month_week`` is comparable either way.
    """

    year: int | None
    month: int
    week: int

    @property
    def month_week(self) -> str:
        return f"{self.month:02d}-W{self.week}"

    @property
    def key(self) -> str:
        if self.year is None:
            return self.month_week
        return f"{self.year:04d}-{self.month_week}"


class WeekLabeler:
    """
    Produces "week of month" labels, e.g. "1ª Semana de Abril".

    Week N covers days 7(N-1)+1 .. 7N of the month, so the 29th-31st
    fall in week 5.
    """

    LOCALES = {
        "pt": {
            "months": [
                "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
                "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
            ],
            "template": "{week}ª Semana de {month}",
            "unknown": "Semana inválida",
        },
        "en": {
            "months": [
                "January", "February", "March", "April", "May", "June",
                "July", "August", "September", "October", "November", "December",
            ],
            "template": "{week}{suffix} week of {month}",
            "unknown": "Unknown week",
        },
    }

    # Labels left behind by older imports that mean "no week"
    LEGACY_PLACEHOLDERS = {"sem dados", "data inválida"}

    def __init__(self, locale: str = "pt"):
        if locale not in self.LOCALES:
            raise ValueError(f"Unsupported locale: {locale!r}")
        self.locale = locale
        self._strings = self.LOCALES[locale]

    @property
    def unknown_label(self) -> str:
        return self._strings["unknown"]

    def period(self, value) -> WeekPeriod | None:
        """Week period of a date, or None when there's no real date."""
        if not isinstance(value, date) or pd.isna(value):
            return None
        return WeekPeriod(value.year, value.month, (value.day - 1) // 7 + 1)

    def label(self, value) -> str:
        period = self.period(value)
        if period is None:
            return self.unknown_label
        return self.label_for_period(period)

    def label_for_period(self, period: WeekPeriod) -> str:
        month = self._strings["months"][period.month - 1]
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(period.week, "th")
        return self._strings["template"].format(week=period.week, month=month, suffix=suffix)

    @classmethod
    def is_placeholder(cls, label: str | None) -> bool:
        """True for empty labels and any locale's "unknown" sentinel."""
        if label is None or (not isinstance(label, str) and pd.isna(label)):
            return True
        text = str(label).strip().casefold()
        if not text:
            return True
        sentinels = {s["unknown"].casefold() for s in cls.LOCALES.values()}
        return text in sentinels or text in cls.LEGACY_PLACEHOLDERS

    # "1ª Semana de Abril", "1a semana de abril", "1st week of April"
    LABEL_PATTERNS = [
        re.compile(r"(\d)\s*[ªºa]?\.?\s+semana\s+de\s+(\w+)"),
        re.compile(r"(\d)\s*(?:st|nd|rd|th)?\s+week\s+of\s+(\w+)"),
    ]

    @classmethod
    def parse_label(cls, label: str | None) -> WeekPeriod | None:
        """
        Read a week label of any supported locale back into a period.

        The year is unknown (None). Returns None for placeholders and
        free-text labels.
        """
        if cls.is_placeholder(label):
            return None

        text = _fold(str(label).strip())
        months = {
            _fold(name): number
            for strings in cls.LOCALES.values()
            for number, name in enumerate(strings["months"], start=1)
        }
        for pattern in cls.LABEL_PATTERNS:
            match = pattern.fullmatch(text)
            if match is None:
                continue
            week, month = int(match.group(1)), months.get(match.group(2))
            if month is not None and 1 <= week <= 5:
                return WeekPeriod(None, month, week)
        return None


def _fold(text: str) -> str:
    """Casefold and strip accents: "Março" -> "marco"."""
    decomposed = unicodedata.normalize("NFD", text.casefold())
    return " ".join("".join(c for c in decomposed if not unicodedata.combining(c)).split())


def week_label_from_date(value, locale: str = "pt") -> str:
    return WeekLabeler(locale).label(value)


def is_placeholder_week_label(label: str | None) -> bool:
    return WeekLabeler.is_placeholder(label)
