from datetime import date, datetime

import pandas as pd
import pytest

from core.parsers import (
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
from core.records import Checkpoint, SourceSheet


class TestSectionNormalizer:
    def test_case_variants_collapse(self):
        assert normalize_section("Cozinha Fria") == normalize_section("COZINHA FRIA")

    def test_abbreviations_and_hyphen_spacing(self):
        assert normalize_section("CF-EK") == "COZINHA FRIA - EK"
        assert normalize_section("cozinha fria -  ek") == "COZINHA FRIA - EK"
        assert normalize_section("Refeitorio") == normalize_section("REFEITÓRIO")

    def test_unknown_is_only_trimmed(self):
        assert normalize_section("  Talho Central ") == "Talho Central"

    def test_missing_values_become_empty(self):
        assert normalize_section(None) == ""
        assert SectionNormalizer().normalize(float("nan")) == ""

    def test_custom_aliases_extend_defaults(self):
        normalizer = SectionNormalizer({"Talho": "TALHO", "cf": "FRIO"})
        assert normalizer.normalize("talho") == "TALHO"
        assert normalizer.normalize("CF") == "FRIO"
        assert normalizer.normalize("Cozinha Quente") == "COZINHA QUENTE"

    def test_normalize_series(self):
        result = SectionNormalizer().normalize_series(pd.Series(["cq", " Pastelaria "]))
        assert result.tolist() == ["COZINHA QUENTE", "PASTELARIA"]


class TestCheckpoint:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Rutura 14h", Checkpoint.CHECKPOINT_14),
            ("RUTURA 14H", Checkpoint.CHECKPOINT_14),
            ("Rutura 18h-Sem Stock Físico e BC", Checkpoint.CHECKPOINT_18),
            ("Rutura", Checkpoint.UNKNOWN),
            ("14h / 18h", Checkpoint.UNKNOWN),
            ("", Checkpoint.UNKNOWN),
            (None, Checkpoint.UNKNOWN),
        ],
    )
    def test_classify(self, text, expected):
        assert classify_checkpoint(text) is expected

    def test_source_sheet_fills_unknown_text(self):
        assert resolve_checkpoint("Rutura", SourceSheet.CHECKPOINT_18) is Checkpoint.CHECKPOINT_18
        assert resolve_checkpoint("", "14H") is Checkpoint.CHECKPOINT_14

    def test_text_wins_over_source_sheet(self):
        assert resolve_checkpoint("Rutura 14h", SourceSheet.CHECKPOINT_18) is Checkpoint.CHECKPOINT_14

    def test_import_sheet_never_supplies_checkpoint(self):
        assert resolve_checkpoint("Rutura", SourceSheet.IMPORT) is Checkpoint.UNKNOWN
        assert resolve_checkpoint("Rutura", SourceSheet.CHECKPOINT_14, use_source_sheet=False) is Checkpoint.UNKNOWN


class TestWeekLabeler:
    def test_portuguese_labels(self):
        assert week_label_from_date(date(2025, 4, 1)) == "1ª Semana de Abril"
        assert week_label_from_date(date(2025, 4, 8)) == "2ª Semana de Abril"
        assert week_label_from_date(date(2025, 3, 31)) == "5ª Semana de Março"

    def test_english_labels(self):
        assert week_label_from_date(date(2025, 3, 2), locale="en") == "1st week of March"
        assert week_label_from_date(date(2025, 3, 20), locale="en") == "3rd week of March"

    def test_accepts_datetimes_and_timestamps(self):
        assert week_label_from_date(datetime(2025, 4, 15, 14, 0)) == "3ª Semana de Abril"
        assert week_label_from_date(pd.Timestamp("2025-04-22")) == "4ª Semana de Abril"

    @pytest.mark.parametrize("value", [None, pd.NaT, "01/04/2025", 45748, float("nan")])
    def test_invalid_dates_give_sentinel(self, value):
        assert week_label_from_date(value) == WeekLabeler("pt").unknown_label

    def test_period_key_sorts_chronologically(self):
        labeler = WeekLabeler()
        keys = [labeler.period(d).key for d in [date(2025, 10, 1), date(2025, 9, 30), date(2024, 12, 31)]]
        assert sorted(keys) == ["2024-12-W5", "2025-09-W5", "2025-10-W1"]

    @pytest.mark.parametrize(
        "label, expected",
        [
            ("1ª Semana de Abril", WeekPeriod(None, 4, 1)),
            ("5ª semana de março", WeekPeriod(None, 3, 5)),
            ("2a Semana de Marco", WeekPeriod(None, 3, 2)),
            ("3rd week of December", WeekPeriod(None, 12, 3)),
            ("  4 WEEK OF june ", WeekPeriod(None, 6, 4)),
        ],
    )
    def test_parse_label(self, label, expected):
        assert WeekLabeler.parse_label(label) == expected

    @pytest.mark.parametrize("label", ["Semana 15", "7ª Semana de Abril", "1ª Semana de Brumário", "", None, "Semana inválida"])
    def test_parse_label_rejects_other_text(self, label):
        assert WeekLabeler.parse_label(label) is None

    def test_label_round_trips_to_month_week(self):
        labeler = WeekLabeler()
        period = labeler.period(date(2025, 4, 30))
        assert WeekLabeler.parse_label(labeler.label_for_period(period)).month_week == period.month_week

    def test_yearless_key(self):
        assert WeekPeriod(None, 4, 2).key == "04-W2"
        assert WeekPeriod(2025, 4, 2).key == "2025-04-W2"

    def test_unsupported_locale(self):
        with pytest.raises(ValueError):
            WeekLabeler("fr")

    def test_placeholders(self):
        assert is_placeholder_week_label("")
        assert is_placeholder_week_label(None)
        assert is_placeholder_week_label("Semana inválida")
        assert is_placeholder_week_label("unknown week")
        assert is_placeholder_week_label("Sem dados")
        assert not is_placeholder_week_label("1ª Semana de Abril")


class TestDateParser:
    def test_day_first_when_first_part_above_12(self):
        assert DateParser().parse("25/04/2025") == date(2025, 4, 25)

    def test_month_first_when_second_part_above_12(self):
        assert DateParser().parse("04/25/2025") == date(2025, 4, 25)

    def test_ambiguous_uses_day_first_setting(self):
        assert DateParser().parse("01/04/2025") == date(2025, 4, 1)
        assert DateParser(day_first=False).parse("01/04/2025") == date(2025, 1, 4)

    def test_two_digit_year(self):
        assert DateParser().parse("15/04/25") == date(2025, 4, 15)

    def test_iso_and_dash_formats(self):
        assert DateParser().parse("2025-04-01") == date(2025, 4, 1)
        assert DateParser().parse("01-04-2025") == date(2025, 4, 1)

    def test_spreadsheet_serials(self):
        assert DateParser().parse(45748) == date(2025, 4, 1)
        assert DateParser().parse("45748") == date(2025, 4, 1)

    def test_date_objects_pass_through(self):
        assert DateParser().parse(datetime(2025, 4, 1, 9, 30)) == date(2025, 4, 1)
        assert DateParser().parse(date(2025, 4, 1)) == date(2025, 4, 1)

    @pytest.mark.parametrize("value", [None, "", "#N/A", "Sem Stock", "31/31/2025", float("nan"), pd.NaT, 0])
    def test_unparseable_returns_none(self, value):
        assert DateParser().parse(value) is None

    def test_parse_series(self):
        result = DateParser().parse_series(pd.Series(["25/04/2025", "lixo"]))
        assert result.tolist() == [date(2025, 4, 25), None]
