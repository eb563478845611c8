from datetime import date

from core.batch import (
    DERIVED_COLUMNS,
    WEEK_RANK_DATED,
    WEEK_RANK_FREE_TEXT,
    WEEK_RANK_LABEL_ONLY,
    WEEK_RANK_UNKNOWN,
    prepare_batch,
)
from core.config import AnalysisConfig
from core.records import RECORD_COLUMNS


def test_adds_derived_columns(sample_records):
    batch = prepare_batch(sample_records)

    assert list(batch.columns[: len(RECORD_COLUMNS)]) == RECORD_COLUMNS
    assert set(DERIVED_COLUMNS) <= set(batch.columns)
    assert batch["checkpoint"].tolist() == ["14H", "18H", "14H", "18H", "14H", "UNKNOWN"]
    assert batch.loc[5, "section_normalized"] == "COZINHA FRIA"


def test_blank_shortage_type_is_inferred(sample_records):
    batch = prepare_batch(sample_records)

    assert batch.loc[2, "shortage_type_resolved"] == "Acerto de Inventário"
    assert batch.loc[3, "shortage_type_resolved"] == "A pedir à FF"
    assert batch.loc[0, "shortage_type_resolved"] == "Sem Stock Físico e BC"


def test_inference_can_be_disabled(make_record):
    batch = prepare_batch([make_record(shortage_type="")], AnalysisConfig(auto_classify_shortage_type=False))
    assert batch.loc[0, "shortage_type_resolved"] == "Outros"


def test_week_columns(make_record):
    records = [
        make_record(date=date(2025, 4, 9)),
        make_record(date=date(2025, 4, 9), week_label="Semana 15"),
        make_record(date=None, week_label="Semana 15"),
        make_record(date=None, week_label="Sem dados"),
    ]
    batch = prepare_batch(records)

    assert batch["week_key"].tolist() == ["2025-04-W2", "2025-04-W2", "Semana 15", ""]
    assert batch["week_label"].tolist() == [
        "2ª Semana de Abril",
        "Semana 15",
        "Semana 15",
        "Semana inválida",
    ]
    assert batch["week_rank"].tolist() == [
        WEEK_RANK_DATED,
        WEEK_RANK_DATED,
        WEEK_RANK_FREE_TEXT,
        WEEK_RANK_UNKNOWN,
    ]


def test_undated_labels_are_read_as_weeks(make_record):
    records = [
        make_record(date=None, week_label="2ª Semana de Abril"),
        make_record(date=None, week_label="1st week of May"),
    ]
    batch = prepare_batch(records)

    assert batch["week_key"].tolist() == ["04-W2", "05-W1"]
    assert batch["week_match_key"].tolist() == ["04-W2", "05-W1"]
    assert batch["week_year"].tolist() == [0, 0]
    assert batch["week_rank"].tolist() == [WEEK_RANK_LABEL_ONLY, WEEK_RANK_LABEL_ONLY]
    assert batch["week_label"].tolist() == ["2ª Semana de Abril", "1st week of May"]


def test_undated_label_takes_year_of_dated_records(make_record):
    records = [
        make_record(date=date(2025, 4, 2)),
        make_record(date=None, week_label="1ª Semana de Abril"),
        make_record(date=None, week_label="1ª Semana de Maio"),
    ]
    batch = prepare_batch(records)

    assert batch["week_key"].tolist() == ["2025-04-W1", "2025-04-W1", "05-W1"]
    assert batch["week_year"].tolist() == [2025, 2025, 0]
    assert batch["week_rank"].tolist() == [WEEK_RANK_DATED, WEEK_RANK_DATED, WEEK_RANK_LABEL_ONLY]


def test_undated_label_keeps_unknown_year_when_ambiguous(make_record):
    records = [
        make_record(date=date(2024, 4, 2)),
        make_record(date=date(2025, 4, 2)),
        make_record(date=None, week_label="1ª Semana de Abril"),
    ]
    batch = prepare_batch(records)

    assert batch.loc[2, "week_key"] == "04-W1"
    assert batch.loc[2, "week_year"] == 0


def test_english_locale(make_record):
    batch = prepare_batch([make_record()], AnalysisConfig(locale="en"))
    assert batch.loc[0, "week_label"] == "1st week of April"


def test_custom_section_aliases(make_record):
    config = AnalysisConfig(section_aliases={"Talho": "TALHO CENTRAL"})
    batch = prepare_batch([make_record(section="talho")], config)
    assert batch.loc[0, "section_normalized"] == "TALHO CENTRAL"


def test_records_are_not_modified(sample_records):
    before = [r.model_dump() for r in sample_records]
    prepare_batch(sample_records)
    assert [r.model_dump() for r in sample_records] == before


def test_empty_input_keeps_columns():
    batch = prepare_batch([])
    assert batch.empty
    assert list(batch.columns[: len(RECORD_COLUMNS)]) == RECORD_COLUMNS
    assert set(DERIVED_COLUMNS) <= set(batch.columns)
