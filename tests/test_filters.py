from datetime import date

import pytest

from core.batch import prepare_batch
from core.filters import ShortageFilter, filter_options
from core.records import SourceSheet


@pytest.fixture
def batch(sample_records, make_record):
    extra = make_record(
        product_code="E",
        product_description="Salmão Fumado",
        requisition_type="urgente",
        product_category="Peixe",
        date=None,
        source_sheet=SourceSheet.CHECKPOINT_18,
    )
    return prepare_batch(sample_records + [extra])


def codes(df):
    return df["product_code"].tolist()


def test_empty_filter_keeps_everything(batch):
    f = ShortageFilter()
    assert f.is_empty()
    assert f.describe() == {}
    assert len(f.apply(batch)) == len(batch)


def test_section_filter_is_normalized(batch):
    assert codes(ShortageFilter(section="CF").apply(batch)) == ["A", "A", "A", "D", "E"]


def test_requisition_type_is_case_insensitive(batch):
    assert codes(ShortageFilter(requisition_type="URGENTE").apply(batch)) == ["E"]


def test_exact_filters(batch):
    assert codes(ShortageFilter(product_category="Peixe").apply(batch)) == ["E"]
    assert codes(ShortageFilter(product_code=" C ").apply(batch)) == ["C"]
    assert codes(ShortageFilter(shortage_type="A pedir à FF").apply(batch)) == ["C"]
    assert codes(ShortageFilter(week_label="2ª Semana de Abril").apply(batch)) == ["A"]
    assert codes(ShortageFilter(source_sheet=SourceSheet.CHECKPOINT_18).apply(batch)) == ["E"]


def test_date_bounds_are_inclusive_and_drop_undated(batch):
    filtered = ShortageFilter(date_from=date(2025, 4, 9), date_to=date(2025, 4, 9)).apply(batch)
    assert codes(filtered) == ["A"]
    assert "E" not in codes(ShortageFilter(date_from=date(2020, 1, 1)).apply(batch))


def test_search_matches_description_case_insensitively(batch):
    assert codes(ShortageFilter(search="iogurte").apply(batch)) == ["B"]
    assert codes(ShortageFilter(search="pastelaria").apply(batch)) == ["C"]


def test_criteria_combine(batch):
    assert codes(ShortageFilter(section="Cozinha Fria", product_code="D").apply(batch)) == ["D"]


def test_apply_returns_copy(batch):
    filtered = ShortageFilter(product_code="A").apply(batch)
    filtered["product_code"] = "X"
    assert "X" not in batch["product_code"].tolist()


def test_describe(batch):
    f = ShortageFilter(source_sheet=SourceSheet.CHECKPOINT_14, date_from=date(2025, 4, 1), search="")
    assert f.describe() == {"date_from": "2025-04-01", "source_sheet": "14H"}


def test_filter_options(batch):
    options = filter_options(batch)

    assert options["section"] == ["COZINHA FRIA", "COZINHA QUENTE", "PASTELARIA"]
    assert options["requisition_type"] == ["NORMAL", "urgente"]
    assert options["product_category"] == ["Congelados", "Peixe"]
    assert options["source_sheet"] == ["18H", "IMPORT"]
    assert "Semana inválida" in options["week_label"]
