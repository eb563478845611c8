from datetime import date

import pytest

from core.records import ShortageRecord, SourceSheet


def build_record(**overrides) -> ShortageRecord:
    """A 14:00 shortage of product A in Cozinha Fria, overridable per field."""
    fields = {
        "checkpoint_text": "Rutura 14h",
        "section": "Cozinha Fria",
        "work_order_id": "OT1",
        "requisition_id": "REQ1",
        "product_code": "A",
        "product_description": "Pimento Assado Congelado",
        "product_category": "Congelados",
        "quantity_requested": 5.0,
        "quantity_delivered": 0.0,
        "quantity_short": 5.0,
        "unit_of_measure": "KG",
        "date": date(2025, 4, 1),
        "stock_primary": 0.0,
        "stock_secondary": 0.0,
        "in_transit_secondary": 0.0,
        "shortage_type": "Sem Stock Físico e BC",
        "source_sheet": SourceSheet.IMPORT,
    }
    fields.update(overrides)
    return ShortageRecord(**fields)


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def sample_records():
    """Two weeks of 14H/18H observations across three sections."""
    return [
        # Week 1: A persists to 18h, B gets resolved, C only seen at 18h
        build_record(product_code="A", work_order_id="OT1", requisition_id="REQ1"),
        build_record(product_code="A", work_order_id="OT1", requisition_id="REQ1", checkpoint_text="Rutura 18h"),
        build_record(
            product_code="B",
            product_description="Iogurte Natural",
            section="COZINHA QUENTE",
            work_order_id="OT2",
            requisition_id="REQ2",
            quantity_short=2.0,
            stock_primary=4.0,
            shortage_type="",
        ),
        build_record(
            product_code="C",
            product_description="Pão de Forma",
            section="Pastelaria",
            work_order_id="OT3",
            requisition_id="REQ3",
            checkpoint_text="Rutura 18H",
            quantity_requested=10.0,
            quantity_short=10.0,
            stock_secondary=8.0,
            shortage_type="",
        ),
        # Week 2: A again at 14h only
        build_record(
            product_code="A",
            work_order_id="OT1",
            requisition_id="REQ1",
            date=date(2025, 4, 9),
            quantity_short=3.0,
            in_transit_secondary=6.0,
        ),
        # No checkpoint at all
        build_record(product_code="D", checkpoint_text="Rutura", section="cf", quantity_short=1.0),
    ]
