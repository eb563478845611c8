"""
Shortage type ("tipologia") auto-classification.

Used when a sheet row leaves the shortage type blank. The outcome depends
only on which stock positions are empty, written out as a decision table
so every combination has exactly one answer.
"""

from enum import Enum


class ShortageType(str, Enum):
    NO_STOCK = "Sem Stock Físico e BC"
    INVENTORY_ADJUSTMENT = "Acerto de Inventário"
    ORDER_FROM_SECONDARY = "A pedir à FF"
    IN_TRANSFER = "Em Transferência da FF"
    OTHER = "Outros"


# (primary stocked, secondary stocked, in transit, nothing shipped) -> type
# Only consulted for rows that are still short (quantity_short > 0).
DECISION_TABLE: dict[tuple[bool, bool, bool, bool], ShortageType] = {
    (False, False, False, False): ShortageType.NO_STOCK,
    (False, False, False, True): ShortageType.NO_STOCK,
    (False, True, False, False): ShortageType.ORDER_FROM_SECONDARY,
    (False, True, False, True): ShortageType.ORDER_FROM_SECONDARY,
    (False, False, True, False): ShortageType.IN_TRANSFER,
    (False, False, True, True): ShortageType.IN_TRANSFER,
    (False, True, True, False): ShortageType.IN_TRANSFER,
    (False, True, True, True): ShortageType.IN_TRANSFER,
    (True, False, False, True): ShortageType.INVENTORY_ADJUSTMENT,
    (True, True, False, True): ShortageType.INVENTORY_ADJUSTMENT,
    (True, False, True, True): ShortageType.INVENTORY_ADJUSTMENT,
    (True, True, True, True): ShortageType.INVENTORY_ADJUSTMENT,
    (True, False, False, False): ShortageType.OTHER,
    (True, True, False, False): ShortageType.OTHER,
    (True, False, True, False): ShortageType.OTHER,
    (True, True, True, False): ShortageType.OTHER,
}


def classify_shortage_type(
    quantity_short: float,
    quantity_requested: float,
    quantity_delivered: float,
    stock_primary: float,
    stock_secondary: float,
    in_transit: float,
) -> ShortageType:
    """
    Infer why a shortage happened from the stock positions of its row.

    Rows with nothing missing are always OTHER.
    """
    if not quantity_short > 0:
        return ShortageType.OTHER

    nothing_shipped = quantity_delivered == 0 and quantity_requested > 0
    key = (stock_primary > 0, stock_secondary > 0, in_transit > 0, nothing_shipped)
    return DECISION_TABLE[key]
