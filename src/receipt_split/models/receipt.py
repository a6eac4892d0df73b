"""
Receipt data consumed by the split engine.

A receipt is decoded fresh on every fetch, so the objects defined here carry
no identity of their own beyond their position and the optional backend id.
"""

from decimal import Decimal, InvalidOperation
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from receipt_split.utils.logging_config import logger


class LineItem(BaseModel):
    """
    A single purchased product on a receipt.
    Immutable once decoded; equal-looking instances from two decodes are distinct objects.
    """
    model_config = ConfigDict(frozen=True)

    source_index: int = Field(ge=0)
    backend_item_id: Optional[str] = None
    name: str
    unit_price: Decimal
    quantity: int = Field(default=1, ge=0)

    @field_validator('backend_item_id')
    @classmethod
    def blank_id_is_missing(cls, v):
        """An empty string from the backend means the id was never assigned."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def line_total(self) -> Decimal:
        """Price of the whole line: unit price times quantity."""
        return self.unit_price * self.quantity


class ReceiptSnapshot(BaseModel):
    """
    The read-only view of one receipt that a split session allocates over.
    """
    receipt_id: str
    store_name: Optional[str] = None
    total_amount: Optional[Decimal] = None
    items: List[LineItem] = Field(default_factory=list)

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def items_total(self) -> Decimal:
        """Sum of all line totals."""
        return sum((item.line_total for item in self.items), Decimal('0'))

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ReceiptSnapshot":
        """
        Decodes a receipt upload/detail response.

        Line items arrive under `transactions`; each carries the line total in
        `item_price` and optionally `unit_price`. A missing unit price is derived
        from the line total and quantity.
        """
        items = []
        for index, raw in enumerate(payload.get('transactions') or []):
            quantity = int(raw.get('quantity') or 1)
            unit_price = raw.get('unit_price')
            if unit_price is None:
                line_price = _to_decimal(raw.get('item_price'))
                unit_price = line_price / quantity if quantity else line_price
            items.append(LineItem(
                source_index=index,
                backend_item_id=raw.get('item_id'),
                name=raw.get('item_name') or raw.get('name') or f"Item {index + 1}",
                unit_price=_to_decimal(unit_price),
                quantity=quantity,
            ))

        total = payload.get('total_amount')
        receipt = cls(
            receipt_id=str(payload['receipt_id']),
            store_name=payload.get('store_name'),
            total_amount=_to_decimal(total) if total is not None else None,
            items=items,
        )
        logger.debug(f"Decoded receipt {receipt.receipt_id} with {receipt.item_count} items")
        return receipt


def _to_decimal(value) -> Decimal:
    """Converts wire numbers to Decimal through their string form to avoid float artifacts."""
    if value is None:
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        logger.warning(f"Unparseable amount in receipt payload: {value!r}")
        raise ValueError(f"Invalid monetary amount: {value!r}")
