import sys
import os
from decimal import Decimal

import pytest

# Make the src/ layout importable without an editable install
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from receipt_split.config import SplitSettings
from receipt_split.models import LineItem, ReceiptSnapshot


@pytest.fixture
def settings():
    return SplitSettings(api_base_url="https://splits.test/api/v1", api_token="test-token")


@pytest.fixture
def lenient_settings():
    return SplitSettings(api_base_url="https://splits.test/api/v1", strict_mode=False)


@pytest.fixture
def bread_and_milk():
    """Two-item grocery receipt; Bread has no backend id."""
    return ReceiptSnapshot(
        receipt_id="rcpt-001",
        store_name="Colruyt",
        total_amount=Decimal("5.00"),
        items=[
            LineItem(source_index=0, name="Bread", unit_price=Decimal("2.00"), quantity=1),
            LineItem(source_index=1, backend_item_id="item-milk", name="Milk", unit_price=Decimal("3.00"), quantity=1),
        ],
    )


@pytest.fixture
def receipt_payload():
    """Receipt detail response as the receipts API returns it."""
    return {
        "receipt_id": "rcpt-042",
        "status": "completed",
        "store_name": "Delhaize",
        "total_amount": 17.47,
        "items_count": 3,
        "transactions": [
            {"item_id": "itm-1", "item_name": "Coffee Beans", "item_price": 8.99, "quantity": 1, "unit_price": 8.99},
            {"item_id": None, "item_name": "Bananas", "item_price": 2.58, "quantity": 2},
            {"item_name": "Oat Milk", "item_price": 5.90, "quantity": 2, "unit_price": 2.95},
        ],
        "warnings": [],
    }


class FakeSplitServer:
    """
    In-memory stand-in for the split backend.

    Issues fresh server ids on save and echoes them back in upper case inside
    assignments, mimicking clients and servers that disagree on UUID case.
    """

    def __init__(self):
        self.records = {}
        self.friends = []
        self.save_calls = []
        self.fetch_calls = []
        self.fail_with = None

    async def fetch_existing(self, receipt_id):
        self.fetch_calls.append(receipt_id)
        if self.fail_with is not None:
            raise self.fail_with
        return self.records.get(receipt_id)

    async def save(self, request):
        from uuid import uuid4
        from receipt_split.models import Participant, SplitAssignment, SplitRecord

        self.save_calls.append(request)
        if self.fail_with is not None:
            raise self.fail_with

        participants = [
            Participant(id=uuid4(), name=p.name, color_token=p.color_token, display_order=i, is_self=p.is_self)
            for i, p in enumerate(request.participants)
        ]
        assignments = [
            SplitAssignment(
                id=str(uuid4()),
                transaction_id=a.item_key,
                participant_ids=[str(participants[i].id).upper() for i in a.participant_indices],
            )
            for a in request.assignments
        ]
        record = SplitRecord(
            id=f"split-{len(self.save_calls)}",
            receipt_id=request.receipt_id,
            participants=participants,
            assignments=assignments,
        )
        self.records[request.receipt_id] = record
        return record

    async def fetch_recent_friends(self, limit=10):
        return self.friends[:limit]


@pytest.fixture
def fake_server():
    return FakeSplitServer()
