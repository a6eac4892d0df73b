"""
Receipt expense-split engine.
"""

from receipt_split.models import LineItem, ReceiptSnapshot, Participant, SplitRecord, SplitResult
from receipt_split.session import SplitSession, SyncState, begin_session

__all__ = [
    "LineItem", "ReceiptSnapshot", "Participant", "SplitRecord", "SplitResult",
    "SplitSession", "SyncState", "begin_session",
]
