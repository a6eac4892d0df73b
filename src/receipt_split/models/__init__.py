"""
Data models for receipt splitting.
"""

from .receipt import LineItem, ReceiptSnapshot
from .split import (
    SELF_COLOR,
    FriendColor,
    Participant,
    RecentFriend,
    SplitAssignment,
    SplitRecord,
    ParticipantCreate,
    AssignmentCreate,
    SplitRequest,
    SplitShare,
    SplitResult,
)

__all__ = [
    "LineItem", "ReceiptSnapshot", "SELF_COLOR", "FriendColor", "Participant", "RecentFriend",
    "SplitAssignment", "SplitRecord", "ParticipantCreate", "AssignmentCreate", "SplitRequest",
    "SplitShare", "SplitResult",
]
