"""
Data models for receipt expense splits.

Covers the local split model (participants, computed results), the payload
sent to the backend on save, and the authoritative record the backend returns.
Wire names follow the backend's snake_case JSON; Python attribute names are
used locally and both are accepted on input.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Dict

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from receipt_split.utils.normalization import normalize_participant_id, initials_for


SELF_COLOR = "#3B82F6"


class FriendColor(str, Enum):
    """Fixed avatar palette for non-self participants."""
    CORAL = "#FF6B6B"
    OCEAN_BLUE = "#4ECDC4"
    SUNNY_YELLOW = "#FFE66D"
    FOREST_GREEN = "#95E879"
    LAVENDER = "#B388EB"
    TANGERINE = "#FF9F45"
    HOT_PINK = "#FF69B4"
    TEAL = "#00CED1"

    @classmethod
    def from_index(cls, index: int) -> "FriendColor":
        """Deterministic palette pick; wraps around after the last colour."""
        colors = list(cls)
        return colors[index % len(colors)]


class Participant(BaseModel):
    """
    A person who can owe a share of a receipt.
    Exactly one participant per session has `is_self` set.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    color_token: str = Field(alias="color")
    display_order: int = Field(default=0, ge=0)
    is_self: bool = Field(default=False, alias="is_me")
    custom_amount: Optional[Decimal] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Participant names must contain at least one visible character."""
        if not v or not v.strip():
            raise ValueError('Participant name must not be empty')
        return v.strip()

    @property
    def key(self) -> str:
        """Case-normalized identifier used in assignment sets."""
        return normalize_participant_id(self.id)

    @property
    def initials(self) -> str:
        return initials_for(self.name)

    @classmethod
    def create_self(cls, name: str = "Me") -> "Participant":
        """The mandatory "self" participant, always first."""
        return cls(name=name, color_token=SELF_COLOR, display_order=0, is_self=True)


class RecentFriend(BaseModel):
    """A participant from an earlier split, offered for quick re-adding."""
    id: str
    name: str
    color: str
    last_used_at: Optional[datetime] = None
    use_count: int = 0

    @property
    def initials(self) -> str:
        return initials_for(self.name)


class SplitAssignment(BaseModel):
    """One item's assignees as stored by the backend."""
    id: Optional[str] = None
    transaction_id: str
    participant_ids: List[str] = Field(default_factory=list)


class SplitRecord(BaseModel):
    """
    The authoritative split returned by the backend after save or fetch.
    Participant ids here are server-issued.
    """
    id: Optional[str] = None
    receipt_id: str
    participants: List[Participant] = Field(default_factory=list)
    assignments: List[SplitAssignment] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def assignment_map(self) -> Dict[str, List[str]]:
        """Item key -> participant ids, as sent by the server."""
        return {a.transaction_id: list(a.participant_ids) for a in self.assignments}


# --- Save payload ---

class ParticipantCreate(BaseModel):
    """A participant in the save request; the backend issues its id."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    color_token: str = Field(alias="color")
    custom_amount: Optional[Decimal] = None
    is_self: bool = Field(default=False, alias="is_me")


class AssignmentCreate(BaseModel):
    """
    One assigned item in the save request.

    Participants are referenced by their position in the request's participant
    list, serialized as decimal strings under `participant_ids`.
    """
    model_config = ConfigDict(populate_by_name=True)

    item_key: str = Field(alias="transaction_id")
    participant_indices: List[int] = Field(default_factory=list, alias="participant_ids")

    @field_serializer('participant_indices')
    def indices_as_strings(self, indices: List[int]) -> List[str]:
        return [str(i) for i in indices]


class SplitRequest(BaseModel):
    receipt_id: str
    participants: List[ParticipantCreate] = Field(default_factory=list)
    assignments: List[AssignmentCreate] = Field(default_factory=list)

    def to_payload(self) -> dict:
        """JSON-ready body for `POST /expense-splits`."""
        return self.model_dump(mode="json", by_alias=True)


# --- Computed results ---

class SplitShare(BaseModel):
    """A participant's portion of one line item (unrounded)."""
    name: str
    price: Decimal
    share_amount: Decimal


class SplitResult(BaseModel):
    """Per-participant breakdown; only `total_owed` is rounded to cents."""
    participant_id: str
    participant_name: str
    color_token: str
    is_self: bool = False
    total_owed: Decimal = Decimal('0.00')
    item_count: int = 0
    items: List[SplitShare] = Field(default_factory=list)
