"""
Translation between the local split model and the backend wire format.

Locally, participants are identified by UUID. The backend does not know
client-generated ids until it has saved them, so the save payload refers to
participants by their position in the request. On the way back, the server's
record (with its own ids) replaces local state wholesale.
"""

from typing import Dict, List, Set

from receipt_split.assignments.store import AssignmentStore
from receipt_split.errors import InvariantViolation
from receipt_split.models import (
    AssignmentCreate,
    Participant,
    ParticipantCreate,
    SplitRecord,
    SplitRequest,
)
from receipt_split.participants.registry import ParticipantRegistry
from receipt_split.utils.logging_config import logger
from receipt_split.utils.normalization import normalize_participant_id, normalize_id_set


def index_map(participants: List[Participant]) -> Dict[str, int]:
    """Normalized participant id -> zero-based position."""
    return {p.key: position for position, p in enumerate(participants)}


def build_request(receipt_id: str, registry: ParticipantRegistry, store: AssignmentStore) -> SplitRequest:
    """
    Builds the save payload from current local state.

    Participants go out in registry order. Each assigned item lists the
    positions of its assignees; ids that no longer match a participant are
    dropped, and items with no assignees are omitted.
    """
    participants = registry.participants
    positions = index_map(participants)

    assignments = []
    for item_key, members in store.snapshot().items():
        indices = sorted(positions[m] for m in members if m in positions)
        if not indices:
            continue
        assignments.append(AssignmentCreate(item_key=item_key, participant_indices=indices))

    return SplitRequest(
        receipt_id=receipt_id,
        participants=[
            ParticipantCreate(
                name=p.name,
                color_token=p.color_token,
                custom_amount=p.custom_amount,
                is_self=p.is_self,
            )
            for p in participants
        ],
        assignments=assignments,
    )


def resolve_participants(record: SplitRecord) -> List[Participant]:
    """
    Server participants in display order, with exactly one marked as self.

    Older records may not carry the self flag; a participant named "me" is
    then taken as self, failing that the first one.
    """
    if not record.participants:
        raise InvariantViolation(f"Split record for receipt {record.receipt_id} has no participants")

    ordered = sorted(record.participants, key=lambda p: p.display_order)
    self_index = next((i for i, p in enumerate(ordered) if p.is_self), None)
    if self_index is None:
        self_index = next((i for i, p in enumerate(ordered) if p.name.lower() == "me"), 0)
        logger.warning(
            f"Split record for receipt {record.receipt_id} has no self participant; "
            f"using '{ordered[self_index].name}'"
        )

    return [
        p.model_copy(update={"is_self": i == self_index})
        for i, p in enumerate(ordered)
    ]


def resolve_assignments(record: SplitRecord) -> Dict[str, Set[str]]:
    return {
        assignment.transaction_id: normalize_id_set(assignment.participant_ids)
        for assignment in record.assignments
    }


def apply_record(record: SplitRecord, registry: ParticipantRegistry, store: AssignmentStore) -> None:
    """
    Replaces the local participants and assignments with the server's.

    Everything is resolved before anything is replaced, so an unusable record
    leaves local state untouched.
    """
    participants = resolve_participants(record)
    assignments = resolve_assignments(record)

    known = {normalize_participant_id(p.id) for p in participants}
    strays = {pid for members in assignments.values() for pid in members} - known
    if strays:
        logger.warning(f"Split {record.id} assigns items to unknown participants: {sorted(strays)}")

    registry.replace(participants)
    store.replace(assignments)
    logger.info(
        f"Applied split {record.id} for receipt {record.receipt_id}: "
        f"{len(participants)} participants, {len(assignments)} assignments"
    )
