"""
The ordered set of people a receipt is split among.
"""

from typing import List, Optional, Sequence

from receipt_split.assignments.store import AssignmentStore
from receipt_split.errors import InvariantViolation
from receipt_split.models import FriendColor, Participant, RecentFriend
from receipt_split.utils.logging_config import logger
from receipt_split.utils.normalization import normalize_participant_id


class ParticipantRegistry:
    """
    Maintains participants in display order for one split session.

    The self participant is created by `initialize`, always sits at
    display order 0 and cannot be removed. Removing anyone else also purges
    them from the assignment store.
    """

    def __init__(self, store: AssignmentStore, self_name: str = "Me"):
        self._store = store
        self._self_name = self_name
        self._participants: List[Participant] = []

    def initialize(self) -> Participant:
        """Creates the self participant. Must be the first call on a new registry."""
        if self._participants:
            message = "Participant registry is already initialized"
            if self._store.strict:
                raise InvariantViolation(message)
            logger.error(message)
            return self.self_participant
        me = Participant.create_self(self._self_name)
        self._participants.append(me)
        logger.debug(f"Initialized split participants with self {me.key}")
        return me

    @property
    def participants(self) -> List[Participant]:
        """Copies of the participants in display order."""
        return [p.model_copy() for p in self._participants]

    @property
    def self_participant(self) -> Optional[Participant]:
        return next((p for p in self._participants if p.is_self), None)

    @property
    def keys(self) -> List[str]:
        return [p.key for p in self._participants]

    def __len__(self) -> int:
        return len(self._participants)

    def get(self, participant_id) -> Optional[Participant]:
        normalized = normalize_participant_id(participant_id)
        return next((p for p in self._participants if p.key == normalized), None)

    def add(self, name: str) -> Participant:
        """
        Appends a participant with the next display order and palette colour.

        The newcomer is assigned to no items; existing shares stay untouched.
        """
        count = len(self._participants)
        participant = Participant(
            name=name,
            color_token=FriendColor.from_index(count).value,
            display_order=count,
        )
        self._participants.append(participant)
        logger.debug(f"Added participant '{participant.name}' ({participant.key})")
        return participant

    def add_recent(self, friend: RecentFriend) -> Participant:
        """Re-adds a friend from an earlier split with their previous colour."""
        participant = Participant(
            name=friend.name,
            color_token=friend.color,
            display_order=len(self._participants),
        )
        self._participants.append(participant)
        logger.debug(f"Added recent friend '{participant.name}' ({participant.key})")
        return participant

    def remove(self, participant_id) -> bool:
        """
        Removes a participant and purges them from every assignment.

        Returns False, leaving everything unchanged, for the self participant
        or an unknown id.
        """
        participant = self.get(participant_id)
        if participant is None:
            logger.warning(f"Cannot remove unknown participant {participant_id}")
            return False
        if participant.is_self:
            logger.warning("The self participant cannot be removed from a split")
            return False

        self._participants = [p for p in self._participants if p.key != participant.key]
        for order, remaining in enumerate(self._participants):
            remaining.display_order = order
        purged = self._store.purge(participant.key)
        logger.debug(f"Removed participant {participant.key} from {purged} items")
        return True

    def replace(self, participants: Sequence[Participant]) -> None:
        """
        Swaps in a complete participant list, e.g. the server's.

        The list must hold exactly one self participant; display orders are
        renumbered contiguously with self first.
        """
        selves = [p for p in participants if p.is_self]
        if len(selves) != 1:
            raise InvariantViolation(f"Expected exactly one self participant, got {len(selves)}")
        ordered = sorted(participants, key=lambda p: (not p.is_self, p.display_order))
        self._participants = [
            p.model_copy(update={"display_order": order}) for order, p in enumerate(ordered)
        ]
