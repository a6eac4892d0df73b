"""
Which participants share which item.

Participant ids are stored in normalized (lower-case) form so that ids coming
back from the backend and ids generated locally compare equal.
"""

from typing import Dict, FrozenSet, Iterable, List, Mapping, Set

from receipt_split.errors import InvariantViolation
from receipt_split.utils.logging_config import logger
from receipt_split.utils.normalization import normalize_participant_id, normalize_id_set


class AssignmentStore:
    """
    Many-to-many relation between stable item keys and participant keys.

    An empty set means the item is unassigned. The set of item keys is fixed
    when the store is created; touching any other key is an invariant violation.
    """

    def __init__(self, item_keys: Iterable[str], strict: bool = True):
        self.strict = strict
        self._assignments: Dict[str, Set[str]] = {key: set() for key in item_keys}

    @property
    def item_keys(self) -> List[str]:
        return list(self._assignments)

    def __contains__(self, item_key: str) -> bool:
        return item_key in self._assignments

    def assignees(self, item_key: str) -> FrozenSet[str]:
        return frozenset(self._assignments.get(item_key, ()))

    def _check_known(self, item_key: str) -> bool:
        if item_key in self._assignments:
            return True
        message = f"Unknown item key '{item_key}'"
        if self.strict:
            raise InvariantViolation(message)
        logger.error(f"{message}; ignoring assignment change")
        return False

    def toggle(self, item_key: str, participant_id) -> bool:
        """
        Flips a participant's membership for one item.

        Returns True when the participant is assigned afterwards.
        """
        if not self._check_known(item_key):
            return False
        members = self._assignments[item_key]
        normalized = normalize_participant_id(participant_id)
        if normalized in members:
            members.discard(normalized)
            logger.debug(f"Unassigned {normalized} from {item_key}")
            return False
        members.add(normalized)
        logger.debug(f"Assigned {normalized} to {item_key}")
        return True

    def assign(self, item_key: str, participant_ids: Iterable) -> None:
        """Sets the exact assignee set of one item."""
        if self._check_known(item_key):
            self._assignments[item_key] = normalize_id_set(participant_ids)

    def assign_all(self, participant_ids: Iterable) -> None:
        """Every item is shared by exactly the given participants."""
        members = normalize_id_set(participant_ids)
        for key in self._assignments:
            self._assignments[key] = set(members)

    def purge(self, participant_id) -> int:
        """Removes a participant from every item. Returns how many items changed."""
        normalized = normalize_participant_id(participant_id)
        changed = 0
        for members in self._assignments.values():
            if normalized in members:
                members.discard(normalized)
                changed += 1
        return changed

    def is_fully_assigned(self) -> bool:
        return all(self._assignments.values())

    def unassigned_keys(self) -> List[str]:
        return [key for key, members in self._assignments.items() if not members]

    def replace(self, assignments: Mapping[str, Iterable]) -> None:
        """
        Swaps in a complete assignment map, e.g. from the server.

        Known items missing from `assignments` become unassigned; keys that do not
        belong to this receipt are dropped.
        """
        unknown = [key for key in assignments if key not in self._assignments]
        if unknown:
            logger.warning(f"Dropping assignments for {len(unknown)} unknown item keys: {unknown}")
        self._assignments = {
            key: normalize_id_set(assignments.get(key, ())) for key in self._assignments
        }

    def snapshot(self) -> Dict[str, FrozenSet[str]]:
        """Immutable copy of the current relation."""
        return {key: frozenset(members) for key, members in self._assignments.items()}
