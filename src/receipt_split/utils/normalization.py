"""
Identifier and display-name normalization shared by the split engine.
"""

from typing import Iterable, Optional, Set


def normalize_participant_id(participant_id) -> str:
    """
    Canonical form of a participant identifier.

    The backend returns lowercase UUID strings while locally generated ids may
    be upper-case, so every comparison goes through this function.
    """
    if participant_id is None:
        return ""
    return str(participant_id).strip().lower()


def normalize_id_set(participant_ids: Iterable) -> Set[str]:
    """Collapses case variants of the same identifier into one entry."""
    normalized = (normalize_participant_id(pid) for pid in participant_ids)
    return {pid for pid in normalized if pid}


def find_matching_id(candidates: Iterable[str], participant_id) -> Optional[str]:
    """Returns the member of `candidates` equal to `participant_id` ignoring case."""
    target = normalize_participant_id(participant_id)
    for candidate in candidates:
        if normalize_participant_id(candidate) == target:
            return candidate
    return None


def initials_for(name: str) -> str:
    """
    Two-letter initials for an avatar chip.

    "Anna Smith" -> "AS", "bob" -> "BO".
    """
    parts = name.split()
    if len(parts) >= 2:
        return (parts[0][:1] + parts[1][:1]).upper()
    return name.strip()[:2].upper()
