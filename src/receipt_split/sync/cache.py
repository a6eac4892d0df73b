"""
Shared cache of saved splits, keyed by receipt id.

Used by host views to decorate item rows with "shared with" indicators
without refetching. Warming the cache for many receipts runs a bounded number
of fetches concurrently.
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, Field

from receipt_split.events import SPLIT_SAVED, SplitEventBus
from receipt_split.models import SplitRecord
from receipt_split.sync.backend import SplitBackend
from receipt_split.utils.logging_config import logger
from receipt_split.utils.normalization import initials_for, normalize_participant_id

DEFAULT_MAX_CONCURRENT = 5


class CachedParticipant(BaseModel):
    """Display-only view of a participant."""
    id: str
    name: str
    color: str
    is_self: bool = False

    @property
    def initials(self) -> str:
        return initials_for(self.name)


class CachedSplit(BaseModel):
    """
    A saved split prepared for case-insensitive lookups by item key.
    """
    record: SplitRecord
    participants: List[CachedParticipant] = Field(default_factory=list)
    assignments: Dict[str, List[str]] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: SplitRecord) -> "CachedSplit":
        participants = [
            CachedParticipant(
                id=normalize_participant_id(p.id),
                name=p.name,
                color=p.color_token,
                # Older records only identify self by name
                is_self=p.is_self or p.name.lower() == "me",
            )
            for p in record.participants
        ]
        assignments = {
            a.transaction_id.lower(): [normalize_participant_id(pid) for pid in a.participant_ids]
            for a in record.assignments
        }
        return cls(record=record, participants=participants, assignments=assignments)

    @property
    def split_id(self) -> str:
        return self.record.id or ""

    @property
    def receipt_id(self) -> str:
        return self.record.receipt_id

    def participants_for_item(self, item_key: str) -> List[CachedParticipant]:
        by_id = {p.id: p for p in self.participants}
        ids = self.assignments.get(item_key.lower(), [])
        return [by_id[pid] for pid in ids if pid in by_id]

    def is_item_split(self, item_key: str) -> bool:
        return bool(self.assignments.get(item_key.lower()))


class SplitCache:
    """
    Receipt id -> saved split.

    Args:
        backend: Used by `fetch`/`warm`; may be omitted for a put/get-only cache.
        max_concurrent: Upper bound on simultaneous backend fetches.
        events: When given, splits published as saved are cached automatically.
    """

    def __init__(
        self,
        backend: Optional[SplitBackend] = None,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        events: Optional[SplitEventBus] = None,
    ):
        self.backend = backend
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._entries: Dict[str, CachedSplit] = {}
        self._loading: Set[str] = set()
        self._unsubscribe = events.subscribe(SPLIT_SAVED, self._on_split_saved) if events else None

    def put(self, receipt_id: str, record: SplitRecord) -> None:
        self._entries[receipt_id] = CachedSplit.from_record(record)
        logger.debug(f"Cached split {record.id} for receipt {receipt_id}")

    def get(self, receipt_id: str) -> Optional[SplitRecord]:
        entry = self._entries.get(receipt_id)
        return entry.record if entry else None

    def view(self, receipt_id: str) -> Optional[CachedSplit]:
        return self._entries.get(receipt_id)

    def has(self, receipt_id: str) -> bool:
        return receipt_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def remove(self, receipt_id: str) -> None:
        self._entries.pop(receipt_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def participants_for_item(self, receipt_id: str, item_key: str) -> List[CachedParticipant]:
        entry = self._entries.get(receipt_id)
        return entry.participants_for_item(item_key) if entry else []

    def is_item_split(self, receipt_id: str, item_key: str) -> bool:
        entry = self._entries.get(receipt_id)
        return entry.is_item_split(item_key) if entry else False

    @property
    def loading(self) -> Set[str]:
        return set(self._loading)

    def close(self) -> None:
        """Stops listening for saved-split events."""
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    async def fetch(self, receipt_id: str) -> Optional[SplitRecord]:
        """
        Fetches and caches one receipt's split, waiting for a free slot first.

        Receipts that are already cached or being fetched are skipped. Fetch
        errors are logged and leave the cache unchanged.
        """
        if self.backend is None:
            raise RuntimeError("SplitCache has no backend to fetch from")
        if receipt_id in self._entries:
            return self._entries[receipt_id].record
        if receipt_id in self._loading:
            return None

        self._loading.add(receipt_id)
        try:
            async with self._semaphore:
                record = await self.backend.fetch_existing(receipt_id)
        except Exception as e:
            logger.error(f"Failed to fetch split for receipt {receipt_id}: {e}")
            return None
        finally:
            self._loading.discard(receipt_id)

        if record is not None:
            self.put(receipt_id, record)
        return record

    async def warm(self, receipt_ids: Iterable[str]) -> Dict[str, Optional[SplitRecord]]:
        """
        Populates the cache for many receipts, at most `max_concurrent` at a time.

        Completion order is unspecified. Returns receipt id -> record (None when
        no split exists or the fetch failed) for the receipts actually fetched.
        """
        pending = []
        for receipt_id in dict.fromkeys(receipt_ids):
            if receipt_id in self._entries or receipt_id in self._loading:
                continue
            pending.append(receipt_id)

        if not pending:
            return {}
        logger.info(f"Warming split cache for {len(pending)} receipts")
        records = await asyncio.gather(*(self.fetch(receipt_id) for receipt_id in pending))
        return dict(zip(pending, records))

    def _on_split_saved(self, receipt_id: str, record: SplitRecord, **_) -> None:
        self.put(receipt_id, record)
