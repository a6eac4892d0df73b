"""
Split session: the host-facing entry point of the engine.

A session owns the stable item keys, participants and assignments for one
receipt, computes the breakdown on demand, and synchronizes with the backend.

Sync state machine::

    UNSYNCED -> LOADING -> NO_EXISTING_SPLIT | LOADED | LOAD_FAILED
    (any idle state) -> SAVING -> SAVED | SAVE_FAILED

Local state is only ever replaced after a successful backend call; a failed
load or save changes nothing but the state flag and `last_error`.
"""

from decimal import Decimal
from enum import Enum
from typing import List, Optional, FrozenSet

from receipt_split.assignments.calculator import compute_splits, render_share_text, total_assigned
from receipt_split.assignments.store import AssignmentStore
from receipt_split.config import SplitSettings
from receipt_split.errors import (
    Failure,
    InvariantViolation,
    NotFound,
    Result,
    ServerRejected,
    SplitError,
    Success,
)
from receipt_split.events import RECEIPTS_CHANGED, SPLIT_SAVED, SplitEventBus
from receipt_split.identity.stable_keys import StableKeyResolver
from receipt_split.models import Participant, ReceiptSnapshot, RecentFriend, SplitRecord, SplitResult
from receipt_split.participants.registry import ParticipantRegistry
from receipt_split.sync.adapter import apply_record, build_request
from receipt_split.sync.backend import SplitBackend
from receipt_split.sync.cache import SplitCache
from receipt_split.utils.logging_config import logger
from receipt_split.utils.normalization import normalize_participant_id


class SyncState(str, Enum):
    UNSYNCED = "unsynced"
    LOADING = "loading"
    NO_EXISTING_SPLIT = "no_existing_split"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"
    SAVING = "saving"
    SAVED = "saved"
    SAVE_FAILED = "save_failed"


BUSY_STATES = (SyncState.LOADING, SyncState.SAVING)


class SplitSession:
    """
    Splitting one receipt among a dynamic set of participants.

    Construction keys the receipt's items and creates the self participant,
    assigned to every item. Use `begin_session` to also load any split that
    was saved earlier.
    """

    def __init__(
        self,
        receipt: ReceiptSnapshot,
        backend: Optional[SplitBackend],
        cache: Optional[SplitCache] = None,
        events: Optional[SplitEventBus] = None,
        settings: Optional[SplitSettings] = None,
    ):
        self.receipt = receipt
        self.backend = backend
        self.cache = cache
        self.events = events
        self.settings = settings or SplitSettings.from_env()

        self.resolver = StableKeyResolver()
        self.resolver.build_keys(receipt.items)
        self.store = AssignmentStore(self.resolver.keys, strict=self.settings.strict_mode)
        self.registry = ParticipantRegistry(self.store, self_name=self.settings.self_name)

        me = self.registry.initialize()
        self.store.assign_all([me.key])

        self.state = SyncState.UNSYNCED
        self.saved_split_id: Optional[str] = None
        self.last_error: Optional[SplitError] = None
        self.recent_friends: List[RecentFriend] = []
        self._closed = False
        self._unsubscribe = events.subscribe(SPLIT_SAVED, self._on_split_saved) if events else None

        logger.info(f"Started split session for receipt {receipt.receipt_id} ({receipt.item_count} items)")

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def receipt_id(self) -> str:
        return self.receipt.receipt_id

    @property
    def participants(self) -> List[Participant]:
        return self.registry.participants

    @property
    def self_participant(self) -> Participant:
        return self.registry.self_participant

    @property
    def item_keys(self) -> List[str]:
        return self.resolver.keys

    def assigned_participant_ids(self, item_key: str) -> FrozenSet[str]:
        return self.store.assignees(item_key)

    @property
    def is_fully_assigned(self) -> bool:
        return self.store.is_fully_assigned()

    @property
    def is_busy(self) -> bool:
        return self.state in BUSY_STATES

    @property
    def is_closed(self) -> bool:
        return self._closed

    def compute_splits(self) -> List[SplitResult]:
        return compute_splits(self.resolver.keyed_items(self.receipt.items), self.store, self.registry.participants)

    @property
    def total_assigned(self) -> Decimal:
        return total_assigned(self.compute_splits())

    def share_text(self, currency: str = "EUR") -> str:
        return render_share_text(
            self.compute_splits(),
            store_name=self.receipt.store_name,
            total_amount=self.receipt.total_amount,
            currency=currency,
        )

    # ------------------------------------------------------------------
    # Local edits
    # ------------------------------------------------------------------
    def toggle_assignment(self, item_key: str, participant_id) -> bool:
        """
        Flips a participant's membership for one item.

        Ids outside the registry may only be toggled off (leftovers from a
        server record); adding one would put a share on nobody's bill.
        """
        if self.registry.get(participant_id) is None and not self._is_assigned(item_key, participant_id):
            message = f"Unknown participant '{participant_id}' for item {item_key}"
            if self.settings.strict_mode:
                raise InvariantViolation(message)
            logger.error(f"{message}; ignoring assignment change")
            return False
        return self.store.toggle(item_key, participant_id)

    def _is_assigned(self, item_key: str, participant_id) -> bool:
        return normalize_participant_id(participant_id) in self.store.assignees(item_key)

    def add_participant(self, name: str) -> Participant:
        return self.registry.add(name)

    def add_recent_friend(self, friend: RecentFriend) -> Participant:
        return self.registry.add_recent(friend)

    def remove_participant(self, participant_id) -> bool:
        return self.registry.remove(participant_id)

    def assign_all_to_everyone(self) -> None:
        self.store.assign_all(self.registry.keys)

    # ------------------------------------------------------------------
    # Backend synchronization
    # ------------------------------------------------------------------
    def _reject_busy(self, action: str) -> Failure:
        message = f"Cannot {action} receipt {self.receipt_id} while {self.state.value}"
        if self.settings.strict_mode:
            raise InvariantViolation(message)
        logger.error(message)
        return Failure(InvariantViolation(message))

    async def load(self) -> Result:
        """
        Fetches the split saved for this receipt, if any, and adopts it.

        Returns Success(record), Success(None) when no split exists yet, or
        Failure(error) with local state untouched.
        """
        if self.is_busy:
            return self._reject_busy("load")

        self.state = SyncState.LOADING
        try:
            record = await self.backend.fetch_existing(self.receipt_id)
        except NotFound:
            record = None
        except Exception as e:
            return self._fail(SyncState.LOAD_FAILED, "load", e)

        if self._closed:
            logger.debug(f"Discarding split load for closed session {self.receipt_id}")
            return Success(record)

        if record is None:
            self.state = SyncState.NO_EXISTING_SPLIT
            logger.info(f"No saved split for receipt {self.receipt_id}")
            return Success(None)

        try:
            apply_record(record, self.registry, self.store)
        except SplitError as e:
            return self._fail(SyncState.LOAD_FAILED, "load", e)

        self.saved_split_id = record.id
        self.last_error = None
        self.state = SyncState.LOADED
        if self.cache is not None:
            self.cache.put(self.receipt_id, record)
        return Success(record)

    async def save(self) -> Result:
        """
        Sends the current split to the backend and adopts the server's version.

        Only one save may be in flight; check `is_busy` first. On failure the
        participants and assignments are left exactly as they were.
        """
        if self.is_busy:
            return self._reject_busy("save")

        request = build_request(self.receipt_id, self.registry, self.store)
        self.state = SyncState.SAVING
        self.last_error = None
        logger.info(
            f"Saving split for receipt {self.receipt_id}: "
            f"{len(request.participants)} participants, {len(request.assignments)} assigned items"
        )

        try:
            record = await self.backend.save(request)
        except Exception as e:
            return self._fail(SyncState.SAVE_FAILED, "save", e)

        if self._closed:
            logger.debug(f"Discarding completed save for closed session {self.receipt_id}")
            return Success(record)

        try:
            apply_record(record, self.registry, self.store)
        except SplitError as e:
            return self._fail(SyncState.SAVE_FAILED, "save", e)

        self.saved_split_id = record.id
        self.state = SyncState.SAVED
        if self.cache is not None:
            self.cache.put(self.receipt_id, record)
        if self.events is not None:
            await self.events.publish(SPLIT_SAVED, receipt_id=self.receipt_id, record=record, origin=self)
            await self.events.publish(RECEIPTS_CHANGED, receipt_id=self.receipt_id)
        return Success(record)

    def _fail(self, state: SyncState, action: str, exc: Exception) -> Failure:
        if isinstance(exc, SplitError):
            error = exc
            logger.error(f"Split {action} failed for receipt {self.receipt_id}: {exc}")
        else:
            logger.exception(f"Unexpected error during split {action} for receipt {self.receipt_id}")
            error = ServerRejected(f"Unexpected backend error: {exc}")
        if not self._closed:
            self.state = state
            self.last_error = error
        return Failure(error)

    async def load_recent_friends(self, limit: int = 10) -> List[RecentFriend]:
        """Friends from earlier splits for quick-add; failures only yield an empty list."""
        try:
            friends = await self.backend.fetch_recent_friends(limit)
        except Exception as e:
            logger.warning(f"Could not load recent friends: {e}")
            return []
        if not self._closed:
            self.recent_friends = list(friends)
        return list(friends)

    def _on_split_saved(self, receipt_id: str, record: SplitRecord, origin=None, **_) -> None:
        if origin is self or receipt_id != self.receipt_id or self._closed:
            return
        if self.is_busy:
            logger.debug(f"Ignoring external split update for {receipt_id} while {self.state.value}")
            return
        try:
            apply_record(record, self.registry, self.store)
        except SplitError as e:
            logger.error(f"Could not adopt external split update for {receipt_id}: {e}")
            return
        self.saved_split_id = record.id
        self.state = SyncState.LOADED

    def close(self) -> None:
        """Tears the session down; late load/save completions are discarded."""
        self._closed = True
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        logger.debug(f"Closed split session for receipt {self.receipt_id}")


async def begin_session(
    receipt: ReceiptSnapshot,
    backend: SplitBackend,
    cache: Optional[SplitCache] = None,
    events: Optional[SplitEventBus] = None,
    settings: Optional[SplitSettings] = None,
) -> SplitSession:
    """Creates a session for a receipt and loads any previously saved split."""
    session = SplitSession(receipt, backend, cache=cache, events=events, settings=settings)
    await session.load()
    return session
