"""
Stable item identity across repeated decodes of the same receipt.

Decoded line items are recreated on every fetch, so neither object identity
nor value equality can correlate them. Keys are derived once per load from
durable payload fields and cached for the rest of the session.
"""

import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from receipt_split.models import LineItem
from receipt_split.utils.logging_config import logger

LOCAL_KEY_PREFIX = "local-item-"


class StableKeyResolver:
    """
    Maps each line item's source position to a `StableItemKey`.

    Key derivation: the backend item id when present, otherwise
    "local-item-<index>".
    """

    def __init__(self):
        self._keys_by_index: Dict[int, str] = {}
        self._fallback_keys: Dict[Tuple[int, Optional[str]], str] = {}

    @staticmethod
    def derive_key(item: LineItem) -> str:
        return item.backend_item_id or f"{LOCAL_KEY_PREFIX}{item.source_index}"

    def build_keys(self, items: Sequence[LineItem]) -> Dict[int, str]:
        """
        Derives and caches the key for every item of a freshly loaded receipt.

        Call once per receipt load. An empty item list yields an empty map.
        """
        self._keys_by_index = {item.source_index: self.derive_key(item) for item in items}
        self._fallback_keys.clear()
        logger.debug(f"Built {len(self._keys_by_index)} stable item keys")
        return dict(self._keys_by_index)

    def key_at(self, source_index: int) -> Optional[str]:
        return self._keys_by_index.get(source_index)

    def key_for(self, item: LineItem) -> str:
        """
        Key for an item, looked up by its source position.

        An item outside the cached map indicates a caller bug; it still gets a
        key (its backend id, or one fallback key per session) instead of an error.
        """
        key = self._keys_by_index.get(item.source_index)
        if key is not None:
            return key

        logger.warning(f"Line item '{item.name}' at index {item.source_index} is not in the key map")
        if item.backend_item_id:
            return item.backend_item_id
        lookup = (item.source_index, item.name)
        if lookup not in self._fallback_keys:
            self._fallback_keys[lookup] = f"unresolved-item-{uuid.uuid4()}"
        return self._fallback_keys[lookup]

    def keyed_items(self, items: Sequence[LineItem]) -> List[Tuple[str, LineItem]]:
        """Pairs every item with its stable key, preserving receipt order."""
        return [(self.key_for(item), item) for item in items]

    @property
    def keys(self) -> List[str]:
        return [self._keys_by_index[i] for i in sorted(self._keys_by_index)]

    def __len__(self) -> int:
        return len(self._keys_by_index)
