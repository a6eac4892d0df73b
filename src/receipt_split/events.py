"""
In-process event channel for split changes.

Consumers (sessions, the split cache, host views) subscribe to named events
instead of relying on a process-wide notification singleton. Reactions are
expected to be idempotent: re-fetching or recomputing on a redundant event is
harmless.
"""

import inspect
from collections import defaultdict
from typing import Any, Callable, Dict, List

from receipt_split.utils.logging_config import logger

SPLIT_SAVED = "split_saved"
RECEIPTS_CHANGED = "receipts_changed"


class SplitEventBus:
    """Publish/subscribe hub; handlers may be plain callables or coroutine functions."""

    def __init__(self):
        self._handlers: Dict[str, List[Callable[..., Any]]] = defaultdict(list)

    def subscribe(self, event: str, handler: Callable[..., Any]) -> Callable[[], None]:
        """Registers a handler and returns a function that unregisters it."""
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

        return unsubscribe

    def subscriber_count(self, event: str) -> int:
        return len(self._handlers[event])

    async def publish(self, event: str, **payload: Any) -> None:
        """
        Delivers an event to every current subscriber in registration order.

        A failing handler is logged and does not prevent delivery to the rest.
        """
        for handler in list(self._handlers[event]):
            try:
                result = handler(**payload)
                if inspect.iscoroutine(result):
                    await result
            except Exception:
                logger.exception(f"Handler {getattr(handler, '__qualname__', handler)} failed for '{event}'")
