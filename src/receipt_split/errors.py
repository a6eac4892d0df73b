"""
Error taxonomy and result values for split synchronization.

Backend failures are carried to the caller as `Failure` values rather than
raised; `InvariantViolation` marks programmer errors.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class SplitError(Exception):
    """Base class for all split engine errors."""


class NetworkUnavailable(SplitError):
    """The backend could not be reached."""


class ServerRejected(SplitError):
    """The backend answered but refused or failed the request."""

    def __init__(self, reason: str, status_code: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class NotFound(SplitError):
    """No split exists for the requested receipt. Not a failure at the session boundary."""


class InvariantViolation(SplitError):
    """A caller broke an engine invariant (unknown item key, overlapping saves)."""


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    error: SplitError

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return str(self.error)


Result = Union[Success[Any], Failure]
