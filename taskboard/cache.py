"""
Local cache reconciliation.

Every controller keeps a list of server records. Mutations go through the
same reducer (``apply_server_record``) whether they come from create,
update, status change or assignment, so the server's returned record is
always what lands in the cache.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")


def apply_server_record(cache: List[R], record: R) -> List[R]:
    """Return a new list with ``record`` replacing its id, or prepended if new."""
    replaced = False
    result = []
    for item in cache:
        if item.id == record.id:
            result.append(record)
            replaced = True
        else:
            result.append(item)
    if not replaced:
        result.insert(0, record)
    return result


def remove_record(cache: List[R], record_id: str) -> List[R]:
    return [item for item in cache if item.id != record_id]


def find_record(cache: List[R], record_id: str) -> Optional[R]:
    for item in cache:
        if item.id == record_id:
            return item
    return None


class MutationState(Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class Mutation(Generic[R]):
    """One mutation request and its observable outcome."""
    record_id: str
    description: str
    prior: Any = None
    state: MutationState = MutationState.PENDING
    result: Any = None
    error: Optional[Exception] = field(default=None, repr=False)

    def commit(self, result: Any) -> None:
        self.state = MutationState.COMMITTED
        self.result = result

    def roll_back(self, error: Exception) -> None:
        self.state = MutationState.ROLLED_BACK
        self.error = error
        logger.info(f"Rolled back {self.description} on {self.record_id}: {error}")

    @property
    def is_pending(self) -> bool:
        return self.state == MutationState.PENDING


class RequestSequencer:
    """
    Tags fetches so that only the latest one may write to the cache.

    ticket = seq.next()
    ... request ...
    if seq.is_current(ticket): apply
    """

    def __init__(self):
        self._latest = 0

    def next(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, ticket: int) -> bool:
        return ticket == self._latest


class PendingSet:
    """In-flight flags keyed by record id."""

    def __init__(self):
        self._ids: Set[str] = set()

    def begin(self, record_id: str) -> bool:
        """Mark record_id in flight. Returns False if it already was."""
        if record_id in self._ids:
            return False
        self._ids.add(record_id)
        return True

    def end(self, record_id: str) -> None:
        self._ids.discard(record_id)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._ids

    def __bool__(self) -> bool:
        return bool(self._ids)
