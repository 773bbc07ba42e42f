"""View State: explicit state container for one client-side list of calculations.

Invariants:
    - status moves only along _TRANSITIONS; anything else raises InvalidTransitionError
    - Every fetch gets a generation token; only the token returned by the most
      recent begin_fetch() may write records/error (liveness check)
    - A cancelled fetch returns status to the last settled state and is never an error
    - restore() puts back exactly the records captured by snapshot()
    - discard() drops a provisional row without touching total_count

Design Decisions:
    - Pure dataclass, no IO: the async view drives it, tests poke it directly
    - Records kept as list[dict] (the server read projection as-is): the view
      never merges partial broadcast payloads, it re-fetches
    - Generation counter over per-fetch flags: one integer comparison guards
      every continuation, including the ones scheduled before a cancel
"""

from dataclasses import dataclass, field

from calcsync.core.domain_types import ViewStatus
from calcsync.core.errors import InvalidTransitionError


FETCH_STARTED = "fetch_started"
FETCH_SUCCEEDED = "fetch_succeeded"
FETCH_FAILED = "fetch_failed"

_TRANSITIONS: dict[tuple[ViewStatus, str], ViewStatus] = {
    (ViewStatus.IDLE, FETCH_STARTED): ViewStatus.LOADING,
    (ViewStatus.LOADED, FETCH_STARTED): ViewStatus.LOADING,
    (ViewStatus.ERROR, FETCH_STARTED): ViewStatus.LOADING,
    (ViewStatus.LOADING, FETCH_STARTED): ViewStatus.LOADING,
    (ViewStatus.LOADING, FETCH_SUCCEEDED): ViewStatus.LOADED,
    (ViewStatus.LOADING, FETCH_FAILED): ViewStatus.ERROR,
}


@dataclass
class ViewState:
    """Per-view state: status, current page of records, last error."""

    status: ViewStatus = ViewStatus.IDLE
    records: list[dict] = field(default_factory=list)
    error: str | None = None
    total_count: int = 0
    page: int = 1
    page_size: int = 10

    # Last non-loading status, restored when a fetch is cancelled
    settled_status: ViewStatus = ViewStatus.IDLE
    generation: int = 0

    def transition(self, event: str) -> ViewStatus:
        target = _TRANSITIONS.get((self.status, event))
        if target is None:
            raise InvalidTransitionError(self.status.value, event)
        self.status = target
        if target is not ViewStatus.LOADING:
            self.settled_status = target
        return target

    # -- fetch lifecycle ---------------------------------------------------

    def begin_fetch(self) -> int:
        """Enter Loading and invalidate every earlier fetch. Returns the new token."""
        self.transition(FETCH_STARTED)
        self.generation += 1
        return self.generation

    def is_current(self, token: int) -> bool:
        return token == self.generation

    def apply_page(self, token: int, page: dict) -> bool:
        """Apply a fetched page if token is still live. Returns whether it applied."""
        if not self.is_current(token) or self.status is not ViewStatus.LOADING:
            return False
        self.transition(FETCH_SUCCEEDED)
        self.records = list(page.get("data") or [])
        self.total_count = int(page.get("totalCount", len(self.records)))
        self.page = int(page.get("page", self.page))
        self.page_size = int(page.get("pageSize", self.page_size))
        self.error = None
        return True

    def fail(self, token: int, message: str) -> bool:
        if not self.is_current(token) or self.status is not ViewStatus.LOADING:
            return False
        self.transition(FETCH_FAILED)
        self.error = message or "Failed to fetch data"
        return True

    def invalidate(self) -> None:
        """Cancel whatever fetch is in flight; its result will be discarded."""
        self.generation += 1
        if self.status is ViewStatus.LOADING:
            self.status = self.settled_status

    # -- local mutations ---------------------------------------------------

    def snapshot(self) -> list[dict]:
        return [dict(r) for r in self.records]

    def restore(self, snapshot: list[dict]) -> None:
        self.records = [dict(r) for r in snapshot]

    def insert(self, record: dict) -> None:
        self.records.append(record)

    def discard(self, record_id) -> None:
        """Drop a provisional record; it was never counted in total_count."""
        key = str(record_id)
        self.records = [r for r in self.records if str(r.get("id")) != key]

    def remove(self, record_id) -> bool:
        """Drop the record with record_id. Returns whether anything was removed."""
        key = str(record_id)
        before = len(self.records)
        self.records = [r for r in self.records if str(r.get("id")) != key]
        removed = len(self.records) != before
        if removed:
            self.total_count = max(0, self.total_count - 1)
        return removed

    @property
    def total_sum(self) -> float:
        return sum(r.get("result") or 0 for r in self.records)
