"""Date-grouped, searchable listing of conversation threads.

The directory only tracks thread metadata. Message content never reaches
it, so fragment-by-fragment updates to the active session do not trigger
regrouping; only thread creation, deletion, ``updated_at`` bumps and a
thread crossing a bucket boundary do.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from src.errors import ThreadNotFound
from src.models.schemas import ThreadGroup, ThreadSummary, utcnow
from src.storage.thread_store import ThreadStore

logger = logging.getLogger(__name__)

GroupsListener = Callable[[list[ThreadGroup]], None]

GROUP_LABELS = ("Today", "Yesterday", "Last 7 Days", "Last 30 Days", "Older")

# Elapsed whole days at which a thread moves to the next bucket.
_BOUNDARY_DAYS = (1, 2, 7, 30)


def bucket_label(updated_at: datetime, now: datetime) -> str:
    """Recency bucket for a thread, by whole days elapsed since its last update."""
    elapsed_days = (now - updated_at) // timedelta(days=1)
    if elapsed_days <= 0:
        return "Today"
    if elapsed_days == 1:
        return "Yesterday"
    if elapsed_days < 7:
        return "Last 7 Days"
    if elapsed_days < 30:
        return "Last 30 Days"
    return "Older"


def next_boundary(updated_at: datetime, now: datetime) -> datetime | None:
    """First time after ``now`` at which the thread changes bucket, if any."""
    for days in _BOUNDARY_DAYS:
        boundary = updated_at + timedelta(days=days)
        if boundary > now:
            return boundary
    return None


def group_threads(threads: list[ThreadSummary], now: datetime) -> list[ThreadGroup]:
    """Group threads into recency buckets, most recently updated first.

    Empty buckets are omitted.
    """
    buckets: dict[str, list[ThreadSummary]] = {label: [] for label in GROUP_LABELS}
    for thread in threads:
        buckets[bucket_label(thread.updated_at, now)].append(thread)

    groups = []
    for label in GROUP_LABELS:
        if buckets[label]:
            ordered = sorted(buckets[label], key=lambda t: t.updated_at, reverse=True)
            groups.append(ThreadGroup(label=label, threads=ordered))
    return groups


class ThreadDirectory:
    """Thread metadata with a cached grouped view.

    Attributes:
        recomputations: Number of times the grouped view was rebuilt.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._threads: dict[str, ThreadSummary] = {}
        self._groups: list[ThreadGroup] = []
        self._stale_at: datetime | None = None
        self._listeners: list[GroupsListener] = []
        self.recomputations = 0

    def load(self, store: ThreadStore) -> None:
        """Replace the directory contents with the summaries of all stored threads."""
        self._threads = {thread.id: thread.summary() for thread in store.load_all()}
        logger.info(f"Loaded {len(self._threads)} threads")
        self._recompute()

    def create(self, title: str) -> ThreadSummary:
        """Mint a new thread titled after its first message."""
        thread = ThreadSummary.titled(title, self._clock())
        self._threads[thread.id] = thread
        self._recompute()
        return thread

    def get(self, thread_id: str) -> ThreadSummary:
        try:
            return self._threads[thread_id]
        except KeyError:
            raise ThreadNotFound(thread_id) from None

    def __contains__(self, thread_id: object) -> bool:
        return thread_id in self._threads

    def __len__(self) -> int:
        return len(self._threads)

    def touch(self, thread_id: str) -> ThreadSummary:
        """Bump a thread's ``updated_at`` to now. Never moves it backwards."""
        thread = self.get(thread_id)
        now = self._clock()
        if now > thread.updated_at:
            thread = thread.model_copy(update={"updated_at": now})
            self._threads[thread_id] = thread
            self._recompute()
        return thread

    def remove(self, thread_id: str) -> None:
        if self._threads.pop(thread_id, None) is not None:
            self._recompute()

    def summaries(self) -> list[ThreadSummary]:
        return sorted(self._threads.values(), key=lambda t: t.updated_at, reverse=True)

    def groups(self, query: str = "") -> list[ThreadGroup]:
        """Return the grouped view, filtered by a case-insensitive title substring."""
        if self._stale_at is not None and self._clock() >= self._stale_at:
            self._recompute()
        needle = query.strip().lower()
        if not needle:
            return self._groups
        filtered = []
        for group in self._groups:
            matches = [t for t in group.threads if needle in t.title.lower()]
            if matches:
                filtered.append(ThreadGroup(label=group.label, threads=matches))
        return filtered

    def refresh(self) -> None:
        """Rebuild the grouped view against the current time."""
        self._recompute()

    def subscribe(self, listener: GroupsListener) -> Callable[[], None]:
        """Register a listener called with the grouped view after each rebuild."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _recompute(self) -> None:
        now = self._clock()
        self._groups = group_threads(list(self._threads.values()), now)
        boundaries = [
            boundary
            for thread in self._threads.values()
            if (boundary := next_boundary(thread.updated_at, now)) is not None
        ]
        self._stale_at = min(boundaries, default=None)
        self.recomputations += 1
        for listener in list(self._listeners):
            listener(self._groups)
