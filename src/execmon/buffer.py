"""Capacity-limited list of recently created processes."""

from collections.abc import Iterator

from execmon.models import RecentProcessEntry


class RecentProcessBuffer:
    """
    Arrival-ordered sequence of recent processes.

    Inserting past capacity evicts from the front, so the buffer always holds
    the newest ``capacity`` entries in the order they arrived.
    """

    def __init__(self, capacity: int = 500) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._entries: list[RecentProcessEntry] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RecentProcessEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> RecentProcessEntry:
        return self._entries[index]

    def entries(self) -> list[RecentProcessEntry]:
        """Copy of the entries, oldest first."""
        return list(self._entries)

    def insert(self, entry: RecentProcessEntry) -> RecentProcessEntry | None:
        """Append an entry, then evict the oldest if over capacity.

        Returns:
            The evicted entry, or None.
        """
        self._entries.append(entry)
        if len(self._entries) > self._capacity:
            return self._entries.pop(0)
        return None

    def remove_at(self, index: int) -> RecentProcessEntry:
        """Remove and return the entry at index (raises IndexError if out of range)."""
        return self._entries.pop(index)

    def index_of(self, entry: RecentProcessEntry) -> int | None:
        """Position of this exact entry object, or None if it has been evicted."""
        for index, candidate in enumerate(self._entries):
            if candidate is entry:
                return index
        return None
