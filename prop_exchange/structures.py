"""Set structures used for owner and holder bookkeeping."""

from typing import Generic, Hashable, Iterable, Iterator, TypeVar

T = TypeVar("T", bound=Hashable)


class IndexedSet(Generic[T]):
    """Set with O(1) add/remove and deterministic iteration.

    Members live in a list; a dict maps each member to its slot. Removal
    swaps the last member into the vacated slot and pops, so iteration
    order is stable between mutations but not insertion order.

    Usage::

        holders = IndexedSet(["alice", "bob"])
        holders.add("carol")
        holders.discard("alice")   # "carol" moves into slot 0
        list(holders)              # ["carol", "bob"]
    """

    __slots__ = ("_items", "_index")

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: list[T] = []
        self._index: dict[T, int] = {}
        for item in items:
            self.add(item)

    def add(self, item: T) -> bool:
        """Add ``item``; return False if it was already present."""
        if item in self._index:
            return False
        self._index[item] = len(self._items)
        self._items.append(item)
        return True

    def discard(self, item: T) -> bool:
        """Remove ``item`` if present; return whether it was removed."""
        slot = self._index.pop(item, None)
        if slot is None:
            return False
        last = self._items.pop()
        if slot < len(self._items):
            self._items[slot] = last
            self._index[last] = slot
        return True

    def remove(self, item: T) -> None:
        """Remove ``item``, raising KeyError if absent."""
        if not self.discard(item):
            raise KeyError(item)

    def clear(self) -> None:
        self._items.clear()
        self._index.clear()

    def copy(self) -> "IndexedSet[T]":
        return IndexedSet(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._index

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, IndexedSet):
            return self._index.keys() == other._index.keys()
        if isinstance(other, (set, frozenset)):
            return self._index.keys() == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"IndexedSet({self._items!r})"
