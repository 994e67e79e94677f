"""Sparse, index-addressed list used while scenario lines are read."""

from __future__ import annotations

from typing import Generic, Iterator, List, Optional, TypeVar

T = TypeVar("T")


class IndexedList(Generic[T]):
    """List that grows with ``None`` placeholders when a later index is set first.

    Scenario files may declare ``lane 3`` before ``lane 0``; completeness is
    checked once all lines are read.
    """

    def __init__(self) -> None:
        self._items: List[Optional[T]] = []

    def set(self, index: int, value: T) -> Optional[T]:
        if index < 0:
            raise IndexError(f"negative index {index}")
        while index >= len(self._items):
            self._items.append(None)
        previous = self._items[index]
        self._items[index] = value
        return previous

    def get(self, index: int) -> Optional[T]:
        if 0 <= index < len(self._items):
            return self._items[index]
        return None

    def __getitem__(self, index: int) -> Optional[T]:
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Optional[T]]:
        return iter(self._items)

    def missing(self, start: int = 0) -> List[int]:
        return [idx for idx in range(start, len(self._items)) if self._items[idx] is None]

    def is_defined(self, start: int = 0) -> bool:
        return not self.missing(start)

    def to_list(self) -> List[Optional[T]]:
        return list(self._items)

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"IndexedList({self._items})"
