"""Append-only record log shared between successive simulation states."""

import itertools
from collections.abc import Sequence
from typing import Any, Iterable, Iterator, List


class AppendOnlyLog(Sequence):
    """Immutable view of the first len(self) records of a shared list.

    appended() and extended() return a longer view over the same list,
    so copying a state never copies its history and older states keep
    seeing exactly the records they had. Extending a view that is no
    longer the newest branches off its own list.
    """

    def __init__(self, records: Iterable[Any] = ()):
        self._records: List[Any] = list(records)
        self._length = len(self._records)

    @classmethod
    def _view(cls, records: List[Any], length: int) -> "AppendOnlyLog":
        log = cls.__new__(cls)
        log._records = records
        log._length = length
        return log

    def __len__(self) -> int:
        return self._length

    def __getitem__(self, index):
        if isinstance(index, slice):
            return self._records[:self._length][index]
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError("log index out of range")
        return self._records[index]

    def __iter__(self) -> Iterator[Any]:
        return itertools.islice(self._records, self._length)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (AppendOnlyLog, list, tuple)):
            return NotImplemented
        return len(self) == len(other) and all(a == b for a, b in zip(self, other))

    __hash__ = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self)!r})"

    def extended(self, records: Iterable[Any]) -> "AppendOnlyLog":
        """New log with `records` added at the end. This log is unchanged."""
        if self._length == len(self._records):
            shared = self._records
        else:
            shared = self._records[:self._length]
        shared.extend(records)
        return self._view(shared, len(shared))

    def appended(self, record: Any) -> "AppendOnlyLog":
        """New log with one record added at the end."""
        return self.extended((record,))
