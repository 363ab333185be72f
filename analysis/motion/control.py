from __future__ import annotations

import bisect
from collections import deque
from typing import Deque, Iterator, List, Tuple

import numpy as np

ControlEntry = Tuple[int, np.ndarray]


class ControlSet:
    """Bounded, index-ordered collection of reference thumbnails.

    Entries are ``(frame_index, thumbnail)`` pairs kept in ascending index
    order with unique keys. Frames normally arrive in increasing order, so an
    insert is an append and an eviction is a pop from the front. Stored
    thumbnails are marked read-only.
    """

    def __init__(self) -> None:
        self._entries: Deque[ControlEntry] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ControlEntry]:
        """Oldest to newest."""
        return iter(self._entries)

    def newest_first(self) -> Iterator[ControlEntry]:
        return reversed(self._entries)

    def keys(self) -> List[int]:
        return [idx for idx, _ in self._entries]

    def clear(self) -> None:
        self._entries.clear()

    def put(self, frame_index: int, thumbnail: np.ndarray) -> None:
        """Store ``thumbnail`` under ``frame_index``, replacing an equal key.

        A read-only view is kept; the caller's array stays writable.
        """
        view = thumbnail.view()
        view.setflags(write=False)
        entry = (int(frame_index), view)

        if not self._entries or frame_index > self._entries[-1][0]:
            self._entries.append(entry)
            return

        keys = self.keys()
        pos = bisect.bisect_left(keys, frame_index)
        if pos < len(keys) and keys[pos] == frame_index:
            self._entries[pos] = entry
        else:
            self._entries.insert(pos, entry)

    def trim(self, max_entries: int) -> List[int]:
        """Drop the smallest keys until at most ``max_entries`` remain."""
        evicted: List[int] = []
        while len(self._entries) > max(0, int(max_entries)):
            idx, _ = self._entries.popleft()
            evicted.append(idx)
        return evicted
