"""Translation lookaside buffer with FIFO replacement."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterator, NamedTuple, Optional

PAGE_SIZE = 4096
PAGE_OFFSET_MASK = PAGE_SIZE - 1


class Translation(NamedTuple):
    """Result of an address translation: physical address and permissions."""

    paddr: int
    readable: bool
    writable: bool


def page_align(addr: int) -> int:
    """Clear the in-page offset bits of an address."""
    return addr & ~PAGE_OFFSET_MASK


@dataclass(frozen=True)
class TlbEntry:
    """One cached page translation; addresses are page aligned."""

    vaddr: int
    paddr: int
    readable: bool
    writable: bool
    valid: bool = True


class Tlb:
    """A fixed-capacity cache of page translations, oldest evicted first."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"TLB capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: deque[TlbEntry] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TlbEntry]:
        return iter(self._entries)

    def lookup(self, vaddr: int) -> Optional[Translation]:
        """Return the cached translation for ``vaddr``, or None on a miss."""
        aligned = page_align(vaddr)
        for entry in self._entries:
            if entry.valid and entry.vaddr == aligned:
                return Translation(
                    entry.paddr | (vaddr & PAGE_OFFSET_MASK),
                    entry.readable,
                    entry.writable,
                )
        return None

    def add_entry(self, vaddr: int, paddr: int, readable: bool, writable: bool) -> None:
        """Cache a translation, evicting the oldest entry when full."""
        self._entries.append(
            TlbEntry(page_align(vaddr), page_align(paddr), readable, writable)
        )

    def invalidate(self, vaddr: int) -> None:
        """Drop every entry for the page holding ``vaddr``."""
        aligned = page_align(vaddr)
        kept = [entry for entry in self._entries if entry.vaddr != aligned]
        self._entries = deque(kept, maxlen=self.capacity)