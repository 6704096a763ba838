"""Sparse single-level page table."""

from __future__ import annotations

from typing import Optional

from oboromi.tlb import PAGE_OFFSET_MASK, Translation

PAGE_SHIFT = 12
READABLE_BIT = 1 << 62
WRITABLE_BIT = 1 << 63


class PageTable:
    """Maps virtual page numbers to physical page bases with permissions."""

    def __init__(self) -> None:
        self._entries: dict[int, tuple[int, int]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, index: object) -> bool:
        return index in self._entries

    def walk(self, vaddr: int) -> Optional[Translation]:
        """Translate ``vaddr`` through the table, or return None if unmapped."""
        found = self._entries.get(vaddr >> PAGE_SHIFT)
        if found is None:
            return None
        base, permissions = found
        return Translation(
            base | (vaddr & PAGE_OFFSET_MASK),
            bool(permissions & READABLE_BIT),
            bool(permissions & WRITABLE_BIT),
        )

    def set_entry(self, index: int, value: int, readable: bool, writable: bool) -> None:
        """Map virtual page ``index`` to physical base ``value``."""
        permissions = 0
        if readable:
            permissions |= READABLE_BIT
        if writable:
            permissions |= WRITABLE_BIT
        self._entries[index] = (value, permissions)