"""Memory management unit combining a TLB and a page table."""

from __future__ import annotations

from typing import Optional

from oboromi.paging import PAGE_SHIFT, PageTable
from oboromi.tlb import PAGE_SIZE, Tlb, Translation, page_align

TLB_CAPACITY = 64


class MMU:
    """Translates virtual addresses, caching page-table walks in a TLB."""

    def __init__(self) -> None:
        self.tlb = Tlb(TLB_CAPACITY)
        self.page_table = PageTable()

    def translate(self, vaddr: int) -> Optional[Translation]:
        """Return the physical address and permissions for ``vaddr``, or None."""
        cached = self.tlb.lookup(vaddr)
        if cached is not None:
            return cached
        walked = self.page_table.walk(vaddr)
        if walked is None:
            return None
        self.tlb.add_entry(vaddr, walked.paddr, walked.readable, walked.writable)
        return walked

    def set_identity_mapping(self, start_page: int, page_count: int) -> None:
        """Map ``page_count`` pages from ``start_page`` onto themselves, read-write."""
        for page in range(start_page, start_page + page_count):
            self.page_table.set_entry(page, page * PAGE_SIZE, True, True)

    def map_page(self, vaddr: int, paddr: int, readable: bool, writable: bool) -> None:
        """Map the page holding ``vaddr`` to the page holding ``paddr``."""
        self.page_table.set_entry(vaddr >> PAGE_SHIFT, page_align(paddr), readable, writable)
        self.tlb.invalidate(vaddr)