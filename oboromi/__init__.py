"""ARM64 emulator core: MMU, TLB, paged memory and an interpreter CPU."""

__version__ = "0.2.0"
__all__ = ["cpu", "memory", "mmu", "paging", "tlb"]