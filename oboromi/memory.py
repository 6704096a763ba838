"""Guest RAM behind an MMU, with an exclusive monitor for load/store-exclusive."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from oboromi.mmu import MMU
from oboromi.tlb import PAGE_SIZE

logger = logging.getLogger(__name__)

U8_MASK = 0xFF
U16_MASK = 0xFFFF
U32_MASK = 0xFFFF_FFFF
U64_MASK = 0xFFFF_FFFF_FFFF_FFFF
_NO_ADDRESS = U64_MASK


def _page_of(addr: int) -> int:
    return addr // PAGE_SIZE


class ExclusiveMonitor:
    """Tracks one exclusively reserved address range and the thread that owns it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._address = _NO_ADDRESS
        self._size = 0
        self._owner = 0

    @property
    def is_armed(self) -> bool:
        """True while some range is reserved."""
        with self._lock:
            return self._address != _NO_ADDRESS

    def mark_exclusive(self, addr: int, size: int) -> bool:
        """Reserve ``size`` bytes at ``addr``; fail if a reservation is already held."""
        with self._lock:
            if self._address != _NO_ADDRESS:
                return False
            self._address = addr
            self._size = size
            self._owner = threading.get_ident()
            return True

    def clear_exclusive(self) -> None:
        """Release any reservation."""
        with self._lock:
            self._address = _NO_ADDRESS
            self._size = 0
            self._owner = 0

    def check_exclusive(self, addr: int, size: int) -> bool:
        """True if the calling thread holds exactly this reservation."""
        with self._lock:
            return (
                self._address == addr
                and self._size == size
                and self._owner == threading.get_ident()
            )


class Memory:
    """Byte-addressable little-endian RAM accessed through virtual addresses."""

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"memory size must not be negative, got {size}")
        self.ram = bytearray(size)
        self.mmu = MMU()
        self.mmu.set_identity_mapping(0, (size + PAGE_SIZE - 1) // PAGE_SIZE)
        self._monitor = ExclusiveMonitor()

    def __len__(self) -> int:
        return len(self.ram)

    def map_range(self, vaddr: int, size: int, readable: bool, writable: bool) -> None:
        """Identity-map every page touched by ``[vaddr, vaddr + size)`` with the given permissions."""
        start_page = _page_of(vaddr)
        end_page = (vaddr + size + PAGE_SIZE - 1) // PAGE_SIZE
        for page in range(start_page, end_page):
            base = page * PAGE_SIZE
            self.mmu.map_page(base, base, readable, writable)

    def _physical(self, vaddr: int, width: int) -> Optional[int]:
        translation = self.mmu.translate(vaddr)
        if translation is None:
            return None
        paddr = translation.paddr
        if paddr + width - 1 < len(self.ram):
            return paddr
        return None

    def read_byte(self, vaddr: int) -> int:
        """Read one byte; a page fault is logged and reads as 0."""
        paddr = self._physical(vaddr, 1)
        if paddr is None:
            logger.warning("Page fault reading at %#x", vaddr)
            return 0
        return self.ram[paddr]

    def write_byte(self, vaddr: int, val: int) -> None:
        """Write one byte; a page fault is logged and the write is dropped."""
        paddr = self._physical(vaddr, 1)
        if paddr is None:
            logger.warning("Page fault writing at %#x", vaddr)
            return
        self.ram[paddr] = val & U8_MASK

    def read_u16(self, addr: int) -> int:
        """Read a little-endian 16-bit value byte by byte."""
        return self.read_byte(addr) | (self.read_byte(addr + 1) << 8)

    def write_u16(self, addr: int, value: int) -> None:
        """Write a little-endian 16-bit value byte by byte."""
        value &= U16_MASK
        self.write_byte(addr, value & U8_MASK)
        self.write_byte(addr + 1, value >> 8)

    def read_u32(self, addr: int) -> int:
        """Read a little-endian 32-bit value; unmapped or out-of-range reads give 0."""
        if _page_of(addr) != _page_of(addr + 3):
            data = bytes(self.read_byte(addr + offset) for offset in range(4))
            return int.from_bytes(data, "little")
        paddr = self._physical(addr, 4)
        if paddr is None:
            return 0
        return int.from_bytes(self.ram[paddr:paddr + 4], "little")

    def write_u32(self, addr: int, value: int) -> None:
        """Write a little-endian 32-bit value; unmapped or out-of-range writes are dropped."""
        data = (value & U32_MASK).to_bytes(4, "little")
        if _page_of(addr) != _page_of(addr + 3):
            for offset, byte in enumerate(data):
                self.write_byte(addr + offset, byte)
            return
        paddr = self._physical(addr, 4)
        if paddr is not None:
            self.ram[paddr:paddr + 4] = data

    def read_u64(self, addr: int) -> int:
        """Read a little-endian 64-bit value as two 32-bit halves."""
        return self.read_u32(addr) | (self.read_u32(addr + 4) << 32)

    def write_u64(self, addr: int, value: int) -> None:
        """Write a little-endian 64-bit value as two 32-bit halves."""
        value &= U64_MASK
        self.write_u32(addr, value & U32_MASK)
        self.write_u32(addr + 4, value >> 32)

    def atomic_compare_exchange_u8(self, addr: int, expected: int, new: int) -> int:
        """Store ``new`` if the byte equals ``expected``; return the old byte."""
        current = self.read_byte(addr)
        if current == expected:
            self.write_byte(addr, new)
        return current

    def atomic_compare_exchange_u32(self, addr: int, expected: int, new: int) -> int:
        """Store ``new`` if the word equals ``expected``; return the old word."""
        current = self.read_u32(addr)
        if current == expected:
            self.write_u32(addr, new)
        return current

    def atomic_add_u32(self, addr: int, value: int) -> int:
        """Add ``value`` to the word with 32-bit wrap-around; return the old word."""
        current = self.read_u32(addr)
        self.write_u32(addr, (current + value) & U32_MASK)
        return current

    def mark_exclusive(self, addr: int, size: int) -> bool:
        """Reserve a range in the exclusive monitor."""
        return self._monitor.mark_exclusive(addr, size)

    def clear_exclusive(self) -> None:
        """Release the exclusive monitor's reservation."""
        self._monitor.clear_exclusive()

    def exclusive_write_u8(self, addr: int, value: int) -> bool:
        """Store a byte only if this thread holds a one-byte reservation at ``addr``."""
        if not self._monitor.check_exclusive(addr, 1):
            return False
        self.write_byte(addr, value)
        self._monitor.clear_exclusive()
        return True

    def read_exclusive_u8(self, addr: int) -> Optional[int]:
        """Reserve one byte at ``addr`` and read it, or return None if a reservation is held."""
        if not self.mark_exclusive(addr, 1):
            return None
        return self.read_byte(addr)