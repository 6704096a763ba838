import logging
import threading

import pytest

from oboromi.memory import ExclusiveMonitor, Memory


def test_byte_round_trip_large_memory():
    mem = Memory(64 * 1024 * 1024)
    mem.write_byte(10, 0xAB)
    assert mem.read_byte(10) == 0xAB


def test_read_u32_little_endian_from_bytes():
    mem = Memory(64 * 1024 * 1024)
    for offset, byte in enumerate((0x11, 0x22, 0x33, 0x44)):
        mem.write_byte(100 + offset, byte)
    assert mem.read_u32(100) == 0x4433_2211


def test_mmu_identity_translation_and_ram_access():
    mem = Memory(4096)
    vaddr = 0x10
    translation = mem.mmu.translate(vaddr)
    assert translation is not None
    assert translation.paddr == vaddr
    mem.write_byte(vaddr, 0xAB)
    assert mem.ram[translation.paddr] == 0xAB
    assert mem.read_byte(vaddr) == 0xAB


def test_negative_size_rejected():
    with pytest.raises(ValueError):
        Memory(-1)


def test_unmapped_read_returns_zero_and_logs(caplog):
    mem = Memory(4096)
    with caplog.at_level(logging.WARNING):
        assert mem.read_byte(0x5000) == 0
    assert "Page fault reading at 0x5000" in caplog.text


def test_unmapped_write_is_dropped_and_logged(caplog):
    mem = Memory(4096)
    with caplog.at_level(logging.WARNING):
        mem.write_byte(0x5000, 1)
    assert "Page fault writing at 0x5000" in caplog.text
    assert len(mem.ram) == 4096


def test_write_byte_masks_value():
    mem = Memory(16)
    mem.write_byte(0, 0x1FF)
    assert mem.read_byte(0) == 0xFF


def test_u16_round_trip():
    mem = Memory(4096)
    mem.write_u16(6, 0xBEEF)
    assert mem.read_u16(6) == 0xBEEF
    assert mem.ram[6:8] == b"\xef\xbe"


def test_u32_round_trip():
    mem = Memory(4096)
    mem.write_u32(8, 0xDEADBEEF)
    assert mem.read_u32(8) == 0xDEADBEEF
    assert mem.ram[8:12] == b"\xef\xbe\xad\xde"


def test_u32_across_page_boundary():
    mem = Memory(8192)
    mem.write_u32(4094, 0x12345678)
    assert mem.read_u32(4094) == 0x12345678
    assert mem.ram[4094:4098] == b"\x78\x56\x34\x12"


def test_u32_cross_page_into_unmapped_reads_partial():
    mem = Memory(4096)
    mem.write_byte(4094, 0xAA)
    mem.write_byte(4095, 0xBB)
    assert mem.read_u32(4094) == 0xBBAA


def test_u32_past_end_of_ram_reads_zero():
    mem = Memory(4098)
    mem.ram[4096] = 0x55
    assert mem.read_u32(4096) == 0


def test_u32_past_end_of_ram_write_dropped():
    mem = Memory(4098)
    mem.write_u32(4096, 0xFFFFFFFF)
    assert mem.ram[4096:4098] == b"\x00\x00"


def test_u64_round_trip():
    mem = Memory(4096)
    mem.write_u64(16, 0x0123_4567_89AB_CDEF)
    assert mem.read_u64(16) == 0x0123_4567_89AB_CDEF
    assert mem.read_u32(16) == 0x89AB_CDEF
    assert mem.read_u32(20) == 0x0123_4567


def test_map_range_sets_permissions_and_invalidates_tlb():
    mem = Memory(4096)
    assert mem.mmu.translate(0).readable is True
    mem.map_range(0, 10, False, False)
    translation = mem.mmu.translate(0)
    assert translation.readable is False
    assert translation.writable is False


def test_map_range_beyond_ram_still_faults():
    mem = Memory(4096)
    mem.map_range(8192, 10, True, True)
    assert 2 in mem.mmu.page_table
    assert mem.mmu.translate(8192).paddr == 8192
    assert mem.read_byte(8192) == 0


def test_map_range_covers_every_touched_page():
    mem = Memory(0)
    mem.map_range(4000, 200, True, True)
    assert 0 in mem.mmu.page_table
    assert 1 in mem.mmu.page_table
    assert 2 not in mem.mmu.page_table


def test_compare_exchange_u8():
    mem = Memory(64)
    mem.write_byte(3, 7)
    assert mem.atomic_compare_exchange_u8(3, 7, 9) == 7
    assert mem.read_byte(3) == 9
    assert mem.atomic_compare_exchange_u8(3, 7, 1) == 9
    assert mem.read_byte(3) == 9


def test_compare_exchange_u32():
    mem = Memory(64)
    mem.write_u32(4, 100)
    assert mem.atomic_compare_exchange_u32(4, 100, 200) == 100
    assert mem.read_u32(4) == 200
    assert mem.atomic_compare_exchange_u32(4, 100, 300) == 200
    assert mem.read_u32(4) == 200


def test_atomic_add_u32_wraps():
    mem = Memory(64)
    mem.write_u32(0, 0xFFFF_FFFF)
    assert mem.atomic_add_u32(0, 2) == 0xFFFF_FFFF
    assert mem.read_u32(0) == 1


def test_monitor_single_reservation():
    monitor = ExclusiveMonitor()
    assert monitor.mark_exclusive(0x10, 4) is True
    assert monitor.mark_exclusive(0x20, 4) is False
    assert monitor.check_exclusive(0x10, 4) is True
    assert monitor.check_exclusive(0x10, 8) is False
    monitor.clear_exclusive()
    assert monitor.check_exclusive(0x10, 4) is False
    assert monitor.mark_exclusive(0x20, 4) is True


def test_monitor_checks_owner_thread():
    monitor = ExclusiveMonitor()
    monitor.mark_exclusive(0x10, 1)
    seen = []
    worker = threading.Thread(target=lambda: seen.append(monitor.check_exclusive(0x10, 1)))
    worker.start()
    worker.join()
    assert seen == [False]
    assert monitor.check_exclusive(0x10, 1) is True


def test_exclusive_write_succeeds_once():
    mem = Memory(64)
    assert mem.mark_exclusive(5, 1) is True
    assert mem.exclusive_write_u8(5, 0x42) is True
    assert mem.read_byte(5) == 0x42
    assert mem.exclusive_write_u8(5, 0x43) is False
    assert mem.read_byte(5) == 0x42


def test_exclusive_write_requires_matching_size():
    mem = Memory(64)
    mem.mark_exclusive(5, 4)
    assert mem.exclusive_write_u8(5, 1) is False
    assert mem.read_byte(5) == 0


def test_clear_exclusive_cancels_write():
    mem = Memory(64)
    mem.mark_exclusive(5, 1)
    mem.clear_exclusive()
    assert mem.exclusive_write_u8(5, 1) is False


def test_read_exclusive_u8():
    mem = Memory(64)
    mem.write_byte(9, 0x77)
    assert mem.read_exclusive_u8(9) == 0x77
    assert mem.read_exclusive_u8(9) is None
    assert mem.exclusive_write_u8(9, 0x78) is True
    assert mem.read_exclusive_u8(9) == 0x78