from oboromi.mmu import MMU
from oboromi.tlb import Translation


def test_identity_translation():
    mmu = MMU()
    mmu.set_identity_mapping(0, 1)
    result = mmu.translate(0x10)
    assert result.paddr == 0x10
    assert result.readable is True
    assert result.writable is True


def test_unmapped_translation_returns_none():
    mmu = MMU()
    assert mmu.translate(0x10) is None
    assert len(mmu.tlb) == 0


def test_translation_is_cached_in_tlb():
    mmu = MMU()
    mmu.set_identity_mapping(0, 2)
    assert mmu.tlb.lookup(0x1234) is None
    first = mmu.translate(0x1234)
    assert mmu.tlb.lookup(0x1234) == first
    assert mmu.translate(0x1234) == first


def test_identity_mapping_range_bounds():
    mmu = MMU()
    mmu.set_identity_mapping(2, 3)
    assert mmu.translate(0x1FFF) is None
    for vaddr in (0x2000, 0x3004, 0x4FFF):
        assert mmu.translate(vaddr).paddr == vaddr
    assert mmu.translate(0x5000) is None


def test_map_page_replaces_cached_translation():
    mmu = MMU()
    mmu.set_identity_mapping(0, 4)
    assert mmu.translate(0x2010).paddr == 0x2010
    mmu.map_page(0x2000, 0x7000, True, False)
    result = mmu.translate(0x2010)
    assert result == Translation(0x7010, True, False)
    assert result == mmu.page_table.walk(0x2010)


def test_map_page_aligns_physical_address():
    mmu = MMU()
    mmu.map_page(0x4000, 0x8123, True, True)
    assert mmu.page_table.walk(0x4000).paddr == 0x8000


def test_map_page_new_page_translates():
    mmu = MMU()
    mmu.map_page(0x9000, 0x9000, False, True)
    result = mmu.translate(0x9ABC)
    assert result.paddr == 0x9ABC
    assert result.readable is False
    assert result.writable is True


def test_tlb_capacity_bounded_under_many_translations():
    mmu = MMU()
    mmu.set_identity_mapping(0, 100)
    for page in range(100):
        assert mmu.translate(page * 4096).paddr == page * 4096
    assert len(mmu.tlb) == mmu.tlb.capacity
    assert mmu.tlb.lookup(0) is None
    assert mmu.translate(0).paddr == 0