# oboromi

Building blocks of an ARM64 (AArch64) emulator, written in plain Python with
no third-party dependencies:

- `oboromi.tlb`: a fixed-capacity translation lookaside buffer with FIFO
  eviction (`Tlb`, `TlbEntry`, and the `Translation` named tuple of
  `paddr`, `readable`, `writable`).
- `oboromi.paging`: a sparse page table with read/write permission bits
  (`PageTable`).
- `oboromi.mmu`: a memory management unit that checks a 64-entry TLB first and
  walks the page table on a miss (`MMU`).
- `oboromi.memory`: byte-addressable RAM behind the MMU, with little-endian
  8/16/32/64-bit access, compare-exchange and add helpers, and an exclusive
  monitor (`Memory`, `ExclusiveMonitor`).
- `oboromi.cpu`: an interpreter for a small subset of ARM64 instructions
  (`CPU`, `Registers`, `Flags`, `ProcessorState`).

Pages are 4 KiB. A new `Memory` identity-maps all of its RAM, so virtual and
physical addresses match until you remap pages with `map_range` or
`mmu.map_page`.

## Installation

```
pip install .
```

## Memory

```python
from oboromi.memory import Memory

mem = Memory(64 * 1024)
mem.write_byte(10, 0xAB)
assert mem.read_byte(10) == 0xAB

mem.write_u32(100, 0x44332211)
assert mem.read_byte(100) == 0x11
assert mem.read_u64(100) & 0xFFFFFFFF == 0x44332211
```

Reading an unmapped or out-of-range address yields `0`; writing to one is
dropped. Byte-level faults are logged as warnings through the
`oboromi.memory` logger. Page permissions are recorded in the page table and
returned by translations, but `Memory` does not refuse reads or writes
because of them.

Exclusive access works through a single reservation:

```python
mem.write_byte(0x20, 7)
assert mem.read_exclusive_u8(0x20) == 7      # reserves one byte
assert mem.exclusive_write_u8(0x20, 9)       # succeeds and clears the reservation
assert not mem.exclusive_write_u8(0x20, 1)   # no reservation any more
```

`read_exclusive_u8` returns `None` when a reservation is already held, and a
reservation only matches for the thread that made it.

## Running instructions

```python
from oboromi.cpu import CPU, Flags

cpu = CPU(1024)
cpu.regs.x[1] = 5
cpu.memory.write_u32(0, 0x91000821)   # ADD X1, X1, #0x2
cpu.step()
assert cpu.regs.x[1] == 7
assert cpu.regs.pc == 4

print(cpu.disassemble(0x91000821))    # ADDI X1, X1, #0x2
```

Supported instructions: `NOP`, `ADD`/`SUB` with a 12-bit immediate,
register `ADD`, `SUB`, `AND`, `ORR`, `EOR`, `CMP`, `TST`, 64-bit `LDR`/`STR`
with a scaled immediate offset, `B` and `RET`. Any other opcode is logged as a
warning through the `oboromi.cpu` logger and skipped. With that logger at
`DEBUG` level, `step` logs each executed instruction in disassembled form.
`reset` clears registers, PC and flags and leaves memory untouched.

## What it does not do

This is a library only. It has no command-line program and no graphical
front end, does not load or run game images, and has no file-system, graphics
or input emulation. The CPU interprets the instruction subset listed above
and nothing more.

## Tests

```
pip install .[test]
pytest
```