"""A small interpreter for a subset of the AArch64 instruction set."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from oboromi.memory import U64_MASK, Memory

logger = logging.getLogger(__name__)

REGISTER_COUNT = 31
LINK_REGISTER = 30
INSTRUCTION_SIZE = 4

NOP = 0xD503201F
RET = 0xD65F03C0

_IMM_MASK = 0xFF000000
_ADDI = 0x91000000
_SUBI = 0xD1000000

_REG_MASK = 0xFFE00000
_ADD = 0x8B000000
_SUB = 0xCB000000
_AND = 0x8A000000
_ORR = 0xAA000000
_EOR = 0xCA000000
_REG_MNEMONICS = {_ADD: "ADD", _SUB: "SUB", _AND: "AND", _ORR: "ORR", _EOR: "EOR"}

_CMP = 0xEB000000
_TST = 0xEA000000

_LS_MASK = 0xFFC00000
_LDR = 0xF9400000
_STR = 0xF9000000

_B_MASK = 0x7C000000
_B = 0x14000000
_B_IMM_MASK = 0x03FFFFFF


class Flags(enum.IntFlag):
    """Processor condition flags as laid out in NZCV."""

    NEGATIVE = 1 << 31
    ZERO = 1 << 30
    CARRY = 1 << 29
    OVERFLOW = 1 << 28
    PAC_FAIL = 1 << 27


@dataclass
class ProcessorState:
    """Architectural PSTATE fields."""

    el: int = 0
    spsel: bool = False
    nzcv: Flags = field(default_factory=lambda: Flags(0))
    daif: int = 0
    pan: bool = False
    uao: bool = False
    dit: bool = False
    tco: bool = False
    pstate: int = 0


def _with_flag(flags: Flags, flag: Flags, on: bool) -> Flags:
    return flags | flag if on else flags & ~flag


def _rd(opcode: int) -> int:
    return opcode & 0x1F


def _rn(opcode: int) -> int:
    return (opcode >> 5) & 0x1F


def _rm(opcode: int) -> int:
    return (opcode >> 16) & 0x1F


def _add(a: int, b: int) -> tuple[int, bool, bool]:
    total = a + b
    res = total & U64_MASK
    overflow = bool(((a ^ res) & (b ^ res)) >> 63)
    return res, total > U64_MASK, overflow


def _sub(a: int, b: int) -> tuple[int, bool, bool]:
    res = (a - b) & U64_MASK
    overflow = bool(((a ^ b) & (a ^ res)) >> 63)
    return res, a >= b, overflow


class Registers:
    """General purpose registers X0-X30, SP, PC and condition flags."""

    def __init__(self) -> None:
        self.x: list[int] = [0] * REGISTER_COUNT
        self.sp = 0
        self.pc = 0
        self.flags = Flags(0)

    def set_nz(self, res: int) -> None:
        """Update the Negative and Zero flags from a 64-bit result."""
        self.flags = _with_flag(self.flags, Flags.NEGATIVE, bool(res >> 63))
        self.flags = _with_flag(self.flags, Flags.ZERO, res == 0)

    def read(self, index: int) -> int:
        """Value of register ``index``; index 31 reads as zero."""
        return self.x[index] if index < REGISTER_COUNT else 0


class CPU:
    """A core with its registers and its own memory."""

    def __init__(self, mem_size: int) -> None:
        self.regs = Registers()
        self.memory = Memory(mem_size)

    def reset(self) -> None:
        """Clear registers, PC and flags; memory is kept."""
        self.regs = Registers()

    def fetch(self) -> int:
        """Read the 32-bit opcode at the current PC."""
        return self.memory.read_u32(self.regs.pc)

    def step(self) -> None:
        """Run one fetch-decode-execute cycle."""
        pc_before = self.regs.pc
        instr = self.fetch()
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("[0x%08x] Executed %s", pc_before, self.disassemble(instr))
        self.decode_and_execute(instr)

    def _advance(self) -> None:
        self.regs.pc = (self.regs.pc + INSTRUCTION_SIZE) & U64_MASK

    def _set_arith_flags(self, res: int, carry: bool, overflow: bool) -> None:
        self.regs.flags = _with_flag(self.regs.flags, Flags.CARRY, carry)
        self.regs.flags = _with_flag(self.regs.flags, Flags.OVERFLOW, overflow)
        self.regs.set_nz(res)

    def _write_reg(self, index: int, value: int) -> None:
        if index < REGISTER_COUNT:
            self.regs.x[index] = value

    def decode_and_execute(self, opcode: int) -> None:
        """Execute one instruction; unknown opcodes are logged and skipped."""
        if opcode == NOP:
            self._advance()
            return
        handlers = (
            self._exec_addi_subi,
            self._exec_reg_ops,
            self._exec_cmp_tst,
            self._exec_ldr_str,
            self._exec_branch_ret,
        )
        if any(handler(opcode) for handler in handlers):
            return
        logger.warning("Unimplemented opcode: %08X", opcode)
        self._advance()

    def _exec_addi_subi(self, opcode: int) -> bool:
        kind = opcode & _IMM_MASK
        if kind not in (_ADDI, _SUBI):
            return False
        imm = (opcode >> 10) & 0xFFF
        a = self.regs.read(_rn(opcode))
        res, carry, overflow = (_add if kind == _ADDI else _sub)(a, imm)
        self._write_reg(_rd(opcode), res)
        self._set_arith_flags(res, carry, overflow)
        self._advance()
        return True

    def _exec_reg_ops(self, opcode: int) -> bool:
        kind = opcode & _REG_MASK
        if kind not in _REG_MNEMONICS:
            return False
        a = self.regs.read(_rn(opcode))
        b = self.regs.read(_rm(opcode))
        if kind == _ADD:
            res, carry, overflow = _add(a, b)
        elif kind == _SUB:
            res, carry, overflow = _sub(a, b)
        elif kind == _AND:
            res, carry, overflow = a & b, False, False
        elif kind == _ORR:
            res, carry, overflow = a | b, False, False
        else:
            res, carry, overflow = a ^ b, False, False
        self._write_reg(_rd(opcode), res)
        self._set_arith_flags(res, carry, overflow)
        self._advance()
        return True

    def _exec_cmp_tst(self, opcode: int) -> bool:
        if _rd(opcode) != 31:
            return False
        kind = opcode & 0xFF000000
        a = self.regs.read(_rn(opcode))
        b = self.regs.read(_rm(opcode))
        if kind == _CMP:
            res, carry, overflow = _sub(a, b)
            self._set_arith_flags(res, carry, overflow)
        elif kind == _TST:
            self.regs.set_nz(a & b)
        else:
            return False
        self._advance()
        return True

    def _exec_ldr_str(self, opcode: int) -> bool:
        kind = opcode & _LS_MASK
        if kind not in (_LDR, _STR):
            return False
        rt = _rd(opcode)
        imm = (opcode & 0x3FFC00) >> 10
        addr = (self.regs.read(_rn(opcode)) + imm * 8) & U64_MASK
        if kind == _LDR:
            value = self.memory.read_u64(addr)
            self._write_reg(rt, value)
        elif rt < REGISTER_COUNT:
            self.memory.write_u64(addr, self.regs.x[rt])
        self._advance()
        return True

    def _exec_branch_ret(self, opcode: int) -> bool:
        if opcode & _B_MASK == _B:
            offset = (opcode & _B_IMM_MASK) * 4
            self.regs.pc = (self.regs.pc + offset) & U64_MASK
            return True
        if opcode == RET:
            self.regs.pc = self.regs.x[LINK_REGISTER]
            return True
        return False

    def disassemble(self, instr: int) -> str:
        """Render an instruction as assembly text."""
        if instr == NOP:
            return "NOP"

        kind = instr & _IMM_MASK
        if kind in (_ADDI, _SUBI):
            imm = (instr >> 10) & 0xFFF
            op = "ADDI" if kind == _ADDI else "SUBI"
            return f"{op} X{_rd(instr)}, X{_rn(instr)}, #{imm:#x}"

        mnemonic = _REG_MNEMONICS.get(instr & _REG_MASK)
        if mnemonic is not None:
            return f"{mnemonic} X{_rd(instr)}, X{_rn(instr)}, X{_rm(instr)}"

        if _rd(instr) == 31:
            if instr & 0xFF000000 == _CMP:
                return f"CMP X{_rn(instr)}, X{_rm(instr)}"
            if instr & 0xFF000000 == _TST:
                return f"TST X{_rn(instr)}, X{_rm(instr)}"

        kind = instr & _LS_MASK
        if kind in (_LDR, _STR):
            imm = ((instr & 0x3FFC00) >> 10) * 8
            op = "LDR" if kind == _LDR else "STR"
            return f"{op} X{_rd(instr)}, [X{_rn(instr)}, #{imm:#x}]"

        if instr & _B_MASK == _B:
            offset = (instr & _B_IMM_MASK) * 4
            return f"B {offset:#x}"
        if instr == RET:
            return "RET"

        return f".WORD {instr:#010x}"