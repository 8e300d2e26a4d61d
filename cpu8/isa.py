"""
cpu8 — Instruction Set Table

Single source of truth for opcodes. The assembler sizes instructions from
it, the disassembler decodes with it, and the machine builds its dispatch
table against it, so instruction boundaries agree everywhere.

Operand kinds:
  INH    Inherent (no operand)            e.g. ADD, PRINTA, RET
  IMM8   Immediate 8-bit value            e.g. LDA_IMM 5
  ADDR   8-bit memory / jump address      e.g. STA_MEM 0x80, JMP loop

Every instruction is 1 byte (INH) or 2 bytes (opcode + operand).
Bytes not listed here are not instructions: the machine halts on them and
the disassembler renders them as raw data.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional

__all__ = ['Opcode', 'OpInfo', 'INH', 'IMM8', 'ADDR', 'OPCODES',
           'lookup', 'by_code']


# ──────────────────────────────────────────────
# Operand kinds
# ──────────────────────────────────────────────

INH = 'INH'
IMM8 = 'IMM8'
ADDR = 'ADDR'


class Opcode(IntEnum):
    # ── Load / arithmetic ──
    LDA_IMM = 0x01
    LDB_IMM = 0x02
    ADD = 0x03
    PRINTA = 0x04
    DEC_A = 0x05
    CMP_A_IMM = 0x06
    SUB_A_IMM = 0x07
    ADC = 0x08

    # ── Control flow ──
    JMP = 0x10
    JZ = 0x11
    JNZ = 0x12
    CALL = 0x13
    RET = 0x14

    # ── Memory ──
    LDA_MEM = 0x20
    STA_MEM = 0x21

    # ── Stack ──
    PUSH_A = 0x30
    POP_A = 0x31
    PUSH_B = 0x32
    POP_B = 0x33

    HALT = 0xFF


@dataclass(frozen=True)
class OpInfo:
    """Static metadata for one opcode."""
    opcode: Opcode
    mode: str
    description: str

    @property
    def mnemonic(self) -> str:
        return self.opcode.name

    @property
    def size(self) -> int:
        return 1 if self.mode == INH else 2

    def __str__(self) -> str:
        return f"{self.mnemonic:10s} (${int(self.opcode):02X}, {self.size}B, {self.mode})"


# ──────────────────────────────────────────────
# Opcode table
# ──────────────────────────────────────────────
# Format: { 'MNEMONIC': OpInfo }   (mnemonics stored upper-case)

OPCODES: Dict[str, OpInfo] = {}
_BY_CODE: Dict[int, OpInfo] = {}


def _op(opcode: Opcode, mode: str, description: str):
    """Register an opcode entry."""
    info = OpInfo(opcode, mode, description)
    OPCODES[info.mnemonic] = info
    _BY_CODE[int(opcode)] = info


_op(Opcode.LDA_IMM,   IMM8, "A = imm8, Z set")
_op(Opcode.LDB_IMM,   IMM8, "B = imm8, Z set")
_op(Opcode.ADD,       INH,  "A = A + B, Z/C set")
_op(Opcode.PRINTA,    INH,  "append A (decimal) to output")
_op(Opcode.DEC_A,     INH,  "A = A - 1, Z set")
_op(Opcode.CMP_A_IMM, IMM8, "Z = (A - imm8 == 0), A unchanged")
_op(Opcode.SUB_A_IMM, IMM8, "A = A - imm8, Z set")
_op(Opcode.ADC,       INH,  "A = A + B + C, Z/C set")

_op(Opcode.JMP,       ADDR, "PC = addr")
_op(Opcode.JZ,        ADDR, "if Z: PC = addr")
_op(Opcode.JNZ,       ADDR, "if not Z: PC = addr")
_op(Opcode.CALL,      ADDR, "push return PC, PC = addr")
_op(Opcode.RET,       INH,  "pop PC")

_op(Opcode.LDA_MEM,   ADDR, "A = mem[addr], Z set")
_op(Opcode.STA_MEM,   ADDR, "mem[addr] = A")

_op(Opcode.PUSH_A,    INH,  "mem[SP] = A, SP -= 1")
_op(Opcode.POP_A,     INH,  "SP += 1, A = mem[SP], Z set")
_op(Opcode.PUSH_B,    INH,  "mem[SP] = B, SP -= 1")
_op(Opcode.POP_B,     INH,  "SP += 1, B = mem[SP], Z set")

_op(Opcode.HALT,      INH,  "stop execution")

if set(_BY_CODE) != {int(op) for op in Opcode}:
    raise RuntimeError("opcode table does not cover every Opcode member")


def lookup(mnemonic: str) -> Optional[OpInfo]:
    """Resolve a mnemonic (case-insensitive). None if unknown."""
    return OPCODES.get(mnemonic.upper())


def by_code(byte: int) -> Optional[OpInfo]:
    """Resolve an opcode byte. None for bytes outside the ISA."""
    return _BY_CODE.get(byte & 0xFF)
