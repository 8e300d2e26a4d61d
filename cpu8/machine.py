"""
cpu8 — Execution Engine

Integrates:
  - CPU registers (regs.py)
  - 256-byte memory (memory.py)
  - Opcode table (isa.py)
  - ALU helpers (alu.py)

Execution model (one step()):
  1. Fetch opcode at PC, PC += 1
  2. If the opcode has an operand, fetch it, PC += 1
  3. Execute handler → update registers, memory, flags, output
  4. Append one trace line (before/after values)

Stop reasons reported by step():
  - HALT:     HALT opcode executed (or step() called while halted)
  - ILLEGAL:  byte at PC is not an opcode; machine halts, never raises
  - WATCH:    STA_MEM wrote the armed watchpoint address

BREAK and TIMEOUT are produced by the debug session, not the engine.
"""

from __future__ import annotations
import logging
from collections import deque
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional

from .config import TRACE_LIMIT, DEFAULT_START, ADDR_MASK
from .isa import Opcode, by_code
from .regs import Registers
from .memory import Memory
from .history import Snapshot
from . import alu

log = logging.getLogger('cpu8.machine')


class StopReason(Enum):
    HALT = 'HALT'
    ILLEGAL = 'ILLEGAL'
    WATCH = 'WATCH'
    BREAK = 'BREAK'
    TIMEOUT = 'TIMEOUT'


def _delta(old: int, new: int, width: int = 2) -> str:
    if width == 1:
        return f"{old}→{new}" if old != new else f"{new}"
    return f"{old:02X}→{new:02X}" if old != new else f"{new:02X}"


class Machine:
    """cpu8 virtual machine.

    Usage:
        m = Machine()
        m.load(assemble("LDA_IMM 5\\nPRINTA\\nHALT"))
        while m.step() is None:
            pass
        print(m.output)   # ['5']
    """

    def __init__(self, trace_limit: int = TRACE_LIMIT):
        self.regs = Registers()
        self.mem = Memory()
        self.trace_limit = trace_limit

        self.halted = False
        self.output: List[str] = []
        self.last_write: Optional[int] = None
        self.trace: Deque[str] = deque(maxlen=trace_limit)

        # Armed by the debug session; STA_MEM to this address sets watch_hit
        self.watchpoint: Optional[int] = None
        self.watch_hit: Optional[int] = None

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load(self, image: bytes, start: int = DEFAULT_START):
        """Reset the machine and copy image into memory at start.

        Registers go to power-on state with PC=start; memory is zeroed
        first so nothing from a previous program survives. Watchpoint
        arming is left alone, it belongs to the session.
        """
        self.regs.reset(start)
        self.mem.clear()
        self.mem.load_binary(image, start)
        self.halted = False
        self.output.clear()
        self.last_write = None
        self.watch_hit = None
        self.trace.clear()

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns StopReason if stopped, else None."""
        if self.halted:
            return StopReason.HALT

        regs = self.regs
        before = (regs.PC, regs.A, regs.B, regs.Z, regs.C, regs.SP)

        byte = self._fetch8()
        info = by_code(byte)
        operand = None
        if info is None:
            self.halted = True
            name = f"OP_{byte:02X}"
            reason = StopReason.ILLEGAL
            log.debug("illegal opcode $%02X at PC=%02X, halting", byte, before[0])
        else:
            if info.size == 2:
                operand = self._fetch8()
            name = info.mnemonic
            reason = self._dispatch[info.opcode](operand)

        self._trace_step(before, name, operand)
        return reason

    def _fetch8(self) -> int:
        """Fetch 8-bit value at PC, advance PC."""
        val = self.mem.read8(self.regs.PC)
        self.regs.PC = (self.regs.PC + 1) & ADDR_MASK
        return val

    def _trace_step(self, before: tuple, name: str, operand: Optional[int]):
        pc0, a0, b0, z0, c0, sp0 = before
        r = self.regs
        op_str = name if operand is None else f"{name} {operand:02X}"
        line = (f"PC={pc0:02X}  {op_str:<14} | "
                f"A={_delta(a0, r.A)} B={_delta(b0, r.B)} "
                f"Z={_delta(z0, r.Z, 1)} C={_delta(c0, r.C, 1)} "
                f"SP={_delta(sp0, r.SP)} -> PC={r.PC:02X}"
                f"{' (HALT)' if self.halted else ''}")
        self.trace.append(line)

    def note(self, text: str):
        """Append a synthetic (non-instruction) line to the trace."""
        self.trace.append(text)

    # ══════════════════════════════════════════════
    # Snapshot / restore
    # ══════════════════════════════════════════════

    def snapshot(self) -> Snapshot:
        r = self.regs
        return Snapshot(
            pc=r.PC, a=r.A, b=r.B, sp=r.SP, z=r.Z, c=r.C,
            memory=self.mem.snapshot(),
            halted=self.halted,
            output=tuple(self.output),
            last_write=self.last_write,
            trace=tuple(self.trace),
        )

    def restore(self, snap: Snapshot):
        """Overwrite all machine state from snap. Never a partial merge."""
        r = self.regs
        r.PC, r.A, r.B, r.SP, r.Z, r.C = snap.pc, snap.a, snap.b, snap.sp, snap.z, snap.c
        self.mem.restore(snap.memory)
        self.halted = snap.halted
        self.output[:] = snap.output
        self.last_write = snap.last_write
        self.trace = deque(snap.trace, maxlen=self.trace_limit)
        self.watch_hit = None

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(operand) -> Optional[StopReason]
    # operand is the fetched byte for 2-byte opcodes, else None.

    def _build_dispatch(self) -> Dict[Opcode, Callable[[Optional[int]], Optional[StopReason]]]:
        """Build opcode → handler table; every Opcode must be covered."""
        table = {
            Opcode.LDA_IMM:   self._op_lda_imm,
            Opcode.LDB_IMM:   self._op_ldb_imm,
            Opcode.ADD:       self._op_add,
            Opcode.ADC:       self._op_adc,
            Opcode.PRINTA:    self._op_printa,
            Opcode.DEC_A:     self._op_dec_a,
            Opcode.CMP_A_IMM: self._op_cmp_a_imm,
            Opcode.SUB_A_IMM: self._op_sub_a_imm,

            Opcode.JMP:       self._op_jmp,
            Opcode.JZ:        self._op_jz,
            Opcode.JNZ:       self._op_jnz,
            Opcode.CALL:      self._op_call,
            Opcode.RET:       self._op_ret,

            Opcode.LDA_MEM:   self._op_lda_mem,
            Opcode.STA_MEM:   self._op_sta_mem,

            Opcode.PUSH_A:    self._op_push_a,
            Opcode.POP_A:     self._op_pop_a,
            Opcode.PUSH_B:    self._op_push_b,
            Opcode.POP_B:     self._op_pop_b,

            Opcode.HALT:      self._op_halt,
        }
        missing = set(Opcode) - set(table)
        if missing:
            names = ', '.join(sorted(op.name for op in missing))
            raise RuntimeError(f"no handler for opcode(s): {names}")
        return table

    # ── Load / arithmetic ──

    def _op_lda_imm(self, operand):
        self.regs.A = operand
        self.regs.Z = alu.zero_flag(operand)

    def _op_ldb_imm(self, operand):
        self.regs.B = operand
        self.regs.Z = alu.zero_flag(operand)

    def _op_add(self, operand):
        self.regs.A, self.regs.Z, self.regs.C = alu.add8(self.regs.A, self.regs.B)

    def _op_adc(self, operand):
        self.regs.A, self.regs.Z, self.regs.C = alu.adc8(self.regs.A, self.regs.B, self.regs.C)

    def _op_printa(self, operand):
        self.output.append(str(self.regs.A))

    def _op_dec_a(self, operand):
        self.regs.A, self.regs.Z = alu.dec8(self.regs.A)

    def _op_cmp_a_imm(self, operand):
        _, self.regs.Z = alu.sub8(self.regs.A, operand)

    def _op_sub_a_imm(self, operand):
        self.regs.A, self.regs.Z = alu.sub8(self.regs.A, operand)

    # ── Control flow ──

    def _op_jmp(self, operand):
        self.regs.PC = operand

    def _op_jz(self, operand):
        if self.regs.Z == 1:
            self.regs.PC = operand

    def _op_jnz(self, operand):
        if self.regs.Z == 0:
            self.regs.PC = operand

    def _op_call(self, operand):
        # PC already points past the operand: that is the return address
        self.regs.push8(self.mem, self.regs.PC)
        self.regs.PC = operand

    def _op_ret(self, operand):
        self.regs.PC = self.regs.pull8(self.mem)

    # ── Memory ──

    def _op_lda_mem(self, operand):
        self.regs.A = self.mem.read8(operand)
        self.regs.Z = alu.zero_flag(self.regs.A)

    def _op_sta_mem(self, operand):
        self.mem.write8(operand, self.regs.A)
        self.last_write = operand
        if self.watchpoint is not None and operand == self.watchpoint:
            self.watch_hit = operand
            return StopReason.WATCH
        return None

    # ── Stack ──

    def _op_push_a(self, operand):
        self.regs.push8(self.mem, self.regs.A)

    def _op_pop_a(self, operand):
        self.regs.A = self.regs.pull8(self.mem)
        self.regs.Z = alu.zero_flag(self.regs.A)

    def _op_push_b(self, operand):
        self.regs.push8(self.mem, self.regs.B)

    def _op_pop_b(self, operand):
        self.regs.B = self.regs.pull8(self.mem)
        self.regs.Z = alu.zero_flag(self.regs.B)

    # ── Control ──

    def _op_halt(self, operand):
        self.halted = True
        return StopReason.HALT

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def get_trace(self) -> str:
        return '\n'.join(self.trace)
