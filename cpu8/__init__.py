"""
cpu8 — 8-bit Virtual CPU, Assembler and Time-Travel Debugger
============================================================
A tiny accumulator machine with 256 bytes of memory, a two-pass
assembler, a disassembler, and a debugger with breakpoints, write
watchpoints and single-step undo.

Architecture:
    ┌──────────┐    ┌───────────┐    ┌─────────┐    ┌──────────────┐
    │ Source   │───>│ Assembler │───>│ Machine │<───│ DebugSession │
    │ (.asm)   │    │ (bytes)   │    │ (step)  │    │ (run/break)  │
    └──────────┘    └───────────┘    └─────────┘    └──────────────┘
                                          │  ^              │
                                          v  │              v
                                   ┌──────────────┐   ┌─────────┐
                                   │ Disassembler │   │ History │
                                   └──────────────┘   └─────────┘

    - isa.py:          opcode table shared by every stage
    - assembler.py:    constants → labels/sizes → emission
    - disassembler.py: memory → DecodedInstruction, tolerant of data bytes
    - machine.py:      registers, memory, fetch/decode/execute, trace
    - history.py:      full-state snapshots for step-back
    - session.py:      run cadence, breakpoint/watchpoint gating
"""

__version__ = "0.1.0"

from .isa import Opcode, OpInfo, lookup
from .assembler import (
    Assembler, AssemblyError, assemble,
    DuplicateLabel, DuplicateConstant, InvalidConstantValue,
    UnknownInstruction, UnknownOpcode, MissingOperand, UnknownLabel,
)
from .disassembler import DecodedInstruction, decode, disassemble
from .machine import Machine, StopReason
from .history import History, Snapshot
from .session import DebugSession, parse_address
