"""
cpu8 — Debug Session (run control, breakpoints, watchpoints, step-back)

A DebugSession owns one Machine and its History. Front ends talk to the
session only; it is the single place that decides when the engine steps.

Run cadence:
  run()        arm the cadence (no-op if already armed)
  tick()       one timer callback: run_batch() while armed
  stop()       disarm; takes effect before the next batch
  run_batch()  up to `steps_per_batch` steps, stopping early on
               BREAK (PC == breakpoint, step NOT executed),
               WATCH (store to the watchpoint, step executed),
               HALT / ILLEGAL

Manual commands (step_once, step_back, reset, assemble) disarm an
active cadence first so a manual step never interleaves with a batch.
step_once ignores the breakpoint; breakpoints only gate free runs.
"""

from __future__ import annotations
import logging
from typing import Dict, List, Optional, Union

from .assembler import AssemblyError, assemble, parse_number
from .config import (STEPS_PER_BATCH, HISTORY_CAPACITY, TRACE_LIMIT,
                     DEFAULT_MAX_STEPS, DEFAULT_START, TRACE_TAIL,
                     OUTPUT_TAIL, ADDR_MASK)
from .disassembler import DecodedInstruction, disassemble
from .history import History
from .machine import Machine, StopReason

log = logging.getLogger('cpu8.session')

AddressLike = Union[int, str, None]


def parse_address(value: AddressLike) -> Optional[int]:
    """Parse a debugger address: int, decimal or 0x-hex text.

    None or blank text means "no address". Values wrap to 8 bits.
    Raises ValueError for text that is not a number, or for anything
    that is neither int nor text (bool included).
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"not an address: {value!r}")
    if isinstance(value, int):
        return value & ADDR_MASK
    text = value.strip()
    if not text:
        return None
    n = parse_number(text)
    if n is None:
        raise ValueError(f"not an address: {value!r}")
    return n & ADDR_MASK


class DebugSession:
    """Interactive debugger around a single cpu8 Machine.

    Usage:
        s = DebugSession()
        s.assemble(source)
        s.set_breakpoint("0x06")
        reason = s.run_until_stop()     # StopReason.BREAK
        s.step_once()
        s.step_back()
    """

    def __init__(self, steps_per_batch: int = STEPS_PER_BATCH,
                 history_capacity: int = HISTORY_CAPACITY,
                 trace_limit: int = TRACE_LIMIT):
        if steps_per_batch < 1:
            raise ValueError(f"steps_per_batch must be >= 1, got {steps_per_batch}")
        self.steps_per_batch = steps_per_batch
        self.machine = Machine(trace_limit=trace_limit)
        self.history = History(history_capacity)

        self.breakpoint: Optional[int] = None
        self.running = False

        self.image: bytes = b""
        self.start_address = DEFAULT_START
        self.last_error: Optional[AssemblyError] = None

    # ══════════════════════════════════════════════
    # Program loading
    # ══════════════════════════════════════════════

    def assemble(self, source: str, start_address: int = DEFAULT_START) -> bytes:
        """Assemble source and load it. On error the old program stays loaded."""
        self.stop()
        try:
            image = assemble(source, start_address)
        except AssemblyError as e:
            self.last_error = e
            log.warning("assembly failed: %s", e)
            raise
        self.last_error = None
        self.load(image, start_address)
        log.info("assembled %d bytes, loaded at %02X", len(image), start_address & ADDR_MASK)
        return image

    def load(self, image: bytes, start_address: int = DEFAULT_START):
        self.stop()
        self.image = bytes(image)
        self.start_address = start_address & ADDR_MASK
        self.machine.load(self.image, self.start_address)
        self.history.clear()

    def reset(self):
        """Reload the last image; registers, memory, output and history reset."""
        self.load(self.image, self.start_address)

    # ══════════════════════════════════════════════
    # Breakpoint / watchpoint / memory edits
    # ══════════════════════════════════════════════

    def set_breakpoint(self, value: AddressLike) -> bool:
        """Arm (or clear, with None/"") the breakpoint. False on bad input."""
        try:
            self.breakpoint = parse_address(value)
        except ValueError as e:
            log.warning("breakpoint rejected: %s", e)
            return False
        log.debug("breakpoint = %s", _fmt_addr(self.breakpoint))
        return True

    @property
    def watchpoint(self) -> Optional[int]:
        return self.machine.watchpoint

    def set_watchpoint(self, value: AddressLike) -> bool:
        """Arm (or clear, with None/"") the write watchpoint. False on bad input."""
        try:
            self.machine.watchpoint = parse_address(value)
        except ValueError as e:
            log.warning("watchpoint rejected: %s", e)
            return False
        log.debug("watchpoint = %s", _fmt_addr(self.machine.watchpoint))
        return True

    def set_memory_byte(self, addr: AddressLike, value: Union[int, str]) -> bool:
        """Poke one byte. Value must be 0..255; nothing changes otherwise."""
        try:
            address = parse_address(addr)
        except ValueError as e:
            log.warning("memory edit rejected: %s", e)
            return False
        if address is None:
            log.warning("memory edit rejected: no address")
            return False

        if isinstance(value, bool):
            byte = None
        elif isinstance(value, int):
            byte = value
        elif isinstance(value, str):
            byte = parse_number(value.strip())
        else:
            byte = None
        if byte is None or not 0 <= byte <= 0xFF:
            log.warning("memory edit rejected: %r is not a byte value", value)
            return False

        self.machine.mem.write8(address, byte)
        return True

    # ══════════════════════════════════════════════
    # Stepping
    # ══════════════════════════════════════════════

    def _execute_one(self) -> Optional[StopReason]:
        """Record history, step, and surface a watch hit."""
        m = self.machine
        if m.halted:
            return StopReason.HALT
        self.history.record(m.snapshot())
        reason = m.step()
        if m.watch_hit is not None:
            addr = m.watch_hit
            m.watch_hit = None
            m.note(f"[WATCH] write @ 0x{addr:02X}")
            log.info("watchpoint hit: write to 0x%02X", addr)
            return StopReason.WATCH
        return reason

    def step_once(self) -> Optional[StopReason]:
        """Execute exactly one instruction, ignoring the breakpoint."""
        self.stop()
        return self._execute_one()

    def step_back(self) -> bool:
        """Undo the most recent step. False when there is nothing to undo."""
        self.stop()
        return self.history.step_back(self.machine)

    def can_step_back(self) -> bool:
        return self.history.can_step_back()

    # ══════════════════════════════════════════════
    # Run cadence
    # ══════════════════════════════════════════════

    def run(self) -> bool:
        """Start free-running. False (no-op) if a run is already active."""
        if self.running:
            return False
        self.running = True
        log.debug("run started at PC=%02X", self.machine.regs.PC)
        return True

    def stop(self):
        if self.running:
            log.debug("run stopped at PC=%02X", self.machine.regs.PC)
        self.running = False

    def run_batch(self) -> Optional[StopReason]:
        """Execute up to steps_per_batch instructions.

        Returns the reason the batch ended early, or None if it ran the
        full batch.
        """
        m = self.machine
        for _ in range(self.steps_per_batch):
            if m.halted:
                return StopReason.HALT
            if self.breakpoint is not None and m.regs.PC == self.breakpoint:
                m.note(f"[BREAK] PC={m.regs.PC:02X}")
                log.info("breakpoint hit at 0x%02X", m.regs.PC)
                return StopReason.BREAK
            reason = self._execute_one()
            if reason is not None:
                return reason
        return None

    def tick(self) -> Optional[StopReason]:
        """One cadence callback. Does nothing unless run() is active."""
        if not self.running:
            return None
        reason = self.run_batch()
        if reason is not None:
            self.running = False
        return reason

    def run_until_stop(self, max_steps: int = DEFAULT_MAX_STEPS) -> StopReason:
        """Drive the cadence synchronously until it stops or max_steps pass.

        The budget is checked at batch boundaries.
        """
        self.run()
        steps = 0
        while steps < max_steps:
            reason = self.tick()
            if reason is not None:
                return reason
            steps += self.steps_per_batch
        self.stop()
        log.info("run budget of %d steps exhausted", max_steps)
        return StopReason.TIMEOUT

    # ══════════════════════════════════════════════
    # Inspection (read-only)
    # ══════════════════════════════════════════════

    @property
    def halted(self) -> bool:
        return self.machine.halted

    def registers(self) -> Dict[str, int]:
        return self.machine.regs.as_dict()

    def memory(self) -> bytes:
        return self.machine.mem.snapshot()

    def hexdump(self) -> str:
        return self.machine.mem.hexdump()

    def disassembly(self) -> List[DecodedInstruction]:
        """Decode the loaded program region from current memory."""
        return disassemble(self.machine.mem, self.start_address, len(self.image))

    def trace_tail(self, n: int = TRACE_TAIL) -> List[str]:
        trace = list(self.machine.trace)
        return trace[-n:] if n > 0 else []

    def output_tail(self, n: int = OUTPUT_TAIL) -> List[str]:
        out = self.machine.output
        return out[-n:] if n > 0 else []


def _fmt_addr(addr: Optional[int]) -> str:
    return "(none)" if addr is None else f"0x{addr:02X}"
