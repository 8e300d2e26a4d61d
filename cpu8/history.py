"""
cpu8 — Snapshot / History Manager (step-back)

Before every executed step the session records a full copy of machine
state here. step_back() pops the newest copy and restores it verbatim,
so N steps followed by N step-backs lands on the exact pre-run state
(registers, memory, output, trace), plus the one rollback marker line.

Each snapshot costs ~256 bytes of memory copy plus the trace tuple.
That is fine for a 256-byte machine; anything larger would need diff-based
undo or structural sharing instead of full copies.
"""

from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Tuple

from .config import HISTORY_CAPACITY

log = logging.getLogger('cpu8.history')


@dataclass(frozen=True)
class Snapshot:
    """Complete machine state captured immediately before a step."""
    pc: int
    a: int
    b: int
    sp: int
    z: int
    c: int
    memory: bytes
    halted: bool
    output: Tuple[str, ...]
    last_write: Optional[int]
    trace: Tuple[str, ...]


class History:
    """Bounded stack of snapshots; pushing past capacity drops the oldest."""

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError(f"history capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._stack: Deque[Snapshot] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._stack)

    def record(self, snapshot: Snapshot):
        self._stack.append(snapshot)

    def pop(self) -> Optional[Snapshot]:
        if not self._stack:
            return None
        return self._stack.pop()

    def clear(self):
        self._stack.clear()

    def can_step_back(self) -> bool:
        return bool(self._stack)

    def step_back(self, machine) -> bool:
        """Restore the most recent snapshot into machine.

        Returns False (nothing restored) when the history is empty.
        """
        snap = self.pop()
        if snap is None:
            log.info("step back unavailable: history empty")
            return False
        machine.restore(snap)
        machine.note(f"[BACK] restored PC={snap.pc:02X}")
        log.debug("stepped back to PC=%02X (%d snapshots left)", snap.pc, len(self))
        return True
