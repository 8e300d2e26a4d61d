"""
cpu8 — CPU Register Set

Register model:
  PC   8-bit program counter
  A    8-bit accumulator
  B    8-bit secondary register (ADD/ADC operand)
  SP   8-bit stack pointer (grows downward from $FF)
  Z    zero flag (0/1)
  C    carry flag (0/1), written only by ADD and ADC

All registers hold values mod 256; arithmetic wraps silently.
"""

from .config import STACK_TOP, ADDR_MASK, BYTE_MASK


class Registers:
    """cpu8 register file."""

    __slots__ = ('PC', 'A', 'B', 'SP', 'Z', 'C')

    def __init__(self):
        self.reset()

    # --- Stack operations ---

    def push8(self, memory, value: int):
        """Push 8-bit value onto stack (SP decrements after write)."""
        memory.write8(self.SP, value & BYTE_MASK)
        self.SP = (self.SP - 1) & ADDR_MASK

    def pull8(self, memory) -> int:
        """Pull 8-bit value from stack (SP increments before read)."""
        self.SP = (self.SP + 1) & ADDR_MASK
        return memory.read8(self.SP)

    # --- Display ---

    def as_dict(self) -> dict:
        return {name: getattr(self, name) for name in self.__slots__}

    def display(self) -> str:
        """Format register state for debugging."""
        return (f"PC={self.PC:02X} A={self.A:02X} B={self.B:02X} "
                f"SP={self.SP:02X} Z={self.Z} C={self.C}")

    def reset(self, start: int = 0):
        """Power-on state: PC at the load address, stack at the top."""
        self.PC = start & ADDR_MASK
        self.A = 0
        self.B = 0
        self.SP = STACK_TOP
        self.Z = 0
        self.C = 0
