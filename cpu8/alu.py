"""
cpu8 — ALU Operations

Pure 8-bit arithmetic helpers. Each returns the wrapped result together
with the flag values it produces; the caller decides which flags to
commit (only ADD/ADC ever touch C).
"""

from typing import Tuple


def zero_flag(value: int) -> int:
    """Z flag for a result byte."""
    return 1 if (value & 0xFF) == 0 else 0


def add8(a: int, b: int) -> Tuple[int, int, int]:
    """A + B. Returns (result, Z, C); C = unsigned carry out of bit 7."""
    return adc8(a, b, 0)


def adc8(a: int, b: int, carry: int) -> Tuple[int, int, int]:
    """A + B + carry-in. Same flag logic as add8.

    No automatic multi-byte propagation: chaining low/high bytes is up
    to the program, C is the only link between them.
    """
    result = a + b + carry
    c = 1 if result > 0xFF else 0
    result &= 0xFF
    return (result, zero_flag(result), c)


def sub8(a: int, b: int) -> Tuple[int, int]:
    """A - B mod 256. Returns (result, Z); borrow is not tracked."""
    result = (a - b) & 0xFF
    return (result, zero_flag(result))


def dec8(a: int) -> Tuple[int, int]:
    return sub8(a, 1)
