"""
cpu8 — 256-byte Memory

Flat byte-addressable store. Every address is taken mod 256, so reads
and writes past $FF wrap to $00 instead of faulting. The machine is the
only writer while stepping; the history manager overwrites it wholesale
on restore.
"""

from __future__ import annotations
from typing import Iterable

from .config import MEMORY_SIZE, ADDR_MASK, BYTE_MASK


class Memory:
    """256 bytes of zero-initialised RAM with wrapping addresses."""

    def __init__(self):
        self._mem = bytearray(MEMORY_SIZE)

    def __len__(self) -> int:
        return MEMORY_SIZE

    # --- Core read/write ---

    def read8(self, addr: int) -> int:
        return self._mem[addr & ADDR_MASK]

    def write8(self, addr: int, value: int):
        self._mem[addr & ADDR_MASK] = value & BYTE_MASK

    # --- Bulk load ---

    def load_binary(self, data: Iterable[int], base_addr: int = 0):
        """Copy data into memory starting at base_addr.

        Addresses wrap, so an image longer than the space left above
        base_addr continues at $00.
        """
        for i, byte in enumerate(data):
            self._mem[(base_addr + i) & ADDR_MASK] = byte & BYTE_MASK

    def clear(self):
        self._mem[:] = bytes(MEMORY_SIZE)

    # --- Snapshots ---

    def snapshot(self) -> bytes:
        """Immutable copy of all 256 bytes."""
        return bytes(self._mem)

    def restore(self, data: bytes):
        """Overwrite every cell from a snapshot()."""
        if len(data) != MEMORY_SIZE:
            raise ValueError(f"memory snapshot must be {MEMORY_SIZE} bytes, got {len(data)}")
        self._mem[:] = data

    # --- Hex dump ---

    def hexdump(self, start: int = 0, length: int = MEMORY_SIZE) -> str:
        """Produce a hex dump of memory for debugging."""
        lines = []
        for offset in range(0, length, 16):
            addr = (start + offset) & ADDR_MASK
            hex_bytes = ' '.join(f'{self._mem[(addr + i) & ADDR_MASK]:02X}'
                                 for i in range(16))
            lines.append(f'{addr:02X}: {hex_bytes}')
        return '\n'.join(lines)
