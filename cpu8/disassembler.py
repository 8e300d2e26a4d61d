"""
cpu8 Disassembler
=================
Decodes instructions straight out of machine memory using the ISA table.

API Usage:
    from cpu8.disassembler import decode, disassemble

    inst = decode(machine.mem, 0x00)
    print(inst.text)          # "LDA_IMM 0x05"

    for inst in disassemble(image):
        print(inst.format())  # "0x00: 01 05  LDA_IMM 0x05"

Bytes that are not opcodes decode as a one-byte DB pseudo instruction
rather than failing, matching how the machine treats them (it halts)
and keeping listings gap-free.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union

from .config import ADDR_MASK
from .isa import by_code
from .memory import Memory

DATA_MNEMONIC = "DB"


@dataclass(frozen=True)
class DecodedInstruction:
    """One decoded instruction with all formatting data."""
    address: int
    opcode: int
    mnemonic: str
    operand: Optional[int]
    size: int
    raw_bytes: bytes
    is_data: bool = False

    @property
    def hex_str(self) -> str:
        """Hex bytes formatted like '01 05'."""
        return " ".join(f"{b:02X}" for b in self.raw_bytes)

    @property
    def text(self) -> str:
        if self.is_data:
            return f"{DATA_MNEMONIC} 0x{self.opcode:02X}"
        if self.operand is None:
            return self.mnemonic
        return f"{self.mnemonic} 0x{self.operand:02X}"

    def format(self, hex_width: int = 6) -> str:
        """Format as a single disassembly line."""
        return f"0x{self.address:02X}: {self.hex_str.ljust(hex_width)} {self.text}"


def decode(memory: Memory, address: int) -> DecodedInstruction:
    """Decode the instruction at address. Never raises on bad bytes."""
    address &= ADDR_MASK
    byte = memory.read8(address)
    info = by_code(byte)
    if info is None:
        return DecodedInstruction(address, byte, DATA_MNEMONIC, None, 1,
                                  bytes([byte]), is_data=True)
    if info.size == 2:
        operand = memory.read8(address + 1)
        return DecodedInstruction(address, byte, info.mnemonic, operand, 2,
                                  bytes([byte, operand]))
    return DecodedInstruction(address, byte, info.mnemonic, None, 1, bytes([byte]))


def disassemble(source: Union[Memory, bytes, bytearray], start: int = 0,
                length: Optional[int] = None) -> List[DecodedInstruction]:
    """Walk instructions over [start, start+length).

    Raw bytes are staged in a scratch Memory at start, so a program
    image decodes at the addresses it will run from. length defaults
    to the image length (or the whole 256 bytes for a Memory).
    """
    if isinstance(source, Memory):
        memory = source
        if length is None:
            length = len(memory)
    else:
        memory = Memory()
        memory.load_binary(source, start)
        if length is None:
            length = len(source)

    result = []
    offset = 0
    while offset < length:
        inst = decode(memory, start + offset)
        result.append(inst)
        offset += inst.size
    return result
