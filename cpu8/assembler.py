"""
cpu8 Two-Pass Assembler.

Assembles cpu8 assembly text into a flat byte image. Labels resolve
relative to the origin the image will be loaded at (0 by default).

Input:  Assembly text
Output: Raw bytes (plus symbol tables and a listing on the Assembler object)

Syntax:
  ; comment              runs to end of line
  NAME EQU VALUE         named constant (decimal or 0x-hex, 8-bit)
  label:                 label at the current address
  label: MNEMONIC ...    label followed by an instruction
  MNEMONIC [operand]     operand is a number, constant or label

Commas are treated as whitespace, so "STA_MEM, 0x80" is accepted.
Mnemonics are case-insensitive; label and constant names are not.

How the passes work:
  Pass 1: Collect every NAME EQU VALUE definition into `constants`.
  Pass 2: Walk the lines keeping a running PC; each label gets the
          current PC, each instruction advances PC by its ISA size.
  Pass 3: Emit the opcode byte, then the operand byte for 2-byte
          instructions. Operands resolve as literal → constant → label.

Label and size pass never need operand values, so forward references
work without any fix-up list.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import re

from .isa import lookup

__all__ = [
    'Assembler', 'AssemblyError', 'assemble', 'parse_number',
    'DuplicateLabel', 'DuplicateConstant', 'InvalidConstantValue',
    'UnknownInstruction', 'UnknownOpcode', 'MissingOperand', 'UnknownLabel',
]


class AssemblyError(Exception):
    """Raised on assembly errors. Carries the 1-based source line."""
    def __init__(self, message: str, line: int = 0):
        self.message = message
        self.line = line
        super().__init__(f"Line {line}: {message}" if line else message)


class DuplicateLabel(AssemblyError):
    pass


class DuplicateConstant(AssemblyError):
    pass


class InvalidConstantValue(AssemblyError):
    pass


class UnknownInstruction(AssemblyError):
    pass


class UnknownOpcode(AssemblyError):
    pass


class MissingOperand(AssemblyError):
    pass


class UnknownLabel(AssemblyError):
    pass


# ──────────────────────────────────────────────
# Lexing helpers
# ──────────────────────────────────────────────

_IDENT = r'[A-Za-z_]\w*'
_LABEL_RE = re.compile(rf'^({_IDENT}):$')
_IDENT_RE = re.compile(rf'^{_IDENT}$')
_HEX_RE = re.compile(r'^0x[0-9a-f]+$', re.IGNORECASE)
_DEC_RE = re.compile(r'^-?\d+$')

CONSTANT_KEYWORD = 'EQU'


def parse_number(token: str) -> Optional[int]:
    """Parse a decimal or 0x-prefixed hex literal. None if not a number."""
    if _HEX_RE.match(token):
        return int(token, 16)
    if _DEC_RE.match(token):
        return int(token, 10)
    return None


def _tokenize(line: str) -> List[str]:
    """Strip the comment, treat commas as blanks, split on whitespace."""
    text = line.split(';', 1)[0]
    return text.replace(',', ' ').split()


@dataclass
class AsmLine:
    """Tokenised assembly source line."""
    line_num: int
    raw: str
    tokens: List[str] = field(default_factory=list)
    label: Optional[str] = None

    @property
    def is_constant(self) -> bool:
        return (self.label is None and len(self.tokens) >= 2
                and self.tokens[1].upper() == CONSTANT_KEYWORD)

    @property
    def instruction(self) -> List[str]:
        """Tokens of the instruction part (empty for label/constant lines)."""
        if self.is_constant:
            return []
        return self.tokens


def _parse_line(line: str, line_num: int) -> AsmLine:
    result = AsmLine(line_num=line_num, raw=line)
    tokens = _tokenize(line)
    if tokens:
        m = _LABEL_RE.match(tokens[0])
        if m:
            result.label = m.group(1)
            tokens = tokens[1:]
    result.tokens = tokens
    return result


# ──────────────────────────────────────────────
# The Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass cpu8 assembler.

    Usage:
        asm = Assembler()
        image = asm.assemble(source_text)
        print(asm.get_listing())
    """

    def __init__(self):
        self.constants: Dict[str, int] = {}   # NAME EQU VALUE → 8-bit value
        self.labels: Dict[str, int] = {}      # label → 8-bit address
        self.binary: bytearray = bytearray()  # Final assembled image
        self._lines: List[AsmLine] = []
        self._emitted: List[Tuple[AsmLine, int, bytes]] = []  # (line, addr, bytes)
        self.origin = 0

    def assemble(self, source: str, origin: int = 0) -> bytes:
        """Assemble source text into a byte image loaded at origin.

        Raises the first AssemblyError encountered; no partial image is
        returned.
        """
        self.constants = {}
        self.labels = {}
        self.binary = bytearray()
        self._emitted = []
        self.origin = origin & 0xFF
        self._lines = [_parse_line(text, i)
                       for i, text in enumerate(source.split('\n'), 1)]

        self._collect_constants()
        self._collect_labels()
        self._emit_all()
        return bytes(self.binary)

    # ── Pass 1: constants ──

    def _collect_constants(self):
        for line in self._lines:
            if not line.is_constant:
                continue
            name = line.tokens[0]
            if not _IDENT_RE.match(name):
                raise UnknownInstruction(f'Unknown instruction: "{name}"', line.line_num)
            if name in self.constants:
                raise DuplicateConstant(f'Duplicate constant "{name}"', line.line_num)
            if len(line.tokens) < 3:
                raise InvalidConstantValue(f'Missing value for constant "{name}"', line.line_num)
            value = parse_number(line.tokens[2])
            if value is None:
                raise InvalidConstantValue(
                    f'Invalid value "{line.tokens[2]}" for constant "{name}"', line.line_num)
            self.constants[name] = value & 0xFF

    # ── Pass 2: labels and sizes ──

    def _collect_labels(self):
        pc = self.origin
        for line in self._lines:
            if line.label is not None:
                if line.label in self.labels:
                    raise DuplicateLabel(f'Duplicate label "{line.label}"', line.line_num)
                self.labels[line.label] = pc & 0xFF

            tokens = line.instruction
            if not tokens:
                continue
            info = lookup(tokens[0])
            if info is None:
                raise UnknownInstruction(f'Unknown instruction: "{tokens[0].upper()}"',
                                         line.line_num)
            pc += info.size

    # ── Pass 3: emission ──

    def _emit_all(self):
        pc = self.origin
        for line in self._lines:
            tokens = line.instruction
            if not tokens:
                continue
            mnem = tokens[0].upper()
            info = lookup(mnem)
            if info is None:
                raise UnknownOpcode(f'Unknown opcode: "{mnem}"', line.line_num)

            data = bytearray([int(info.opcode)])
            if info.size == 2:
                if len(tokens) < 2:
                    raise MissingOperand(f'Missing operand for "{mnem}"', line.line_num)
                data.append(self._resolve(tokens[1], line.line_num) & 0xFF)

            self._emitted.append((line, pc & 0xFF, bytes(data)))
            self.binary.extend(data)
            pc += len(data)

    def _resolve(self, token: str, line_num: int) -> int:
        """Operand value: literal, then constant, then label."""
        value = parse_number(token)
        if value is not None:
            return value
        if token in self.constants:
            return self.constants[token]
        if token in self.labels:
            return self.labels[token]
        raise UnknownLabel(f'Unknown label: "{token}"', line_num)

    # ── Listing ──

    def get_listing(self) -> str:
        """Return a human-readable listing showing address, bytes, and source."""
        lines = [f"{'ADDR':>4}  {'BYTES':<6}  SOURCE", "-" * 40]
        emitted = {id(line): (addr, data) for line, addr, data in self._emitted}
        for asmline in self._lines:
            raw = asmline.raw.strip()
            if id(asmline) in emitted:
                addr, data = emitted[id(asmline)]
                hex_str = ' '.join(f'{b:02X}' for b in data)
                lines.append(f"  {addr:02X}  {hex_str:<6}  {raw}")
            elif raw:
                lines.append(f"{'':4}  {'':6}  {raw}")
        return '\n'.join(lines)


# ──────────────────────────────────────────────
# Convenience function
# ──────────────────────────────────────────────

def assemble(source: str, origin: int = 0) -> bytes:
    """Assemble source text, return the byte image."""
    return Assembler().assemble(source, origin)
