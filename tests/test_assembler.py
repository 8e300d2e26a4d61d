"""
Assembler Tests for cpu8.

Covers instruction encoding, constants, labels (including forward
references), the error taxonomy with line numbers, and the listing.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from cpu8.assembler import (
    Assembler, AssemblyError, assemble, parse_number,
    DuplicateLabel, DuplicateConstant, InvalidConstantValue,
    UnknownInstruction, UnknownOpcode, MissingOperand, UnknownLabel,
)
from cpu8.isa import OPCODES, Opcode, lookup, by_code


class TestOpcodeTable:

    def test_every_opcode_registered(self):
        assert set(OPCODES) == {op.name for op in Opcode}

    def test_zero_is_not_an_opcode(self):
        """0x00 must stay illegal so zeroed memory halts the machine."""
        assert by_code(0x00) is None

    def test_sizes(self):
        assert lookup("ADD").size == 1
        assert lookup("HALT").size == 1
        assert lookup("LDA_IMM").size == 2
        assert lookup("JMP").size == 2
        assert lookup("CALL").size == 2

    def test_lookup_case_insensitive(self):
        assert lookup("lda_imm") is lookup("LDA_IMM")
        assert lookup("nope") is None


class TestOpcodeEncoding:
    """Verify individual instruction encodings against the opcode table."""

    def test_inherent_instructions(self):
        cases = [
            ("ADD",    b'\x03'),
            ("PRINTA", b'\x04'),
            ("DEC_A",  b'\x05'),
            ("ADC",    b'\x08'),
            ("RET",    b'\x14'),
            ("PUSH_A", b'\x30'),
            ("POP_A",  b'\x31'),
            ("PUSH_B", b'\x32'),
            ("POP_B",  b'\x33'),
            ("HALT",   b'\xFF'),
        ]
        for src, expected in cases:
            assert assemble(src) == expected, f"{src}"

    def test_operand_instructions(self):
        cases = [
            ("LDA_IMM 5",      b'\x01\x05'),
            ("LDB_IMM 0x07",   b'\x02\x07'),
            ("CMP_A_IMM 0",    b'\x06\x00'),
            ("SUB_A_IMM 1",    b'\x07\x01'),
            ("JMP 0x10",       b'\x10\x10'),
            ("JZ 3",           b'\x11\x03'),
            ("JNZ 3",          b'\x12\x03'),
            ("CALL 0x20",      b'\x13\x20'),
            ("LDA_MEM 0x80",   b'\x20\x80'),
            ("STA_MEM 0x80",   b'\x21\x80'),
        ]
        for src, expected in cases:
            assert assemble(src) == expected, f"{src}"

    def test_literals_wrap_to_8_bits(self):
        assert assemble("LDA_IMM 256") == b'\x01\x00'
        assert assemble("LDA_IMM -1") == b'\x01\xFF'
        assert assemble("LDA_IMM 0x1FF") == b'\x01\xFF'

    def test_comments_blank_lines_and_commas(self):
        src = """
        ; header comment

            LDA_IMM 5      ; load
            STA_MEM, 0x80
        """
        assert assemble(src) == b'\x01\x05\x21\x80'

    def test_mnemonics_any_case(self):
        assert assemble("lda_imm 5\nHalt") == b'\x01\x05\xFF'

    def test_empty_source(self):
        assert assemble("") == b''
        assert assemble("; nothing here\n\n") == b''


class TestParseNumber:

    def test_decimal_and_hex(self):
        assert parse_number("42") == 42
        assert parse_number("-3") == -3
        assert parse_number("0x2a") == 42
        assert parse_number("0X2A") == 42

    def test_not_numbers(self):
        for tok in ("", "0x", "abc", "12ab", "$FF", "0xZZ"):
            assert parse_number(tok) is None, tok


class TestConstants:

    def test_constant_as_operand(self):
        src = "COUNTER EQU 0x80\nSTA_MEM COUNTER"
        asm = Assembler()
        assert asm.assemble(src) == b'\x21\x80'
        assert asm.constants == {"COUNTER": 0x80}

    def test_constant_defined_after_use(self):
        """Constants are collected before any operand is resolved."""
        assert assemble("LDA_IMM FIVE\nFIVE EQU 5") == b'\x01\x05'

    def test_constant_value_masked(self):
        asm = Assembler()
        asm.assemble("BIG EQU 300\nNEG EQU -1")
        assert asm.constants == {"BIG": 44, "NEG": 0xFF}

    def test_constant_keyword_any_case(self):
        assert assemble("X equ 9\nLDA_IMM X") == b'\x01\x09'

    def test_constant_emits_nothing(self):
        assert assemble("X EQU 1\nY EQU 2") == b''

    def test_constant_wins_over_label(self):
        src = "here EQU 0x40\nhere:\nJMP here"
        assert assemble(src) == b'\x10\x40'


class TestLabels:

    def test_backward_label(self):
        src = "loop:\nDEC_A\nJNZ loop\nHALT"
        assert assemble(src) == b'\x05\x12\x00\xFF'

    def test_forward_label(self):
        src = "JMP skip\nLDA_IMM 1\nPRINTA\nskip: HALT"
        asm = Assembler()
        image = asm.assemble(src)
        assert asm.labels["skip"] == 5
        assert image == b'\x10\x05\x01\x01\x04\xFF'

    def test_label_then_instruction_same_line(self):
        asm = Assembler()
        asm.assemble("LDA_IMM 1\nstart: PRINTA\nJMP start")
        assert asm.labels == {"start": 2}

    def test_several_labels_same_address(self):
        asm = Assembler()
        asm.assemble("a:\nb:\nHALT")
        assert asm.labels == {"a": 0, "b": 0}

    def test_origin_offsets_labels(self):
        """origin=$10 → loop label at $10, listing addresses start at $10."""
        asm = Assembler()
        image = asm.assemble("loop: DEC_A\nJNZ loop", origin=0x10)
        assert asm.labels == {"loop": 0x10}
        assert image == b'\x05\x12\x10'
        assert "  11  12 10" in asm.get_listing()

    def test_origin_forward_label(self):
        assert assemble("JMP end\nend: HALT", origin=0xF0) == b'\x10\xF2\xFF'

    def test_label_names_case_sensitive(self):
        with pytest.raises(UnknownLabel):
            assemble("Loop:\nJMP loop")


class TestAssemblyErrors:
    """Each error type carries the 1-based line it was raised for."""

    def _error(self, src: str) -> AssemblyError:
        with pytest.raises(AssemblyError) as exc:
            assemble(src)
        return exc.value

    def test_duplicate_label(self):
        err = self._error("a:\nHALT\na:")
        assert isinstance(err, DuplicateLabel)
        assert err.line == 3

    def test_duplicate_constant(self):
        err = self._error("X EQU 1\nX EQU 2")
        assert isinstance(err, DuplicateConstant)
        assert err.line == 2

    def test_invalid_constant_value(self):
        err = self._error("HALT\nX EQU banana")
        assert isinstance(err, InvalidConstantValue)
        assert err.line == 2

    def test_missing_constant_value(self):
        err = self._error("X EQU")
        assert isinstance(err, InvalidConstantValue)
        assert err.line == 1

    def test_unknown_instruction(self):
        err = self._error("LDA_IMM 1\n\nFROB 3")
        assert isinstance(err, UnknownInstruction)
        assert err.line == 3
        assert "FROB" in err.message

    def test_missing_operand(self):
        err = self._error("HALT\nJMP")
        assert isinstance(err, MissingOperand)
        assert err.line == 2

    def test_unknown_label(self):
        err = self._error("JMP nowhere")
        assert isinstance(err, UnknownLabel)
        assert err.line == 1
        assert "nowhere" in err.message

    def test_str_includes_line(self):
        err = self._error("HALT\nJMP nowhere")
        assert str(err).startswith("Line 2:")

    def test_all_errors_share_base(self):
        for cls in (DuplicateLabel, DuplicateConstant, InvalidConstantValue,
                    UnknownInstruction, UnknownOpcode, MissingOperand, UnknownLabel):
            assert issubclass(cls, AssemblyError)

    def test_failed_assembly_reports_first_error(self):
        """Label pass runs before emission, so the unknown mnemonic wins."""
        err = self._error("JMP nowhere\nFROB")
        assert isinstance(err, UnknownInstruction)


class TestListing:

    def test_listing_has_addresses_and_bytes(self):
        asm = Assembler()
        asm.assemble("start:\n    LDA_IMM 5\n    HALT")
        listing = asm.get_listing()
        assert "ADDR" in listing
        assert "  00  01 05   LDA_IMM 5" in listing
        assert "  02  FF" in listing
        assert "start:" in listing

    def test_listing_resets_between_runs(self):
        asm = Assembler()
        asm.assemble("LDA_IMM 1")
        asm.assemble("HALT")
        assert "LDA_IMM" not in asm.get_listing()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
