"""
CHIP-8 Virtual Machine — Decoder and ALU Tests
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from chip8_vm.cpu import alu
from chip8_vm.cpu.decoder import MNEMONICS, decode, disassemble, format_line
from chip8_vm.mem.memory import Memory


class TestDecode:

    def test_every_word_decodes(self):
        """No 16-bit word raises, and every result is a known mnemonic."""
        for word in range(0x10000):
            instr = decode(word)
            assert instr.mnem in MNEMONICS
            assert instr.opcode == word

    @pytest.mark.parametrize("word, mnem, fields", [
        (0x0000, 'HALT', {}),
        (0xF000, 'HALT', {}),
        (0x00E0, 'CLS', {}),
        (0x00EE, 'RET', {}),
        (0x0123, 'SYS', {}),
        (0xF317, 'SYS', {}),
        (0x1ABC, 'JP', {'addr': 0xABC}),
        (0x2ABC, 'CALL', {'addr': 0xABC}),
        (0x3A42, 'SE', {'x': 0xA, 'imm': 0x42}),
        (0x5AB0, 'SEXY', {'x': 0xA, 'y': 0xB}),
        (0x7F01, 'ADD', {'x': 0xF, 'imm': 0x01}),
        (0x8AB4, 'ADDXY', {'x': 0xA, 'y': 0xB}),
        (0x8AB6, 'SHR', {'x': 0xA}),
        (0x8ABE, 'SHL', {'x': 0xA}),
        (0xA123, 'LDI', {'addr': 0x123}),
        (0xB123, 'JPV0', {'addr': 0x123}),
        (0xC30F, 'RND', {'x': 3, 'imm': 0x0F}),
        (0xD125, 'DRW', {'x': 1, 'y': 2, 'imm': 5}),
        (0xE59E, 'SKP', {'x': 5}),
        (0xE5A1, 'SKNP', {'x': 5}),
        (0xF50A, 'LDK', {'x': 5}),
        (0xF533, 'BCD', {'x': 5}),
        (0xF565, 'LDREGS', {'x': 5}),
    ])
    def test_decode_fields(self, word, mnem, fields):
        instr = decode(word)
        assert instr.mnem == mnem
        for name, value in fields.items():
            assert getattr(instr, name) == value

    @pytest.mark.parametrize("word", [0x5AB1, 0x9AB7, 0x8AB8, 0x8ABF, 0xE500, 0xF5FF])
    def test_illegal(self, word):
        assert decode(word).mnem == 'ILLEGAL'

    def test_shift_ignores_y(self):
        instr = decode(0x8AB6)
        assert instr.x == 0xA
        assert instr.y is None

    def test_assembler_syntax(self):
        assert str(decode(0x6105)) == "LD     V1, #$05"
        assert str(decode(0xA500)) == "LD     I, $500"
        assert str(decode(0xD455)) == "DRW    V4, V5, 5"
        assert str(decode(0x00E0)) == "CLS"


class TestDisassemble:

    def test_listing(self):
        mem = Memory()
        mem.load_binary(bytes([0x61, 0x05, 0x00, 0xEE]), 0x200)
        lines = [format_line(*entry) for entry in disassemble(mem, 0x200, 2)]
        assert lines == ["$200: 6105  LD     V1, #$05", "$202: 00EE  RET"]

    def test_stops_at_memory_end(self):
        mem = Memory()
        assert len(list(disassemble(mem, 0xFFC, 10))) == 2


class TestAlu:

    def test_add8(self):
        assert alu.add8(0xFF, 0x01) == (0x00, 1)
        assert alu.add8(0x10, 0x20) == (0x30, 0)

    def test_sub8_flag_is_not_borrow(self):
        assert alu.sub8(5, 3) == (2, 1)
        assert alu.sub8(3, 5) == (0xFE, 0)

    def test_shifts(self):
        assert alu.shr1(0x05) == (0x02, 1)
        assert alu.shl1(0x81) == (0x02, 1)

    @pytest.mark.parametrize("val, digits", [(0, (0, 0, 0)), (205, (2, 0, 5)), (255, (2, 5, 5))])
    def test_bcd(self, val, digits):
        assert alu.bcd3(val) == digits
