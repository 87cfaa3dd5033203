"""
CHIP-8 Virtual Machine — Loader, Firmware and CLI Tests
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

import pytest

import chip8kit
from chip8_vm import run_program
from chip8_vm.config import HEX_SPRITE_BASE, HEX_SPRITE_HEIGHT
from chip8_vm.errors import LoaderError, MemoryBoundsError
from chip8_vm.firmware import FIRMWARE, GLYPHS, load_firmware
from chip8_vm.loader import load_file, load_hex, parse_hex
from chip8_vm.mem.memory import Memory
from chip8_vm.programs import PROGRAMS, get_program


class TestParseHex:

    def test_records(self):
        text = """
        # comment
        0200   00E0 6380
        0210   D4 55
        """
        assert parse_hex(text) == [(0x200, bytes([0x00, 0xE0, 0x63, 0x80])),
                                   (0x210, bytes([0xD4, 0x55]))]

    @pytest.mark.parametrize("line", [
        "0200",              # no data
        "200 00E0",          # short address
        "02G0 00E0",         # not hex
        "0200 00E",          # odd digit count
        "0200 00EX",
    ])
    def test_bogus_line_skipped(self, line, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_hex(line + "\n0300 1234") == [(0x300, b'\x12\x34')]
        assert "Bogus line" in caplog.text

    def test_bogus_line_strict(self):
        with pytest.raises(LoaderError):
            parse_hex("0200 00E", strict=True)

    def test_load_hex_counts_bytes(self):
        mem = Memory()
        assert load_hex("0200 6105 0000\n0300 00EE", mem) == 6
        assert mem.read16(0x300) == 0x00EE

    def test_record_past_memory_end(self):
        with pytest.raises(MemoryBoundsError):
            load_hex("0FFF 1234", Memory())

    def test_load_file_hex_and_binary(self, tmp_path):
        listing = tmp_path / "prog.hex"
        listing.write_text("0300 6105\n", encoding="utf-8")
        image = tmp_path / "prog.ch8"
        image.write_bytes(b'\x61\x07')
        mem = Memory()
        assert load_file(listing, mem) == 2
        assert load_file(image, mem) == 2
        assert mem.read16(0x300) == 0x6105
        assert mem.read16(0x200) == 0x6107


class TestFirmware:

    def test_boot_vector_and_glyphs(self):
        mem = Memory()
        load_firmware(mem)
        assert mem.read16(0x000) == 0x1200
        for digit, rows in enumerate(GLYPHS):
            addr = HEX_SPRITE_BASE + digit * HEX_SPRITE_HEIGHT
            assert mem.read_block(addr, HEX_SPRITE_HEIGHT) == bytes(rows)

    def test_firmware_parses_strictly(self):
        assert len(parse_hex(FIRMWARE, strict=True)) == 1 + len(GLYPHS)


class TestPrograms:

    def test_every_listing_parses_strictly(self):
        for name in PROGRAMS:
            assert parse_hex(get_program(name), strict=True)

    def test_run_program(self):
        vm = run_program('hex-to-decimal')
        assert list(vm.cpu.regs.V[:3]) == [1, 2, 8]
        assert not vm.delay.running


class TestCli:

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        """main() reconfigures the root logger; put it back afterwards."""
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_demos(self, capsys):
        assert chip8kit.main(["demos"]) == 0
        out = capsys.readouterr().out
        for name in PROGRAMS:
            assert name in out

    def test_run_demo(self, capsys):
        assert chip8kit.main(["-q", "run", "--demo", "double-sum", "--max-steps", "100"]) == 0
        out = capsys.readouterr().out
        assert "PC: " in out

    def test_run_trace_and_dump(self, capsys):
        assert chip8kit.main(["-q", "run", "--demo", "hex-sprite",
                              "--trace", "--dump-mem"]) == 0
        out = capsys.readouterr().out
        assert "$200: 6103" in out
        assert "Memory:" in out

    def test_run_file_timeout(self, tmp_path, capsys):
        prog = tmp_path / "spin.hex"
        prog.write_text("0200 1200\n", encoding="utf-8")
        assert chip8kit.main(["-q", "run", str(prog), "--max-steps", "20"]) == 0

    def test_run_illegal_exits_1(self, tmp_path, capsys):
        prog = tmp_path / "bad.ch8"
        prog.write_bytes(b'\x50\x11')
        assert chip8kit.main(["-q", "run", str(prog)]) == 1

    def test_run_missing_file_exits_1(self, tmp_path):
        assert chip8kit.main(["-q", "run", str(tmp_path / "nope.ch8")]) == 1

    def test_disasm(self, tmp_path, capsys):
        prog = tmp_path / "prog.ch8"
        prog.write_bytes(b'\x61\x05\x00\xEE')
        assert chip8kit.main(["disasm", str(prog)]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines == ["$200: 6105  LD     V1, #$05", "$202: 00EE  RET"]

    def test_parse_hex_prefixes(self):
        assert chip8kit._parse_hex("0x200") == 0x200
        assert chip8kit._parse_hex("$200") == 0x200
        assert chip8kit._parse_hex("200") == 0x200
