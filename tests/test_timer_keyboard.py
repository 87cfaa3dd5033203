"""
CHIP-8 Virtual Machine — Timer and Keypad Tests

Threaded tests use short tick periods and generous deadlines so they do
not depend on scheduler precision.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging
import threading
import time

import pytest
import serial

from chip8_vm.periph.keyboard import Keyboard, SerialKeypad, parse_key
from chip8_vm.periph.timer import DelayTimer, SoundTimer


def _wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class TestTimers:

    def test_manual_tick_saturates(self):
        t = DelayTimer()
        t.set(2)
        t.tick()
        t.tick()
        t.tick()
        assert t.get() == 0

    def test_set_masks_to_byte(self):
        t = DelayTimer()
        t.set(0x1FF)
        assert t.get() == 0xFF

    def test_thread_counts_down(self):
        t = DelayTimer(tick_s=0.001)
        with t:
            t.set(10)
            assert _wait_until(lambda: t.get() == 0)
        assert not t.running

    def test_set_while_stopping_is_applied(self):
        t = DelayTimer(tick_s=10.0)
        t.start()
        t.set(42)
        t.stop()
        assert t.get() == 42

    def test_sound_transitions(self):
        tones = []
        s = SoundTimer(tone=tones.append)
        s.set(2)
        s.set(3)
        s.tick()
        s.tick()
        s.tick()
        s.tick()
        assert tones == [True, False]
        assert not s.playing

    def test_default_tone_logs(self, caplog):
        s = SoundTimer()
        with caplog.at_level(logging.INFO):
            s.set(1)
            s.tick()
        messages = [r.getMessage() for r in caplog.records]
        assert messages == ["BEEP.start.", "BEEP.end."]


class TestKeyboard:

    def test_no_key_initially(self):
        assert Keyboard().get_pressed() is None

    def test_press_release(self):
        kb = Keyboard()
        kb.press(0xC)
        assert kb.get_pressed() == 0xC
        kb.release()
        assert kb.get_pressed() is None

    def test_await_press_blocks_until_key(self):
        kb = Keyboard()
        threading.Timer(0.05, kb.press, args=(7,)).start()
        assert kb.await_press(timeout=2.0) == 7
        assert kb.get_pressed() is None

    def test_await_press_timeout(self):
        with pytest.raises(TimeoutError):
            Keyboard().await_press(timeout=0.01)

    @pytest.mark.parametrize("raw, key", [
        (b'0', 0x0), (b'9', 0x9), (b'a', 0xA), (b'F', 0xF),
        (b'g', None), (b'\n', None), (b'\xff', None), (b'', None),
    ])
    def test_parse_key(self, raw, key):
        assert parse_key(raw) == key


class FakeSerial:
    """Stands in for serial.Serial: hands out queued bytes one at a time."""

    def __init__(self, data=b'', error_after=False):
        self._data = bytearray(data)
        self._error_after = error_after
        self.closed = False

    def read(self, size=1):
        if self._data:
            out = bytes(self._data[:size])
            del self._data[:size]
            return out
        if self._error_after:
            raise serial.SerialException("device disconnected")
        time.sleep(0.005)
        return b''

    def close(self):
        self.closed = True


class TestSerialKeypad:

    def test_keys_from_port(self):
        port = FakeSerial(b'x3')
        pad = SerialKeypad(serial_port=port)
        try:
            assert pad.await_press(timeout=2.0) == 3
        finally:
            pad.close()
        assert port.closed

    def test_read_error_stops_reader(self, caplog):
        port = FakeSerial(b'', error_after=True)
        with caplog.at_level(logging.ERROR):
            pad = SerialKeypad(serial_port=port)
            assert _wait_until(lambda: not pad._reader.is_alive())
        pad.close()
        assert "Keypad read failed" in caplog.text
