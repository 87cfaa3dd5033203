"""
CHIP-8 Virtual Machine — Hex Keypad

The CPU sees two operations:

  get_pressed()  non-blocking, last known key or None   (Ex9E / ExA1)
  await_press()  blocks until a key arrives, consumes it (Fx0A)

await_press() is the only place the CPU thread may block. It waits on a
condition variable and has no timeout unless the caller passes one.

SerialKeypad reads keys from a hardware keypad on a serial line: every
received hex digit character ('0'-'9', 'a'-'f', 'A'-'F') is a press,
anything else is ignored.
"""

import logging
import threading
from typing import Optional

import serial

from ..config import KEYPAD_BAUD, KEYPAD_READ_TIMEOUT_S

logger = logging.getLogger(__name__)


class Keyboard:
    """In-process keypad. Another thread (or a test) calls press()."""

    def __init__(self):
        self._pressed: Optional[int] = None
        self._cond = threading.Condition()

    def press(self, key: int):
        with self._cond:
            self._pressed = key & 0xFF
            self._cond.notify_all()

    def release(self):
        with self._cond:
            self._pressed = None

    def get_pressed(self) -> Optional[int]:
        return self._pressed

    def await_press(self, timeout: Optional[float] = None) -> int:
        """Block until a key is pressed, then consume and return it.

        Raises TimeoutError only when a timeout was given and expired.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._pressed is not None, timeout):
                raise TimeoutError("no key pressed")
            key = self._pressed
            self._pressed = None
            return key


def parse_key(char: bytes) -> Optional[int]:
    """b'a' → 0xA. Returns None for anything that is not one hex digit."""
    try:
        text = char.decode('ascii')
    except UnicodeDecodeError:
        return None
    if len(text) != 1 or text not in '0123456789abcdefABCDEF':
        return None
    return int(text, 16)


class SerialKeypad(Keyboard):
    """Keypad fed from a serial port by a daemon reader thread.

    Pass `serial_port` to reuse an already open port (or any object with
    read()/close()); otherwise `port` is opened with pyserial.
    """

    def __init__(self, port: Optional[str] = None, baud: int = KEYPAD_BAUD,
                 serial_port=None):
        super().__init__()
        if serial_port is None:
            serial_port = serial.Serial(port=port, baudrate=baud,
                                        timeout=KEYPAD_READ_TIMEOUT_S)
            logger.info(f"Keypad connected on {port} at {baud} baud")
        self.serial = serial_port
        self._closing = threading.Event()
        self._reader = threading.Thread(target=self._read_loop,
                                        name='SerialKeypad', daemon=True)
        self._reader.start()

    def _read_loop(self):
        while not self._closing.is_set():
            try:
                data = self.serial.read(1)
            except serial.SerialException as e:
                logger.error(f"Keypad read failed: {e}")
                return
            if not data:
                continue
            key = parse_key(data)
            if key is None:
                logger.debug(f"Keypad ignored byte {data!r}")
                continue
            self.press(key)

    def close(self):
        self._closing.set()
        self._reader.join(timeout=1.0)
        self.serial.close()
