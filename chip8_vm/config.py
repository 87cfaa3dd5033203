"""
CHIP-8 Virtual Machine — Machine Constants / Tunables

Every size and address the emulator relies on lives here so the CPU,
memory and peripheral models agree on one set of numbers.

Memory map:
  $000–$001  Boot vector (JP $200)
  $100–$14F  Built-in hexadecimal glyphs (16 × 5 bytes)
  $200–$FFF  Program space
"""

# =============================================================================
#  MEMORY
# =============================================================================
MEMORY_SIZE = 4096        # 4K flat byte-addressable store
RESET_PC = 0x0000         # CPU starts fetching here (boot vector)
PROGRAM_START = 0x0200    # Conventional load address for programs
ADDRESS_MAX = 0xFFFF      # Address arithmetic width (PC, I); no wraparound


# =============================================================================
#  CPU
# =============================================================================
REGISTER_COUNT = 16       # V0–VF
FLAG_REGISTER = 0xF       # VF: carry / borrow / collision
STACK_DEPTH = 16          # Return address slots
INSTRUCTION_SIZE = 2      # Every opcode is one big-endian word

# Static trace switch. Cpu.enable_trace() overrides it per instance.
TRACE = False
TRACE_DEPTH = 10_000      # Trace lines kept; oldest dropped first


# =============================================================================
#  HEX GLYPHS (Fx29, LDSPR)
# =============================================================================
HEX_SPRITE_BASE = 0x0100
HEX_SPRITE_HEIGHT = 5     # Bytes per glyph


# =============================================================================
#  DISPLAY
# =============================================================================
DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
PIXEL_ON = '*'
PIXEL_OFF = ' '


# =============================================================================
#  TIMERS / SOUND
# =============================================================================
TIMER_TICK_S = 0.016      # ~60 Hz decrement
TIMER_MAX = 0xFF


# =============================================================================
#  SERIAL KEYPAD
# =============================================================================
KEYPAD_BAUD = 9600
KEYPAD_READ_TIMEOUT_S = 0.1
