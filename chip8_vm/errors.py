"""
CHIP-8 Virtual Machine — Error Taxonomy

Every condition that aborts the run loop derives from CpuError. Halt is
a CpuError too, but the run loop catches it and returns normally.
"""


class MemoryBoundsError(Exception):
    """Raised by Memory for any access outside the address space."""

    def __init__(self, addr: int, length: int = 1):
        self.addr = addr
        self.length = length
        super().__init__(f"out of bounds: ${addr:04X} (+{length})")


class LoaderError(ValueError):
    """Raised by the hex loader in strict mode for a malformed line."""
    pass


class CpuError(Exception):
    """Base class for every error that terminates the run loop."""
    pass


class StackOverflow(CpuError):
    def __init__(self):
        super().__init__("stack overflowed")


class StackUnderflow(CpuError):
    def __init__(self):
        super().__init__("stack underflowed")


class AddressOverflow(CpuError):
    """Address arithmetic left the address space."""

    def __init__(self, base: int = 0, offset: int = 0):
        self.base = base
        self.offset = offset
        super().__init__("memory address overflow")


class IllegalInstruction(CpuError):
    """Raised for an opcode that decodes to the unsupported variant."""

    def __init__(self, opcode: int):
        self.opcode = opcode
        super().__init__(f"illegal instruction {opcode:04X}")


class MemoryAccessError(CpuError):
    """Wraps a MemoryBoundsError raised while executing an instruction."""

    def __init__(self, cause: MemoryBoundsError):
        self.addr = cause.addr
        super().__init__(f"memory access error: {cause}")


class Breakpoint(CpuError):
    """PC reached a registered breakpoint before fetch."""

    def __init__(self, addr: int):
        self.addr = addr
        super().__init__(f"breakpoint at ${addr:03X}")


class Halt(CpuError):
    """Halt sentinel. Not a failure: Cpu.run() converts it to a return."""

    def __init__(self):
        super().__init__("halted")
