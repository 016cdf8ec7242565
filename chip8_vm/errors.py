"""
CHIP-8 VM - Error Taxonomy

Every failure the machine can hit is a Chip8Error. None of them are
retried inside the VM: they surface from step() / run_frame() / drive()
and the current frame is abandoned.
"""


class Chip8Error(Exception):
    """Base for all machine-generated faults."""
    pass


class DecodeError(Chip8Error):
    """Opcode matches no instruction in the base CHIP-8 set."""

    def __init__(self, opcode: int, pc: int, message: str = ""):
        self.opcode = opcode
        self.pc = pc
        super().__init__(message or f"Unknown opcode ${opcode:04X} at ${pc:03X}")


class OutOfBounds(Chip8Error):
    """A memory access would run past the end of the 4K address space."""

    def __init__(self, addr: int, length: int = 1, message: str = ""):
        self.addr = addr
        self.length = length
        super().__init__(
            message or f"Access of {length} byte(s) at ${addr:04X} exceeds memory")


class StackOverflow(Chip8Error):
    """CALL with all 16 return slots in use."""
    pass


class StackUnderflow(Chip8Error):
    """RET with no caller to return to."""
    pass


class ImageTooLarge(Chip8Error):
    """Program image does not fit between ROM_START and the end of memory."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Program is {size} bytes, only {limit} fit")
