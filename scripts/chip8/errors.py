class Chip8Error(Exception):
    """base class for every error raised by the interpreter"""


class RomTooLarge(Chip8Error):
    def __init__(self, size: int, limit: int):
        super().__init__(f"ROM is {size} bytes, at most {limit} bytes fit in memory")
        self.size = size
        self.limit = limit


class StackOverflow(Chip8Error):
    def __init__(self, depth: int):
        super().__init__(f"The CHIP-8 stack can contain at most {depth} addresses. Limit exceeded")
        self.depth = depth


class StackUnderflow(Chip8Error):
    def __init__(self):
        super().__init__("Return with an empty CHIP-8 stack")


class UnknownOpcode(Chip8Error):
    def __init__(self, word: int, address: int):
        super().__init__(f"Unknown opcode 0x{word:04x} at address 0x{address:04x}")
        self.word = word
        self.address = address
