from .errors import RomTooLarge, StackOverflow, StackUnderflow


# ******************** STATIC SECTION
C8_FONTS = [0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
            0x20, 0x60, 0x20, 0x20, 0x70,  # 1
            0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
            0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
            0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
            0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
            0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
            0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
            0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
            0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
            0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
            0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
            0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
            0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
            0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
            0xF0, 0x80, 0xF0, 0x80, 0x80]  # F

FONT_ADDRESS = 0x000
FONT_GLYPH_SIZE = 5
MEMORY_SIZE = 4096
ROM_START_ADDRESS = 0x200
MAX_ROM_SIZE = MEMORY_SIZE - ROM_START_ADDRESS
STACK_DEPTH = 12
REGISTER_COUNT = 16


# ********** WRAPS A BYTEARRAY TO REPRESENT THE MAIN MEMORY WITH A LIMITED SIZE OF 4KB
class Memory:
    def __init__(self):
        self.inner = bytearray(MEMORY_SIZE)
        self.load_font()

    def __setitem__(self, key, value):
        self.inner[key] = value

    def __getitem__(self, index):
        return self.inner[index]

    def __len__(self):
        return len(self.inner)

    def load_font(self):
        """write the hex digit glyphs at the start of memory"""
        self.inner[FONT_ADDRESS:FONT_ADDRESS+len(C8_FONTS)] = bytes(C8_FONTS)

    def load_program(self, rom: bytes):
        """copy the ROM at the entry point and zero whatever is left of program space"""
        if len(rom) > MAX_ROM_SIZE:
            raise RomTooLarge(len(rom), MAX_ROM_SIZE)
        self.inner[ROM_START_ADDRESS:] = bytes(rom) + bytes(MAX_ROM_SIZE - len(rom))

    def read_byte(self, addr: int) -> int:
        assert 0 <= addr < MEMORY_SIZE, f"address 0x{addr:04x} outside memory"
        return self.inner[addr]

    def write_byte(self, addr: int, value: int):
        assert 0 <= addr < MEMORY_SIZE, f"address 0x{addr:04x} outside memory"
        self.inner[addr] = value & 0xFF

    def read_word(self, addr: int) -> int:
        """big-endian 16 bit read, the second byte address wraps at 12 bits"""
        return self.read_byte(addr) << 8 | self.read_byte((addr + 1) & 0xFFF)


# ********** FIXED SIZE ARRAY PLUS DEPTH COUNTER TO REPRESENT THE CALL STACK
class Stack:
    def __init__(self, size=STACK_DEPTH):
        self.addr_list = [0] * size
        self.size = 0

    def __len__(self):
        return self.size

    def __repr__(self):
        return f"Stack({[f'0x{a:04x}' for a in self.addr_list[:self.size]]})"

    def push(self, address: int):
        if self.size >= len(self.addr_list):
            raise StackOverflow(len(self.addr_list))
        self.addr_list[self.size] = address & 0xFFFF
        self.size += 1

    def pop(self) -> int:
        if self.size == 0:
            raise StackUnderflow()
        self.size -= 1
        return self.addr_list[self.size]

    def clear(self):
        self.addr_list = [0] * len(self.addr_list)
        self.size = 0


class RegisterFile:
    def __init__(self):
        self.reset()

    def reset(self):
        self.v_regs = bytearray(REGISTER_COUNT)   # V0..VF, VF doubles as carry/collision flag
        self.idx = 0                    # I, 16 bit
        self.pc = ROM_START_ADDRESS
        self.dt = 0     # delay timer, active when non-zero
        self.st = 0     # sound timer, active when non-zero

    def __repr__(self):
        return (f"PC_REGISTER:0x{self.pc:04x} | IDX_REGISTER:0x{self.idx:04x} | "
                f"DT:{self.dt} | ST:{self.st} | VARIABLE_REGISTERS:{list(self.v_regs)}")
