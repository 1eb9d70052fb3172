from .cpu import Executor, Instruction, decode
from .devices import Framebuffer, Keypad
from .errors import Chip8Error, RomTooLarge, StackOverflow, StackUnderflow, UnknownOpcode
from .machine import Machine, State
from .memory import Memory, RegisterFile, Stack
