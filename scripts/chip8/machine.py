import enum
import logging

from .cpu import Executor, decode
from .devices import Framebuffer, Keypad
from .errors import StackOverflow, StackUnderflow
from .memory import Memory, RegisterFile, Stack

logger = logging.getLogger(__name__)


class State(enum.Enum):
    RUNNING = "running"
    PAUSED = "paused"
    HALTED = "halted"


class Machine:
    """
    a whole CHIP-8: memory, registers, stack, screen, keypad and the run state
    the caller drives it with step() and tick_timers() and feeds input through the request_* methods
    """

    def __init__(self, rom=None, rng=None, strict=False):
        self.mem = Memory()
        self.regs = RegisterFile()
        self.stack = Stack()
        self.screen = Framebuffer()
        self.keypad = Keypad()
        self.executor = Executor(rng)
        self.strict = strict
        self.state = State.RUNNING
        self.draw = False
        self.rom = b""
        if rom is not None:
            self.load(rom)

    def __str__(self):
        registers = repr(self.regs)
        stack = f"STACK:{self.stack!r}"
        flags = f"STATE:{self.state.value} | DRAW:{self.draw} | KEYPAD:{self.keypad!r}"
        return f"{registers}\n{stack}\n{flags}"

    # ********** LIFECYCLE
    def load(self, rom: bytes):
        """put a fresh program in memory and reinitialise everything around it"""
        mem = Memory()      # font reloaded, everything below the entry point zeroed
        mem.load_program(rom)
        self.mem = mem
        self.rom = bytes(rom)
        self.regs.reset()
        self.stack.clear()
        self.screen.clear()
        self.keypad.clear()
        self.draw = True
        logger.debug("Loaded %d bytes ROM at 0x%04x", len(self.rom), self.regs.pc)

    def reset(self, rom=None):
        """restart the last loaded program, or a new one when given"""
        self.load(self.rom if rom is None else rom)
        if self.state is not State.HALTED:
            self.state = State.RUNNING

    # ********** EXECUTION
    @property
    def running(self):
        return self.state is State.RUNNING

    @property
    def paused(self):
        return self.state is State.PAUSED

    @property
    def halted(self):
        return self.state is State.HALTED

    def fetch(self) -> int:
        """read the word at pc, each instruction is two bytes long"""
        return self.mem.read_word(self.regs.pc & 0xFFF)

    def step(self):
        """run one fetch/decode/execute cycle, return the executed instruction or None when not running"""
        if self.state is not State.RUNNING:
            return None
        inst = decode(self.fetch())
        self.regs.pc = (self.regs.pc + 0x2) & 0xFFFF
        try:
            self.executor.execute(self, inst, strict=self.strict)
        except (StackOverflow, StackUnderflow) as err:
            self.state = State.HALTED
            logger.error("%s, emulator halted with the following state\n%s", err, self)
            raise
        return inst

    def tick_timers(self):
        """count both timers down by one, stepping state does not matter"""
        if self.state is State.HALTED:
            return
        if self.regs.dt > 0:
            self.regs.dt -= 1
        if self.regs.st > 0:
            self.regs.st -= 1

    # ********** INPUT
    def set_key(self, index: int, pressed: bool):
        self.keypad[index] = pressed

    def request_pause_toggle(self):
        if self.state is State.RUNNING:
            self.state = State.PAUSED
            logger.info("Paused")
        elif self.state is State.PAUSED:
            self.state = State.RUNNING
            logger.info("Resumed")

    def request_quit(self):
        self.state = State.HALTED
        logger.info("Quit requested")

    def request_reset(self):
        if self.state is State.HALTED:
            logger.warning("Reset ignored, the machine is halted")
            return
        self.reset()
        logger.info("Game reset")

    # ********** OUTPUT
    @property
    def framebuffer(self):
        return self.screen.snapshot()

    @property
    def tone(self):
        return self.regs.st > 0
