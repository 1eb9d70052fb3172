import logging
import random
from collections import namedtuple
from functools import wraps

from .errors import UnknownOpcode
from .memory import FONT_ADDRESS, FONT_GLYPH_SIZE

logger = logging.getLogger(__name__)


Instruction = namedtuple("Instruction", ["word", "opcode", "nnn", "nn", "n", "x", "y"])


def decode(word: int) -> Instruction:
    """split a raw 16 bit word into its fields, every word decodes"""
    return Instruction(
        word=word & 0xFFFF,
        opcode=(word >> 12) & 0xF,
        nnn=word & 0x0FFF,
        nn=word & 0x00FF,
        n=word & 0x000F,
        x=(word >> 8) & 0xF,
        y=(word >> 4) & 0xF,
    )


def dispatch_key(inst: Instruction):
    """table key for an instruction: the class plus the field that selects the variant, if any"""
    if inst.opcode in (0x0, 0xE, 0xF):
        return inst.opcode, inst.nn
    if inst.opcode in (0x5, 0x8):
        return inst.opcode, inst.n
    return inst.opcode, None


# ******************** UTILITIES SECTION
def asm(msg):
    """decorator to log the ASM of the instruction being executed"""
    def decorator(fn):
        @wraps(fn)
        def wrapper_fn(self, machine, inst):
            if logger.isEnabledFor(logging.DEBUG):
                mem_addr = (machine.regs.pc - 2) & 0xFFFF     # pc was already advanced by the fetch
                logger.debug("0x%04x  %04x  %s", mem_addr, inst.word, msg.format(**inst._asdict()))
            return fn(self, machine, inst)
        return wrapper_fn
    return decorator


# ******************** CPU SECTION
class Executor:
    def __init__(self, rng=None):
        self.rng = rng if rng is not None else random.Random()
        self.instructions = {
            (0x0, 0xE0): self._clear_screen,
            (0x0, 0xEE): self._return,
            (0x1, None): self._jump,
            (0x2, None): self._call_addr,
            (0x3, None): self._skip_if_eq,
            (0x4, None): self._skip_if_not_eq,
            (0x5, 0x0): self._skip_if_eq_regs,
            (0x6, None): self._set_vx,
            (0x7, None): self._add_to_vx,
            (0x8, 0x0): self._set_vx_to_vy,
            (0x8, 0x1): self._set_vx_or_vy,
            (0x8, 0x2): self._set_vx_and_vy,
            (0x8, 0x3): self._set_vx_xor_vy,
            (0x8, 0x4): self._add_vx_vy,
            (0x8, 0x5): self._sub_vx_vy,
            (0x8, 0x6): self._shr,
            (0x8, 0x7): self._subn_vx_vy,
            (0x8, 0xE): self._shl,
            (0x9, None): self._skip_if_not_eq_regs,
            (0xA, None): self._set_idx,
            (0xB, None): self._jump_plus,
            (0xC, None): self._random_byte_and,
            (0xD, None): self._to_screen,
            (0xE, 0x9E): self._skip_if_pressed,
            (0xE, 0xA1): self._skip_if_not_pressed,
            (0xF, 0x07): self._set_vx_dt,
            (0xF, 0x0A): self._wait_keypress,
            (0xF, 0x15): self._set_dt_vx,
            (0xF, 0x18): self._set_st,
            (0xF, 0x1E): self._add_to_idx,
            (0xF, 0x29): self._select_char,
            (0xF, 0x33): self._bcd_repr,
            (0xF, 0x55): self._store_vregs,
            (0xF, 0x65): self._load_vregs,
        }

    def lookup(self, inst: Instruction):
        """return the handler for the instruction, None if the combination is not part of the set"""
        return self.instructions.get(dispatch_key(inst))

    def execute(self, machine, inst: Instruction, strict=False):
        """apply one instruction to the machine, pc must already point past it"""
        handler = self.lookup(inst)
        if handler is None:
            address = (machine.regs.pc - 2) & 0xFFFF
            if strict:
                raise UnknownOpcode(inst.word, address)
            logger.warning("Unknown opcode 0x%04x at address 0x%04x, ignored", inst.word, address)
            return
        handler(machine, inst)

    @staticmethod
    def _skip(machine):
        machine.regs.pc += 0x2

    # ********** FLOW
    @asm("CLS")
    def _clear_screen(self, machine, inst):
        machine.screen.clear()
        machine.draw = True

    @asm("RET")
    def _return(self, machine, inst):
        """return from a subroutine"""
        machine.regs.pc = machine.stack.pop()

    @asm("JP 0x{nnn:03x}")
    def _jump(self, machine, inst):
        machine.regs.pc = inst.nnn

    @asm("CALL 0x{nnn:03x}")
    def _call_addr(self, machine, inst):
        machine.stack.push(machine.regs.pc)
        machine.regs.pc = inst.nnn

    @asm("JP V0, 0x{nnn:03x}")
    def _jump_plus(self, machine, inst):
        machine.regs.pc = (machine.regs.v_regs[0x0] + inst.nnn) & 0xFFFF

    # ********** CONDITIONAL SKIPS
    @asm("SE V{x:X}, 0x{nn:02x}")
    def _skip_if_eq(self, machine, inst):
        if machine.regs.v_regs[inst.x] == inst.nn:
            self._skip(machine)

    @asm("SNE V{x:X}, 0x{nn:02x}")
    def _skip_if_not_eq(self, machine, inst):
        if machine.regs.v_regs[inst.x] != inst.nn:
            self._skip(machine)

    @asm("SE V{x:X}, V{y:X}")
    def _skip_if_eq_regs(self, machine, inst):
        v = machine.regs.v_regs
        if v[inst.x] == v[inst.y]:
            self._skip(machine)

    @asm("SNE V{x:X}, V{y:X}")
    def _skip_if_not_eq_regs(self, machine, inst):
        v = machine.regs.v_regs
        if v[inst.x] != v[inst.y]:
            self._skip(machine)

    @asm("SKP V{x:X}")
    def _skip_if_pressed(self, machine, inst):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is pressed"""
        if machine.keypad[machine.regs.v_regs[inst.x]]:
            self._skip(machine)

    @asm("SKNP V{x:X}")
    def _skip_if_not_pressed(self, machine, inst):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is NOT pressed"""
        if not machine.keypad[machine.regs.v_regs[inst.x]]:
            self._skip(machine)

    # ********** REGISTERS AND ALU
    @asm("LD V{x:X}, 0x{nn:02x}")
    def _set_vx(self, machine, inst):
        machine.regs.v_regs[inst.x] = inst.nn

    @asm("ADD V{x:X}, 0x{nn:02x}")
    def _add_to_vx(self, machine, inst):
        """add NN to Vx, the carry flag is left alone"""
        v = machine.regs.v_regs
        v[inst.x] = (v[inst.x] + inst.nn) & 0xFF

    @asm("LD V{x:X}, V{y:X}")
    def _set_vx_to_vy(self, machine, inst):
        v = machine.regs.v_regs
        v[inst.x] = v[inst.y]

    @asm("OR V{x:X}, V{y:X}")
    def _set_vx_or_vy(self, machine, inst):
        v = machine.regs.v_regs
        v[inst.x] |= v[inst.y]
        v[0xF] = 0

    @asm("AND V{x:X}, V{y:X}")
    def _set_vx_and_vy(self, machine, inst):
        v = machine.regs.v_regs
        v[inst.x] &= v[inst.y]
        v[0xF] = 0

    @asm("XOR V{x:X}, V{y:X}")
    def _set_vx_xor_vy(self, machine, inst):
        v = machine.regs.v_regs
        v[inst.x] ^= v[inst.y]
        v[0xF] = 0

    @asm("ADD V{x:X}, V{y:X}")
    def _add_vx_vy(self, machine, inst):
        """set Vx to Vx + Vy, VF = carry"""
        v = machine.regs.v_regs
        total = v[inst.x] + v[inst.y]
        v[inst.x] = total & 0xFF     # keep only the lowest 8 bits
        v[0xF] = 1 if total > 255 else 0

    @asm("SUB V{x:X}, V{y:X}")
    def _sub_vx_vy(self, machine, inst):
        """set Vx to Vx - Vy, VF = NOT borrow"""
        v = machine.regs.v_regs
        not_borrow = 1 if v[inst.y] <= v[inst.x] else 0
        v[inst.x] = (v[inst.x] - v[inst.y]) & 0xFF
        v[0xF] = not_borrow

    @asm("SHR V{x:X}, V{y:X}")
    def _shr(self, machine, inst):
        """set Vx to Vy SHR 1, VF = the bit shifted out"""
        v = machine.regs.v_regs
        lsb = v[inst.y] & 0x1
        v[inst.x] = v[inst.y] >> 1
        v[0xF] = lsb

    @asm("SUBN V{x:X}, V{y:X}")
    def _subn_vx_vy(self, machine, inst):
        """set Vx to Vy - Vx, VF = NOT borrow"""
        v = machine.regs.v_regs
        not_borrow = 1 if v[inst.x] <= v[inst.y] else 0
        v[inst.x] = (v[inst.y] - v[inst.x]) & 0xFF
        v[0xF] = not_borrow

    @asm("SHL V{x:X}, V{y:X}")
    def _shl(self, machine, inst):
        """set Vx to Vy SHL 1, VF = the bit shifted out"""
        v = machine.regs.v_regs
        msb = (v[inst.y] & 0x80) >> 7
        v[inst.x] = (v[inst.y] << 1) & 0xFF
        v[0xF] = msb

    @asm("RND V{x:X}, 0x{nn:02x}")
    def _random_byte_and(self, machine, inst):
        machine.regs.v_regs[inst.x] = self.rng.randint(0, 255) & inst.nn

    # ********** INDEX REGISTER AND MEMORY
    @asm("LD I, 0x{nnn:03x}")
    def _set_idx(self, machine, inst):
        machine.regs.idx = inst.nnn

    @asm("ADD I, V{x:X}")
    def _add_to_idx(self, machine, inst):
        regs = machine.regs
        regs.idx = (regs.idx + regs.v_regs[inst.x]) & 0xFFFF

    @asm("LD F, V{x:X}")
    def _select_char(self, machine, inst):
        """set I to location of sprite for digit Vx"""
        regs = machine.regs
        regs.idx = FONT_ADDRESS + regs.v_regs[inst.x] * FONT_GLYPH_SIZE

    @asm("LD B, V{x:X}")
    def _bcd_repr(self, machine, inst):
        """store the hundreds digit of Vx at I, the tens digit at I+1, the ones digit at I+2"""
        regs, mem = machine.regs, machine.mem
        value = regs.v_regs[inst.x]
        digits = (value // 100, value // 10 % 10, value % 10)
        for offset, digit in enumerate(digits):
            mem.write_byte((regs.idx + offset) & 0xFFF, digit)

    @asm("LD [I], V{x:X}")
    def _store_vregs(self, machine, inst):
        """store registers V0 through Vx (included) in memory starting at location I"""
        regs, mem = machine.regs, machine.mem
        for i in range(inst.x + 1):
            mem.write_byte((regs.idx + i) & 0xFFF, regs.v_regs[i])

    @asm("LD V{x:X}, [I]")
    def _load_vregs(self, machine, inst):
        """read registers V0 through Vx (included) from memory starting at location I"""
        regs, mem = machine.regs, machine.mem
        for i in range(inst.x + 1):
            regs.v_regs[i] = mem.read_byte((regs.idx + i) & 0xFFF)

    # ********** TIMERS AND KEYPAD
    @asm("LD V{x:X}, DT")
    def _set_vx_dt(self, machine, inst):
        machine.regs.v_regs[inst.x] = machine.regs.dt

    @asm("LD DT, V{x:X}")
    def _set_dt_vx(self, machine, inst):
        machine.regs.dt = machine.regs.v_regs[inst.x]

    @asm("LD ST, V{x:X}")
    def _set_st(self, machine, inst):
        machine.regs.st = machine.regs.v_regs[inst.x]

    @asm("LD V{x:X}, K")
    def _wait_keypress(self, machine, inst):
        """wait for a key press and store its value in Vx"""
        key = machine.keypad.first()
        if key is None:
            machine.regs.pc -= 0x2      # stay on the same instruction until a key is pressed
        else:
            machine.regs.v_regs[inst.x] = key

    # ********** DISPLAY
    @asm("DRW V{x:X}, V{y:X}, {n}")
    def _to_screen(self, machine, inst):
        """display n-byte sprite starting at memory location I at (Vx, Vy), set VF = collision"""
        regs, mem = machine.regs, machine.mem
        x, y = regs.v_regs[inst.x], regs.v_regs[inst.y]
        rows = [mem.read_byte((regs.idx + i) & 0xFFF) for i in range(inst.n)]
        regs.v_regs[0xF] = 0
        if machine.screen.draw_sprite(x, y, rows):
            regs.v_regs[0xF] = 1
        machine.draw = True
