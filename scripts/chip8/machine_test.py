import unittest

from chip8 import Machine, RomTooLarge, State
from chip8.memory import C8_FONTS, ROM_START_ADDRESS


ADD_PROGRAM = bytes([0x60, 0x05, 0x61, 0x03, 0x80, 0x14])   # V0=5, V1=3, V0+=V1


class TestProgram(unittest.TestCase):
    def test_end_to_end(self):
        chip = Machine(ADD_PROGRAM)
        for _ in range(3):
            chip.step()
        self.assertEqual(chip.regs.v_regs[0], 8)
        self.assertEqual(chip.regs.v_regs[1], 3)
        self.assertEqual(chip.regs.v_regs[0xF], 0)
        self.assertEqual(chip.regs.pc, 0x206)

    def test_step_returns_instruction(self):
        chip = Machine(ADD_PROGRAM)
        inst = chip.step()
        self.assertEqual(inst.word, 0x6005)

    def test_fresh_machine(self):
        chip = Machine()
        self.assertEqual(chip.regs.pc, ROM_START_ADDRESS)
        self.assertEqual(chip.mem[0], 0xF0)
        self.assertEqual(len(chip.stack), 0)
        self.assertIs(chip.state, State.RUNNING)
        self.assertFalse(any(chip.screen.buffer))

    def test_rom_too_large(self):
        with self.assertRaises(RomTooLarge):
            Machine(bytes(4096 - 0x200 + 1))


class TestStateMachine(unittest.TestCase):
    def test_pause_blocks_stepping(self):
        chip = Machine(ADD_PROGRAM)
        chip.request_pause_toggle()
        self.assertTrue(chip.paused)
        self.assertIsNone(chip.step())
        self.assertEqual(chip.regs.pc, 0x200)
        chip.request_pause_toggle()
        self.assertTrue(chip.running)
        chip.step()
        self.assertEqual(chip.regs.pc, 0x202)

    def test_quit_is_terminal(self):
        chip = Machine(ADD_PROGRAM)
        chip.request_pause_toggle()
        chip.request_quit()
        self.assertTrue(chip.halted)
        chip.request_pause_toggle()
        self.assertTrue(chip.halted)
        self.assertIsNone(chip.step())
        with self.assertLogs("chip8.machine", level="WARNING"):
            chip.request_reset()
        self.assertTrue(chip.halted)

    def test_reset_restores_program(self):
        chip = Machine(ADD_PROGRAM)
        for _ in range(3):
            chip.step()
        chip.regs.dt = 10
        chip.screen.write_pixel(1, 1, True)
        chip.set_key(3, True)
        chip.request_pause_toggle()
        chip.request_reset()
        self.assertTrue(chip.running)
        self.assertEqual(chip.regs.pc, 0x200)
        self.assertEqual(list(chip.regs.v_regs), [0] * 16)
        self.assertEqual(chip.regs.dt, 0)
        self.assertFalse(any(chip.screen.buffer))
        self.assertEqual(chip.mem[0x200:0x206], ADD_PROGRAM)
        for _ in range(3):
            chip.step()
        self.assertEqual(chip.regs.v_regs[0], 8)

    def test_reset_clears_low_memory_and_restores_font(self):
        # V0=0xAA; I=0x100; LD [I], V0; I=0; LD [I], V0
        chip = Machine(bytes([0x60, 0xAA, 0xA1, 0x00, 0xF0, 0x55, 0xA0, 0x00, 0xF0, 0x55]))
        for _ in range(5):
            chip.step()
        self.assertEqual(chip.mem[0x100], 0xAA)
        self.assertEqual(chip.mem[0], 0xAA)
        chip.request_reset()
        self.assertEqual(chip.mem[0x100], 0)
        self.assertEqual(list(chip.mem[0:80]), C8_FONTS)
        self.assertEqual(list(chip.mem[80:ROM_START_ADDRESS]), [0] * (ROM_START_ADDRESS - 80))

    def test_failed_load_keeps_memory(self):
        chip = Machine(ADD_PROGRAM)
        with self.assertRaises(RomTooLarge):
            chip.load(bytes(4096))
        self.assertEqual(chip.mem[0x200:0x206], ADD_PROGRAM)

    def test_reset_leaves_keypad_released(self):
        chip = Machine(ADD_PROGRAM)
        chip.request_reset()
        self.assertTrue(chip.keypad.untouched())
        self.assertFalse(chip.keypad[1])

    def test_reset_with_new_rom(self):
        chip = Machine(ADD_PROGRAM)
        chip.mem[0x300] = 0xAB
        chip.reset(bytes([0x12, 0x00]))
        self.assertEqual(chip.rom, bytes([0x12, 0x00]))
        self.assertEqual(chip.mem[0x202], 0)
        self.assertEqual(chip.mem[0x300], 0)

    def test_set_key_range(self):
        chip = Machine()
        with self.assertRaises(ValueError):
            chip.set_key(16, True)
        chip.set_key(0xF, True)
        self.assertTrue(chip.keypad[0xF])
        chip.set_key(0xF, False)
        self.assertFalse(chip.keypad[0xF])


class TestTimers(unittest.TestCase):
    def test_decay_stops_at_zero(self):
        chip = Machine()
        chip.regs.dt = 3
        chip.regs.st = 1
        for _ in range(5):
            chip.tick_timers()
        self.assertEqual(chip.regs.dt, 0)
        self.assertEqual(chip.regs.st, 0)
        self.assertFalse(chip.tone)

    def test_timers_tick_while_paused(self):
        chip = Machine()
        chip.regs.dt = 2
        chip.request_pause_toggle()
        chip.tick_timers()
        self.assertEqual(chip.regs.dt, 1)

    def test_timers_stop_when_halted(self):
        chip = Machine()
        chip.regs.dt = 2
        chip.request_quit()
        chip.tick_timers()
        self.assertEqual(chip.regs.dt, 2)


class TestOutput(unittest.TestCase):
    def test_framebuffer_is_a_snapshot(self):
        chip = Machine()
        chip.screen.write_pixel(63, 31, True)
        grid = chip.framebuffer
        self.assertEqual(len(grid), 32)
        self.assertEqual(len(grid[0]), 64)
        self.assertTrue(grid[31][63])
        chip.screen.clear()
        self.assertTrue(grid[31][63])

    def test_str_dumps_state(self):
        chip = Machine(ADD_PROGRAM)
        chip.step()
        dump = str(chip)
        self.assertIn("PC_REGISTER:0x0202", dump)
        self.assertIn("STATE:running", dump)


if __name__ == "__main__":
    unittest.main()
