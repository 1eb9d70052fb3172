"""pygame window, speaker and keyboard around a Machine, plus the command line entry point"""
import argparse
import logging
import os
import random
import sys
from array import array

os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "no welcome message"   # this env var disable pygame's welcome message when imported
import pygame

from .devices import SCREEN_HEIGHT, SCREEN_WIDTH
from .errors import Chip8Error
from .machine import Machine

logger = logging.getLogger(__name__)


# ******************** STATIC SECTION
# +-----+-----+-----+-----+
# | 1/1 | 2/2 | 3/3 | C/4 |
# +-----+-----+-----+-----+
# | 4/Q | 5/W | 6/E | D/R |
# +-----+-----+-----+-----+
# | 7/A | 8/S | 9/D | E/F |
# +-----+-----+-----+-----+
# | A/Z | 0/X | B/C | F/V |
# +-----+-----+-----+-----+
KEY_MAPPINGS = {
    pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
    pygame.K_q: 0x4, pygame.K_w: 0x5, pygame.K_e: 0x6, pygame.K_r: 0xD,
    pygame.K_a: 0x7, pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
    pygame.K_z: 0xA, pygame.K_x: 0x0, pygame.K_c: 0xB, pygame.K_v: 0xF,
}

DEBUG = True if int(os.getenv('DEBUG', 0)) >= 1 else False
FPS = 60
INSTRUCTIONS_PER_SECOND = 700
SCALE = 20
FOREGROUND = pygame.Color(255, 255, 255, 255)
BACKGROUND = pygame.Color(0, 0, 0, 255)
SQUARE_WAVE_FREQ = 440
VOLUME = 3000
AUDIO_SAMPLE_RATE = 48000


# ******************** UTILITIES SECTION
def read_rom(path):
    """load ROM file from user specified path"""
    with open(path, mode='rb') as f:
        return f.read()


def square_wave(freq=SQUARE_WAVE_FREQ, volume=VOLUME, sample_rate=AUDIO_SAMPLE_RATE, channels=1):
    """one period of a signed 16 bit square wave, samples interleaved per channel"""
    half_period = max(1, sample_rate // freq // 2)
    return array('h', (volume if (i // half_period) % 2 else -volume
                       for i in range(2 * half_period) for _ in range(channels)))


def get_args(argv=None):
    parser = argparse.ArgumentParser(prog="chip8", description="CHIP-8 interpreter")
    parser.add_argument("-f", "--file", required=True, help="input rom file")
    parser.add_argument("--scale", type=int, default=SCALE, help="window pixels per CHIP-8 pixel")
    parser.add_argument("--ips", type=int, default=INSTRUCTIONS_PER_SECOND, help="instructions executed per second")
    parser.add_argument("--fg", type=pygame.Color, default=FOREGROUND, help="colour of pixels that are ON")
    parser.add_argument("--bg", type=pygame.Color, default=BACKGROUND, help="colour of pixels that are OFF")
    parser.add_argument("--freq", type=int, default=SQUARE_WAVE_FREQ, help="tone frequency in Hz")
    parser.add_argument("--volume", type=int, default=VOLUME, help="tone amplitude, 0 to 32767")
    parser.add_argument("--seed", type=int, default=None, help="seed for the RND instruction")
    parser.add_argument("--strict", action="store_true", help="stop on unknown opcodes instead of skipping them")
    parser.add_argument("--debug", action="store_true", default=DEBUG, help="log every executed instruction")
    return parser.parse_args(argv)


# ******************** I/O SECTION
class Screen:
    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT, s=SCALE, bg_color=BACKGROUND, fg_color=FOREGROUND):
        self.w, self.h, self.scale = w, h, s
        self.background = bg_color
        self.foreground = fg_color
        self.surface = pygame.display.set_mode((w * self.scale, h * self.scale))
        self.surface.fill(self.background)

    def render(self, grid):
        """paint a framebuffer snapshot and show it"""
        self.surface.fill(self.background)
        for y, row in enumerate(grid):
            for x, pixel in enumerate(row):
                if pixel:
                    pygame.draw.rect(
                        self.surface,
                        self.foreground,
                        (x * self.scale, y * self.scale, self.scale, self.scale)
                    )
        pygame.display.flip()


class Beeper:
    def __init__(self, freq=SQUARE_WAVE_FREQ, volume=VOLUME, sample_rate=AUDIO_SAMPLE_RATE):
        self.playing = False
        self.sound = None
        try:
            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=sample_rate, size=-16, channels=1)
        except pygame.error as err:
            logger.warning("No audio device, running muted: %s", err)
            return
        # the mixer may have been opened with other settings, build the wave for what it actually plays
        rate, _, channels = pygame.mixer.get_init()
        self.sound = pygame.mixer.Sound(buffer=square_wave(freq, volume, rate, channels).tobytes())

    def update(self, tone):
        """start or stop the tone so it follows the machine's sound timer"""
        if self.sound is None or tone == self.playing:
            return
        if tone:
            self.sound.play(loops=-1)
        else:
            self.sound.stop()
        self.playing = tone


def handle_events(machine, events):
    """translate pygame events into machine input"""
    for event in events:
        if event.type == pygame.QUIT:
            machine.request_quit()
            return
        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                machine.request_quit()
                return
            elif event.key == pygame.K_SPACE:
                machine.request_pause_toggle()
            elif event.key == pygame.K_EQUALS:
                machine.request_reset()
            elif event.key in KEY_MAPPINGS:
                machine.set_key(KEY_MAPPINGS[event.key], True)
        elif event.type == pygame.KEYUP:
            if event.key in KEY_MAPPINGS:
                machine.set_key(KEY_MAPPINGS[event.key], False)


def run_frame(machine, screen, beeper, steps_per_frame):
    """a frame worth of instructions, then screen, timers and sound; nothing happens unless running"""
    if not machine.running:
        return
    for _ in range(steps_per_frame):
        machine.step()
    if machine.draw:
        screen.render(machine.framebuffer)
        machine.draw = False
    machine.tick_timers()
    beeper.update(machine.tone)


def run(machine, screen, beeper, ips=INSTRUCTIONS_PER_SECOND, clock=None, poll=pygame.event.get):
    """emulation loop: input then one frame, 60 times per second"""
    clock = clock or pygame.time.Clock()
    steps_per_frame = max(1, ips // FPS)
    while not machine.halted:
        clock.tick(FPS)
        handle_events(machine, poll())
        run_frame(machine, screen, beeper, steps_per_frame)
    beeper.update(False)


# ******************** ENTRY POINT SECTION
def main(argv=None):
    args = get_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
    rng = random.Random(args.seed) if args.seed is not None else None
    try:
        machine = Machine(read_rom(args.file), rng=rng, strict=args.strict)
    except (OSError, Chip8Error) as err:
        logger.error("Cannot load %s: %s", args.file, err)
        sys.exit(1)
    pygame.mixer.pre_init(AUDIO_SAMPLE_RATE, -16, 1)     # pygame.init() opens the mixer with these
    pygame.init()
    pygame.display.set_caption(os.path.basename(args.file))
    try:
        screen = Screen(s=args.scale, bg_color=args.bg, fg_color=args.fg)
        beeper = Beeper(freq=args.freq, volume=args.volume)
        run(machine, screen, beeper, ips=args.ips)
    except Chip8Error:
        sys.exit(f"********** THE EMULATOR CRASHED WITH THE FOLLOWING STATE\n{machine}")
    finally:
        pygame.quit()
    logger.info("Closing")
