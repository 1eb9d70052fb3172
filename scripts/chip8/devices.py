SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
KEY_COUNT = 16


# ******************** I/O SECTION
class Framebuffer:
    """monochrome pixel grid stored row-major, True means the pixel is ON"""

    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT):
        self.w, self.h = w, h
        self.buffer = [False] * h * w

    def read_pixel(self, x, y):
        return self.buffer[y * self.w + x]

    def write_pixel(self, x, y, value):
        self.buffer[y * self.w + x] = bool(value)

    def clear(self):
        self.buffer = [False] * self.h * self.w

    def draw_sprite(self, x, y, rows):
        """
        XOR the sprite rows onto the grid with their top left corner at (x, y)
        the origin wraps around the screen, the sprite itself is clipped at the right and bottom edges
        return True if any pixel that was ON got turned OFF
        """
        x, y = x % self.w, y % self.h
        collision = False
        for i, sprite_byte in enumerate(rows):
            y_coordinate = y + i
            if y_coordinate >= self.h:
                break
            for j in range(8):                          # most significant bit first
                x_coordinate = x + j
                if x_coordinate >= self.w:
                    break
                bit = (sprite_byte >> (7 - j)) & 0x1
                if not bit:
                    continue
                offset = y_coordinate * self.w + x_coordinate
                if self.buffer[offset]:
                    collision = True
                self.buffer[offset] = not self.buffer[offset]
        return collision

    def snapshot(self):
        """read-only copy of the grid as a tuple of rows"""
        return tuple(tuple(self.buffer[r * self.w:(r + 1) * self.w]) for r in range(self.h))

    def __str__(self):
        return "\n".join("".join("#" if p else "." for p in row) for row in self.snapshot())


class Keypad:
    def __init__(self):
        self.pressed_keys = [False] * KEY_COUNT

    def __getitem__(self, key):
        return self.pressed_keys[key & 0xF]

    def __setitem__(self, key, value):
        if not 0 <= key < KEY_COUNT:
            raise ValueError(f"The CHIP-8 keypad has keys 0x0 to 0xF, got {key}")
        self.pressed_keys[key] = bool(value)

    def __repr__(self):
        return f"Keypad({[k for k, down in enumerate(self.pressed_keys) if down]})"

    def untouched(self):
        return not any(self.pressed_keys)

    def first(self):
        """get the lowest pressed key, None when nothing is pressed"""
        for key, down in enumerate(self.pressed_keys):
            if down:
                return key
        return None

    def clear(self):
        self.pressed_keys = [False] * KEY_COUNT
