""" pygame front end for rv_sim: animates a compiled Brainfuck program.

Shows the tape around the data pointer, the registers reserved by the code
generator and everything the program has printed so far.

Keys:
  space   pause / resume
  return  single step while paused
  r       restart the program
  + / -   double / halve the instruction rate
"""

import argparse
import pathlib

import pygame

from rv_sim import Computer, EmulatorError, load_program
from bfrv.parser import BrainfuckError
from bfrv.rv_assembler import REGISTERS, AssemblerError

TAPE_CELLS = 16
CELL_WIDTH = 56
CELL_HEIGHT = 48
OUTPUT_COLUMNS = 64
OUTPUT_ROWS = 8


class TapeView:
    """ Main control class. Handles rendering, timing control and user input. """
    def __init__(self, computer, autorun = True, target_FPS = 60, target_HZ = 600):
        self.computer = computer
        self._running = True
        self._screen = None
        self._width = TAPE_CELLS*CELL_WIDTH + 40
        self._height = 420
        self._size = (self._width, self._height)
        self.autorun = autorun
        self.target_FPS = target_FPS
        self.target_HZ = target_HZ
        self.fps = 0
        self.status = ""

        self.TEXTGREY = (180, 180, 180)
        self.GREY = (115, 115, 115)
        self.DARKGREY = (20, 20, 20)
        self.RED = (255, 0, 0)
        self.DARKERRED = (30, 0, 0)
        self.GREEN = (0, 255, 0)
        self.DARKERGREEN = (0, 30, 0)

    @property
    def steps_per_frame(self):
        return max(int(self.target_HZ/self.target_FPS), 1)

    def setup_fonts(self):
        pygame.font.init()
        self._font_console_bold = pygame.font.SysFont("monospace", 17, bold = True)
        self._font_small_console = pygame.font.SysFont("monospace", 13)

    def init_game(self):
        pygame.init()
        pygame.display.set_caption("bfrv tape")

        self._screen = pygame.display.set_mode(self._size)
        self._running = True

        self.setup_fonts()

        self._bg = pygame.Surface(self._size)
        self._bg.fill(self.DARKGREY)
        self._clock = pygame.time.Clock()

    def on_event(self, event):
        if event.type == pygame.QUIT:
            self._running = False

        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_SPACE:
                self.autorun = not self.autorun
            if event.key == pygame.K_r:
                self.restart()
            if event.key in (pygame.K_PLUS, pygame.K_KP_PLUS):
                self.target_HZ = int(self.target_HZ*2)
            if event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                self.target_HZ = max(int(self.target_HZ/2), 1)
            if event.key == pygame.K_RETURN and not self.autorun:
                self.advance(1)

    def restart(self):
        """ Rebuilds the computer so the data image starts from zero again """
        old = self.computer
        self.computer = Computer(old.lines, input_data = old.input_data, name = old.name)
        self.status = ""

    def advance(self, steps):
        try:
            for _ in range(steps):
                if not self.computer.step():
                    break
        except EmulatorError as exc:
            self.status = f"fault: {exc}"
            self.autorun = False

        if self.computer.halting:
            self.status = f"halted, exit code {self.computer.exit_code}"

    def loop(self):
        if self.autorun and not self.computer.halting:
            self.advance(self.steps_per_frame)

        self._clock.tick(self.target_FPS)
        self.fps = self._clock.get_fps()

    def draw_tape(self, x, y):
        first, values = self.computer.tape_window(TAPE_CELLS)
        pointer = self.computer.pointer
        for i, value in enumerate(values):
            cell = first + i
            rect = pygame.Rect(x + i*CELL_WIDTH, y, CELL_WIDTH - 4, CELL_HEIGHT)
            active = cell == pointer
            pygame.draw.rect(self._screen, self.DARKERGREEN if active else self.DARKERRED, rect)
            pygame.draw.rect(self._screen, self.GREEN if active else self.GREY, rect, 2)
            text = self._font_console_bold.render(f"{value:3d}", True, self.TEXTGREY)
            self._screen.blit(text, (rect.x + 6, rect.y + 12))
            index = self._font_small_console.render(str(cell), True, self.GREY)
            self._screen.blit(index, (rect.x + 4, rect.bottom + 4))

    def draw_registers(self, x, y):
        for i, name in enumerate(("s0", "s1", "a0", "a7")):
            value = self.computer.reg(REGISTERS[name])
            text = self._font_small_console.render(f"{name} = {value:#010x}", True, self.TEXTGREY)
            self._screen.blit(text, (x, y + i*18))
        pc = self._font_small_console.render(f"pc = {self.computer.pc:#010x}  steps = {self.computer.steps}",
                                             True, self.TEXTGREY)
        self._screen.blit(pc, (x + 260, y))

    def draw_output(self, x, y):
        text = self.computer.output.decode("latin-1")
        lines = []
        for raw in text.split("\n"):
            while len(raw) > OUTPUT_COLUMNS:
                lines.append(raw[:OUTPUT_COLUMNS])
                raw = raw[OUTPUT_COLUMNS:]
            lines.append(raw)
        for i, line in enumerate(lines[-OUTPUT_ROWS:]):
            printable = "".join(c if c.isprintable() else "?" for c in line)
            out_text = self._font_small_console.render(printable, True, self.GREEN)
            self._screen.blit(out_text, (x, y + i*16))

    def render(self):
        self._screen.blit(self._bg, (0, 0))
        self.draw_tape(20, 20)
        self.draw_registers(20, 110)
        self.draw_output(20, 200)
        footer = self.status or ("running" if self.autorun else "paused")
        footer_text = self._font_small_console.render(f"{footer}  |  {self.target_HZ} Hz  {int(self.fps)} FPS",
                                                      True, self.TEXTGREY)
        self._screen.blit(footer_text, (20, self._height - 24))
        pygame.display.flip()

    def cleanup(self):
        pygame.quit()

    def execute(self, max_frames = None):
        self.init_game()
        frames = 0
        while self._running:
            for event in pygame.event.get():
                self.on_event(event)
            self.loop()
            self.render()
            frames += 1
            if max_frames is not None and frames >= max_frames:
                break
        self.cleanup()


def main(argv = None):
    parser = argparse.ArgumentParser(description = "Animate a bfrv program with pygame")
    parser.add_argument("program", type = pathlib.Path, help = "Assembly (.asm/.s) or Brainfuck source file")
    parser.add_argument("--input", default = "", help = "Text fed to the read char system call")
    parser.add_argument("--fps", type = int, default = 60)
    parser.add_argument("--hz", type = int, default = 600, help = "Instructions executed per second")
    args = parser.parse_args(argv)

    try:
        computer = Computer(load_program(args.program), input_data = args.input.encode("utf-8"),
                            name = str(args.program))
    except OSError as exc:
        raise SystemExit(f"error: failed to read {args.program}: {exc}") from exc
    except (BrainfuckError, AssemblerError) as exc:
        raise SystemExit(f"error: {exc}") from exc

    TapeView(computer, target_FPS = args.fps, target_HZ = args.hz).execute()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
