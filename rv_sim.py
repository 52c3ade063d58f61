""" RISC-V emulator for the programs produced by bfrv.

Runs the RV32 subset understood by bfrv.rv_assembler with the RARS memory
layout (.text at 0x00400000, .data at 0x10010000) and the RARS character
I/O system calls.

    python rv_sim.py out.asm --input "abc"
    python rv_sim.py hello.b            # compiles the Brainfuck source first
"""

import argparse
import pathlib
import sys

import numpy as np

from bfrv.compiler import compile_text
from bfrv.parser import BrainfuckError
from bfrv.rv_assembler import (
    DATA_BASE,
    INSTRUCTION_SIZE,
    REGISTERS,
    TEXT_BASE,
    AssemblerError,
    assemble_lines,
    build_instruction_map,
)

DATA_SIZE = 0x10000
DEFAULT_MAX_STEPS = 50_000_000
WORD_MASK = 0xFFFFFFFF

SYSCALL_PRINT_CHAR = 11
SYSCALL_READ_CHAR = 12
SYSCALL_EXIT = 10
SYSCALL_EXIT2 = 93

ASM_SUFFIXES = (".asm", ".s")


class EmulatorError(RuntimeError):
    """Raised when the emulated program faults or runs out of steps."""


def to_signed(value):
    value = int(value) & WORD_MASK
    return value - (1 << 32) if value & 0x80000000 else value


class Computer:
    def __init__(self, lines, input_data = b"", data_size = DATA_SIZE,
                 name = "<program>", verbose = False):
        self.lines = list(lines)
        self.memory = np.zeros(data_size, dtype = np.uint8)
        self.regs = np.zeros(32, dtype = np.uint32)
        self.verbose = verbose
        self.name = name

        self.setup_instructions()
        self.assembler(self.lines)
        self.reset(input_data)

    def setup_instructions(self):
        """ Binds every mnemonic known to the assembler to its handler """
        self.instruction_map = build_instruction_map()
        self.operations = {
            "add":   self.op_add,
            "sub":   self.op_sub,
            "addi":  self.op_addi,
            "lb":    self.op_lb,
            "lbu":   self.op_lbu,
            "sb":    self.op_sb,
            "beq":   self.op_beq,
            "bne":   self.op_bne,
            "beqz":  self.op_beqz,
            "bnez":  self.op_bnez,
            "j":     self.op_j,
            "jr":    self.op_jr,
            "la":    self.op_li,
            "li":    self.op_li,
            "mv":    self.op_mv,
            "nop":   self.op_nop,
            "ecall": self.op_ecall,
        }
        missing = set(self.instruction_map) - set(self.operations)
        if missing:
            raise EmulatorError(f"No handler for: {', '.join(sorted(missing))}")

    def assembler(self, lines):
        """ Assembles the program text; .data goes straight into memory.

        Arguments:
        lines       -   assembly source lines, list of strings
        """
        if self.verbose:
            print(f"Assembling: {self.name}")
        self.program, self.labels = assemble_lines(lines, self.memory, self.instruction_map,
                                                   verbose = self.verbose, name = self.name)
        self.tape_base = self.labels.get("memory", DATA_BASE)
        if self.verbose:
            print(f"{len(self.program)*INSTRUCTION_SIZE} bytes of memory used for program.")

    def reset(self, input_data = b""):
        """ Initialize/reset registers and I/O. Memory is left untouched. """
        self.regs[:] = 0
        self.pc = TEXT_BASE
        self.input_data = bytes(input_data)
        self.input_pos = 0
        self.output = bytearray()
        self.halting = False
        self.exit_code = None
        self.steps = 0

    # ------------------------------------------------------------ helpers
    def reg(self, index):
        return int(self.regs[index])

    def set_reg(self, index, value):
        if index != 0:
            self.regs[index] = int(value) & WORD_MASK

    def mem_offset(self, address):
        offset = int(address) - DATA_BASE
        if not 0 <= offset < len(self.memory):
            raise EmulatorError(f"Memory access out of range: {int(address):#010x} (pc {self.pc:#010x})")
        return offset

    def effective_address(self, operand):
        offset, base = operand
        return (self.reg(base) + offset) & WORD_MASK

    @property
    def pointer(self):
        """ Tape cell index currently held in s0 """
        return self.reg(REGISTERS["s0"]) - self.tape_base

    def tape_window(self, cells = 16):
        """ Returns (first cell index, cell values) centred on the data pointer """
        first = max(0, self.pointer - cells//2)
        start = self.tape_base - DATA_BASE + first
        start = min(max(start, 0), len(self.memory))
        values = [int(v) for v in self.memory[start:start + cells]]
        return first, values

    def get_mem_strings(self, rows = 4, rowlength = 16):
        """ Hex dump of the tape around the data pointer for easy printing """
        first, values = self.tape_window(rows*rowlength)
        mem_strings = []
        for row in range(rows):
            chunk = values[row*rowlength:(row + 1)*rowlength]
            if not chunk:
                break
            cells = " ".join(f"{v:02x}" for v in chunk)
            mem_strings.append(f"{first + row*rowlength:5d}: {cells}")
        self.mem_strings = mem_strings
        return mem_strings

    # --------------------------------------------------------- operations
    def op_add(self, rd, rs1, rs2):
        self.set_reg(rd, self.reg(rs1) + self.reg(rs2))

    def op_sub(self, rd, rs1, rs2):
        self.set_reg(rd, self.reg(rs1) - self.reg(rs2))

    def op_addi(self, rd, rs1, imm):
        self.set_reg(rd, self.reg(rs1) + imm)

    def op_lb(self, rd, operand):
        value = int(self.memory[self.mem_offset(self.effective_address(operand))])
        if value & 0x80:
            value -= 0x100
        self.set_reg(rd, value)

    def op_lbu(self, rd, operand):
        self.set_reg(rd, self.memory[self.mem_offset(self.effective_address(operand))])

    def op_sb(self, rs, operand):
        self.memory[self.mem_offset(self.effective_address(operand))] = self.reg(rs) & 0xFF

    def op_beq(self, rs1, rs2, target):
        if self.reg(rs1) == self.reg(rs2):
            return target

    def op_bne(self, rs1, rs2, target):
        if self.reg(rs1) != self.reg(rs2):
            return target

    def op_beqz(self, rs, target):
        if self.reg(rs) == 0:
            return target

    def op_bnez(self, rs, target):
        if self.reg(rs) != 0:
            return target

    def op_j(self, target):
        return target

    def op_jr(self, rs):
        return self.reg(rs)

    def op_li(self, rd, value):
        self.set_reg(rd, value)

    def op_mv(self, rd, rs):
        self.set_reg(rd, self.reg(rs))

    def op_nop(self):
        pass

    def op_ecall(self):
        code = self.reg(REGISTERS["a7"])
        a0 = REGISTERS["a0"]
        if code == SYSCALL_PRINT_CHAR:
            self.output.append(self.reg(a0) & 0xFF)
        elif code == SYSCALL_READ_CHAR:
            if self.input_pos < len(self.input_data):
                self.set_reg(a0, self.input_data[self.input_pos])
                self.input_pos += 1
            else:
                # end of input reads as 0
                self.set_reg(a0, 0)
        elif code == SYSCALL_EXIT:
            self.halting = True
            self.exit_code = 0
        elif code == SYSCALL_EXIT2:
            self.halting = True
            self.exit_code = to_signed(self.reg(a0))
        else:
            raise EmulatorError(f"Unknown system call {code} (pc {self.pc:#010x})")

    # ---------------------------------------------------------- execution
    def step(self):
        """ Executes a single instruction. Returns False once halted. """
        if self.halting:
            return False

        index, misaligned = divmod(self.pc - TEXT_BASE, INSTRUCTION_SIZE)
        if misaligned or index < 0 or index > len(self.program):
            raise EmulatorError(f"Program counter outside .text: {self.pc:#010x}")
        if index == len(self.program):
            # fell off the end of the program
            self.halting = True
            self.exit_code = 0
            return False

        instruction = self.program[index]
        target = self.operations[instruction.mnemonic](*instruction.operands)
        self.steps += 1
        if target is None:
            self.pc += INSTRUCTION_SIZE
        else:
            self.pc = int(target) & WORD_MASK
        return True

    def run(self, max_steps = DEFAULT_MAX_STEPS):
        """ Runs until the program exits. Returns the exit code. """
        while not self.halting:
            if self.steps >= max_steps:
                raise EmulatorError(f"Step limit of {max_steps} reached (pc {self.pc:#010x})")
            self.step()

        if self.verbose:
            print(f"\nProgram halted after {self.steps} steps, exit code {self.exit_code}")
            for line in self.get_mem_strings():
                print(line)
        return self.exit_code


def load_program(path):
    """ Reads assembly lines from path, compiling Brainfuck sources first """
    path = pathlib.Path(path)
    text = path.read_text(encoding = "latin-1")
    if path.suffix.lower() in ASM_SUFFIXES:
        return text.splitlines()
    return compile_text(text).splitlines()


def run_source(text, input_data = b"", max_steps = DEFAULT_MAX_STEPS):
    """ Compiles and runs Brainfuck source, returns (output bytes, exit code) """
    computer = Computer(compile_text(text).splitlines(), input_data = input_data)
    exit_code = computer.run(max_steps)
    return bytes(computer.output), exit_code


def main(argv = None):
    parser = argparse.ArgumentParser(description = "Run RISC-V assembly produced by bfrv")
    parser.add_argument("program", type = pathlib.Path, help = "Assembly (.asm/.s) or Brainfuck source file")
    parser.add_argument("--input", default = "", help = "Text fed to the read char system call")
    parser.add_argument("--max-steps", type = int, default = DEFAULT_MAX_STEPS)
    parser.add_argument("--verbose", action = "store_true")
    args = parser.parse_args(argv)

    try:
        lines = load_program(args.program)
        computer = Computer(lines, input_data = args.input.encode("utf-8"),
                            name = str(args.program), verbose = args.verbose)
        exit_code = computer.run(args.max_steps)
    except OSError as exc:
        raise SystemExit(f"error: failed to read {args.program}: {exc}") from exc
    except (BrainfuckError, AssemblerError, EmulatorError) as exc:
        raise SystemExit(f"error: {exc}") from exc

    sys.stdout.flush()
    sys.stdout.buffer.write(bytes(computer.output))
    sys.stdout.flush()
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
