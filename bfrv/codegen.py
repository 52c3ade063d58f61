"""RISC-V (RARS dialect) code generation for the Brainfuck IR.

Register usage:
  s0  data pointer, set to ``memory`` on entry
  s1  scratch byte
  a0  system call argument / result
  a7  system call number
  t0  address for far jumps between loop labels

Loop labels are derived from IR indices (``start_<i>`` / ``end_<i>``) so
they stay unique at any nesting depth without a separate allocation pass.
"""

from __future__ import annotations

from typing import List, Sequence

from bfrv.instruction import CountedInstruction, Instruction, InstructionKind

MEMORY_SIZE = 30000
MEMORY_LABEL = "memory"
ENTRY_LABEL = "main"

POINTER_REG = "s0"
SCRATCH_REG = "s1"
JUMP_REG = "t0"

SYSCALL_PRINT_CHAR = 11
SYSCALL_READ_CHAR = 12
SYSCALL_EXIT = 93
EXIT_SUCCESS = 0


def start_label(index: int) -> str:
    return f"start_{index}"


def end_label(index: int) -> str:
    return f"end_{index}"


class CodeGenerator:
    def __init__(self, program: Sequence[Instruction]) -> None:
        self.program = program
        self.lines: List[str] = []

    def generate(self) -> str:
        self._emit_preamble()
        for index, inst in enumerate(self.program):
            if isinstance(inst, CountedInstruction):
                self._emit_counted(inst)
            elif inst.kind is InstructionKind.LOOP_START:
                self._emit_loop_start(index, inst.end)
            else:
                self._emit_loop_end(index, inst.start)
            self.lines.append("")
        self._emit_epilogue()
        return "\n".join(self.lines) + "\n"

    def _emit(self, line: str) -> None:
        self.lines.append(line)

    def _emit_preamble(self) -> None:
        self._emit(".data")
        self._emit(f"{MEMORY_LABEL}: .space {MEMORY_SIZE}")
        self._emit("")
        self._emit(".text")
        self._emit(f"{ENTRY_LABEL}:")
        self._emit(f"la {POINTER_REG}, {MEMORY_LABEL}")

    def _emit_epilogue(self) -> None:
        self._emit(f"li a0, {EXIT_SUCCESS}")
        self._emit(f"li a7, {SYSCALL_EXIT}")
        self._emit("ecall")

    def _emit_counted(self, inst: CountedInstruction) -> None:
        kind = inst.kind
        count = inst.count
        if kind is InstructionKind.ADD_PTR:
            self._emit(f"addi {POINTER_REG}, {POINTER_REG}, {count}")
        elif kind is InstructionKind.SUB_PTR:
            # no subtract-immediate, add the negated count
            self._emit(f"addi {POINTER_REG}, {POINTER_REG}, {-count}")
        elif kind is InstructionKind.ADD_BYTE:
            self._emit_byte_update(count)
        elif kind is InstructionKind.SUB_BYTE:
            self._emit_byte_update(-count)
        elif kind is InstructionKind.READ:
            # only the last character read survives in the cell
            self._emit(f"li a7, {SYSCALL_READ_CHAR}")
            self.lines.extend(["ecall"] * count)
            self._emit(f"sb a0, ({POINTER_REG})")
        elif kind is InstructionKind.WRITE:
            self._emit(f"lbu a0, ({POINTER_REG})")
            self._emit(f"li a7, {SYSCALL_PRINT_CHAR}")
            self.lines.extend(["ecall"] * count)

    def _emit_byte_update(self, delta: int) -> None:
        self._emit(f"lbu {SCRATCH_REG}, ({POINTER_REG})")
        self._emit(f"addi {SCRATCH_REG}, {SCRATCH_REG}, {delta}")
        self._emit(f"sb {SCRATCH_REG}, ({POINTER_REG})")

    def _emit_loop_start(self, index: int, end: int) -> None:
        self._emit(f"lbu {SCRATCH_REG}, ({POINTER_REG})")
        self._emit(f"bnez {SCRATCH_REG}, {start_label(index)}")
        self._emit(f"la {JUMP_REG}, {end_label(end)}")
        self._emit(f"jr {JUMP_REG}")
        self._emit(f"{start_label(index)}:")

    def _emit_loop_end(self, index: int, start: int) -> None:
        self._emit(f"lbu {SCRATCH_REG}, ({POINTER_REG})")
        self._emit(f"beqz {SCRATCH_REG}, {end_label(index)}")
        self._emit(f"la {JUMP_REG}, {start_label(start)}")
        self._emit(f"jr {JUMP_REG}")
        self._emit(f"{end_label(index)}:")


def generate(program: Sequence[Instruction]) -> str:
    return CodeGenerator(program).generate()
