"""
Lightweight assembler for the RISC-V subset emitted by the compiler.

Exposes:
- build_instruction_map(): returns mnemonic -> operand format mapping
- assemble_lines(lines, memory, instruction_map): lays out .data into memory and
  resolves .text into a list of AsmInstruction, returns (program, labels)

Operand format letters:
  r  register (ABI name or x0..x31)
  i  immediate (decimal or python-style prefixed)
  l  label
  m  memory operand, ``(reg)`` or ``offset(reg)``

Pseudo-instructions (la, li, mv, j, jr, bnez, beqz, nop) are kept as single
entries; the emulator executes them directly.  Every text entry occupies four
bytes so label addresses match what RARS would assign to single-word forms.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Dict, List, Sequence, Tuple, Union

TEXT_BASE = 0x00400000
DATA_BASE = 0x10010000
INSTRUCTION_SIZE = 4

REGISTER_NAMES = [
    "zero", "ra", "sp", "gp", "tp", "t0", "t1", "t2",
    "s0", "s1", "a0", "a1", "a2", "a3", "a4", "a5",
    "a6", "a7", "s2", "s3", "s4", "s5", "s6", "s7",
    "s8", "s9", "s10", "s11", "t3", "t4", "t5", "t6",
]

REGISTERS: Dict[str, int] = {name: i for i, name in enumerate(REGISTER_NAMES)}
REGISTERS.update({f"x{i}": i for i in range(32)})
REGISTERS["fp"] = REGISTERS["s0"]

LABEL_RE = re.compile(r"^([A-Za-z_.$][A-Za-z0-9_.$]*)\s*:")
MEMORY_RE = re.compile(r"^(-?[0-9A-Za-z_]*)\(\s*([A-Za-z0-9]+)\s*\)$")

Operand = Union[int, Tuple[int, int]]


class AssemblerError(ValueError):
    """Raised when assembly text cannot be assembled."""

    def __init__(self, message: str, line: int = 0, name: str = "<module>") -> None:
        where = f"{name}:{line}: " if line else f"{name}: "
        super().__init__(where + message)
        self.line = line


@dataclass
class AsmInstruction:
    mnemonic: str
    operands: List[Operand] = field(default_factory=list)
    line: int = 0
    address: int = 0
    text: str = ""


def build_instruction_map() -> Dict[str, str]:
    # Keep in sync with rv_sim.Computer.setup_instructions
    return {
        "add":   "rrr",
        "sub":   "rrr",
        "addi":  "rri",
        "lb":    "rm",
        "lbu":   "rm",
        "sb":    "rm",
        "beq":   "rrl",
        "bne":   "rrl",
        "beqz":  "rl",
        "bnez":  "rl",
        "j":     "l",
        "jr":    "r",
        "la":    "rl",
        "li":    "ri",
        "mv":    "rr",
        "nop":   "",
        "ecall": "",
    }


def _strip_comment(line: str) -> str:
    return line.split("#", 1)[0].strip()


def _split_operands(text: str) -> List[str]:
    if not text:
        return []
    return [part.strip() for part in text.split(",")]


def _parse_int(token: str, line: int, name: str) -> int:
    try:
        return int(token, 0)
    except ValueError as exc:
        raise AssemblerError(f"Invalid number: {token}", line, name) from exc


def _parse_register(token: str, line: int, name: str) -> int:
    reg = REGISTERS.get(token.lower())
    if reg is None:
        raise AssemblerError(f"Unknown register '{token}'", line, name)
    return reg


def assemble_lines(lines: Sequence[str], memory, instruction_map: Dict[str, str],
                   verbose: bool = False,
                   name: str = "<module>") -> Tuple[List[AsmInstruction], Dict[str, int]]:
    labels: Dict[str, int] = {}
    pending: List[Tuple[str, List[str], int, str]] = []
    section = "text"
    data_cursor = 0
    text_cursor = 0

    if verbose:
        print(f"\n--- Assembling {name} ---\n")
    # First pass: place labels, lay out data, collect text statements
    for line_no, raw in enumerate(lines, start=1):
        line = _strip_comment(raw)
        while line:
            m = LABEL_RE.match(line)
            if not m:
                break
            label = m.group(1)
            if label in labels:
                raise AssemblerError(f"Duplicate label '{label}'", line_no, name)
            if section == "data":
                labels[label] = DATA_BASE + data_cursor
            else:
                labels[label] = TEXT_BASE + text_cursor
            if verbose:
                print(f"label {label:>20s} | address {labels[label]:#010x}")
            line = line[m.end():].strip()
        if not line:
            continue

        parts = line.split(None, 1)
        head = parts[0]
        rest = parts[1].strip() if len(parts) > 1 else ""

        if head.startswith("."):
            directive = head.lower()
            if directive == ".data":
                section = "data"
            elif directive == ".text":
                section = "text"
            elif directive in (".globl", ".global"):
                pass
            elif section != "data":
                raise AssemblerError(f"Directive {head} is only allowed in .data", line_no, name)
            elif directive == ".space":
                size = _parse_int(rest, line_no, name)
                if size < 0:
                    raise AssemblerError(".space size must not be negative", line_no, name)
                if data_cursor + size > len(memory):
                    raise AssemblerError(f".space {size} does not fit in data memory", line_no, name)
                data_cursor += size  # memory is zero-filled already
            elif directive in (".byte", ".word"):
                width = 1 if directive == ".byte" else 4
                for token in _split_operands(rest):
                    value = _parse_int(token, line_no, name)
                    if data_cursor + width > len(memory):
                        raise AssemblerError(f"{directive} does not fit in data memory", line_no, name)
                    for i in range(width):
                        memory[data_cursor + i] = (value >> (8 * i)) & 0xFF
                    data_cursor += width
            else:
                raise AssemblerError(f"Unknown directive {head}", line_no, name)
            continue

        if section != "text":
            raise AssemblerError(f"Instruction '{head}' outside .text", line_no, name)
        pending.append((head.lower(), _split_operands(rest), line_no, line))
        text_cursor += INSTRUCTION_SIZE

    if verbose:
        print(f"{data_cursor} bytes of data, {len(pending)} instructions")
        print("\n--- Resolve operands ---\n")
    # Second pass: resolve registers, immediates and label references
    program: List[AsmInstruction] = []
    for i, (mnemonic, tokens, line_no, text) in enumerate(pending):
        fmt = instruction_map.get(mnemonic)
        if fmt is None:
            raise AssemblerError(f"Unknown instruction '{mnemonic}'", line_no, name)
        if len(tokens) != len(fmt):
            raise AssemblerError(f"{mnemonic} expects {len(fmt)} operand(s), got {len(tokens)}",
                                 line_no, name)
        operands: List[Operand] = []
        for kind, token in zip(fmt, tokens):
            if kind == "r":
                operands.append(_parse_register(token, line_no, name))
            elif kind == "i":
                operands.append(_parse_int(token, line_no, name))
            elif kind == "l":
                if token not in labels:
                    raise AssemblerError(f"Undefined label '{token}'", line_no, name)
                operands.append(labels[token])
            else:
                m = MEMORY_RE.match(token.replace(" ", ""))
                if not m:
                    raise AssemblerError(f"Invalid memory operand '{token}'", line_no, name)
                offset = _parse_int(m.group(1), line_no, name) if m.group(1) else 0
                operands.append((offset, _parse_register(m.group(2), line_no, name)))
        program.append(AsmInstruction(mnemonic, operands, line_no, TEXT_BASE + i * INSTRUCTION_SIZE, text))

    if verbose:
        print(f"\n--- Assembled program {name} ---\n")

    return program, labels
