"""Instruction model for the Brainfuck front end.

Every recognised source character becomes one of eight instruction kinds.
Six of them carry a repeat ``count`` (runs of the same character are merged
into one instruction), the two bracket kinds carry the IR index of their
partner bracket instead.  The two shapes are kept as separate classes so a
loop instruction simply has no ``increment`` and a counted one has no
``set_target``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union


class InvalidOperation(TypeError):
    """Raised when a count or loop target is applied to the wrong instruction shape."""


class InstructionKind(Enum):
    ADD_PTR = ">"
    SUB_PTR = "<"
    ADD_BYTE = "+"
    SUB_BYTE = "-"
    READ = ","
    WRITE = "."
    LOOP_START = "["
    LOOP_END = "]"

    @property
    def char(self) -> str:
        return self.value

    @property
    def countable(self) -> bool:
        return self not in (InstructionKind.LOOP_START, InstructionKind.LOOP_END)

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]


_KIND_LABELS: Dict[InstructionKind, str] = {
    InstructionKind.ADD_PTR: "AddPtr",
    InstructionKind.SUB_PTR: "SubPtr",
    InstructionKind.ADD_BYTE: "AddByte",
    InstructionKind.SUB_BYTE: "SubByte",
    InstructionKind.READ: "Read",
    InstructionKind.WRITE: "Write",
    InstructionKind.LOOP_START: "LoopStart",
    InstructionKind.LOOP_END: "LoopEnd",
}

SOURCE_CHARS: Dict[str, InstructionKind] = {kind.char: kind for kind in InstructionKind}


@dataclass
class CountedInstruction:
    kind: InstructionKind
    count: int = 1

    def __post_init__(self) -> None:
        if not self.kind.countable:
            raise InvalidOperation(f"{self.kind.label} does not carry a count")
        if self.count < 1:
            raise ValueError(f"count must be at least 1, got {self.count}")

    def increment(self) -> None:
        self.count += 1


@dataclass
class LoopInstruction:
    kind: InstructionKind
    target: int = 0

    def __post_init__(self) -> None:
        if self.kind.countable:
            raise InvalidOperation(f"{self.kind.label} does not carry a loop target")

    def set_target(self, index: int) -> None:
        self.target = index

    @property
    def end(self) -> int:
        if self.kind is not InstructionKind.LOOP_START:
            raise InvalidOperation(f"{self.kind.label} has no end target")
        return self.target

    @property
    def start(self) -> int:
        if self.kind is not InstructionKind.LOOP_END:
            raise InvalidOperation(f"{self.kind.label} has no start target")
        return self.target


Instruction = Union[CountedInstruction, LoopInstruction]


def from_source_char(c: str) -> Optional[Instruction]:
    """Return a fresh instruction for ``c``, or None when ``c`` is a comment character."""
    kind = SOURCE_CHARS.get(c)
    if kind is None:
        return None
    if kind.countable:
        return CountedInstruction(kind, 1)
    return LoopInstruction(kind, 0)


def variant_matches(a: Instruction, b: Instruction) -> bool:
    return a.kind is b.kind


def is_countable(inst: Instruction) -> bool:
    return isinstance(inst, CountedInstruction)


def increment_count(inst: Instruction) -> None:
    if not isinstance(inst, CountedInstruction):
        raise InvalidOperation(f"increment_count() called on {inst.kind.label}")
    inst.increment()


def set_loop_target(inst: Instruction, index: int) -> None:
    if not isinstance(inst, LoopInstruction):
        raise InvalidOperation(f"set_loop_target() called on {inst.kind.label}")
    inst.set_target(index)


def format_instruction(inst: Instruction) -> str:
    if isinstance(inst, CountedInstruction):
        return f"{inst.kind.label} count={inst.count}"
    field = "end" if inst.kind is InstructionKind.LOOP_START else "start"
    return f"{inst.kind.label} {field}={inst.target}"


def format_program(program: Iterable[Instruction]) -> str:
    """IR listing, one ``index  instruction`` row per entry."""
    lines: List[str] = []
    for index, inst in enumerate(program):
        lines.append(f"{index:04d}  {format_instruction(inst)}")
    return "\n".join(lines)
