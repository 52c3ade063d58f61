"""Brainfuck source to IR.

Only the eight characters ``<>+-,.[]`` are significant; everything else is a
comment.  Runs of the same countable character are folded into a single
instruction and every bracket is paired with its partner by IR index.
"""

from __future__ import annotations

from typing import List, Tuple

from bfrv.instruction import (
    Instruction,
    InstructionKind,
    LoopInstruction,
    from_source_char,
    increment_count,
    is_countable,
    set_loop_target,
    variant_matches,
)


class BrainfuckError(RuntimeError):
    """Raised when Brainfuck source has an invalid bracket structure."""

    def __init__(self, message: str, offset: int, line: int, column: int) -> None:
        super().__init__(f"{message} at line {line}, column {column}")
        self.offset = offset
        self.line = line
        self.column = column


class UnmatchedLoopEnd(BrainfuckError):
    """A ']' with no '[' waiting for it."""


class UnmatchedLoopStart(BrainfuckError):
    """A '[' still open at the end of the source."""


class BrainfuckParser:
    def __init__(self, source: str) -> None:
        self.source = source

    def parse(self) -> List[Instruction]:
        """Build a fresh IR list; nothing carries over between calls."""
        program: List[Instruction] = []
        # (IR index, source offset, line, column) of each pending '['
        loop_starts: List[Tuple[int, int, int, int]] = []
        line = 1
        column = 0
        for offset, ch in enumerate(self.source):
            if ch == "\n":
                line += 1
                column = 0
                continue
            column += 1

            candidate = from_source_char(ch)
            if candidate is None:
                continue

            if program:
                prev = program[-1]
                if is_countable(prev) and variant_matches(prev, candidate):
                    increment_count(prev)
                    continue

            index = len(program)
            program.append(candidate)

            if candidate.kind is InstructionKind.LOOP_START:
                loop_starts.append((index, offset, line, column))
            elif candidate.kind is InstructionKind.LOOP_END:
                if not loop_starts:
                    raise UnmatchedLoopEnd("Unmatched loop end ']'", offset, line, column)
                self._close_loop(program, loop_starts.pop()[0], candidate, index)

        if loop_starts:
            _, offset, line, column = loop_starts[-1]
            raise UnmatchedLoopStart("Unmatched loop start '['", offset, line, column)

        return program

    @staticmethod
    def _close_loop(program: List[Instruction], start_index: int,
                    loop_end: LoopInstruction, index: int) -> None:
        set_loop_target(loop_end, start_index)
        set_loop_target(program[start_index], index)


def parse(source: str) -> List[Instruction]:
    return BrainfuckParser(source).parse()
