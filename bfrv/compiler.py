"""Brainfuck to RISC-V assembly compiler.

    bfrv hello.b                 # writes out.asm
    bfrv hello.b -o hello.asm
    bfrv hello.b --ir            # print the IR listing instead

The output targets the RARS emulator: a 30000 byte ``memory`` block in
``.data``, ``s0`` as the data pointer, and the print char (11), read char
(12) and exit (93) system calls.  ``python rv_sim.py out.asm`` runs it on the
bundled emulator.
"""

from __future__ import annotations

import argparse
import pathlib
from typing import Optional, Sequence

from bfrv.codegen import generate
from bfrv.instruction import format_program
from bfrv.parser import BrainfuckError, parse

DEFAULT_OUTPUT = "out.asm"


def compile_text(text: str) -> str:
    return generate(parse(text))


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Compile Brainfuck source to RISC-V assembly")
    parser.add_argument("source", type=pathlib.Path, help="Input Brainfuck source file")
    parser.add_argument("-o", "--output", type=pathlib.Path, default=pathlib.Path(DEFAULT_OUTPUT),
                        help=f"Output assembly file (default: {DEFAULT_OUTPUT})")
    parser.add_argument("--ir", action="store_true", help="Print the IR listing and exit")
    args = parser.parse_args(argv)

    try:
        text = args.source.read_text(encoding="latin-1")
    except OSError as exc:
        raise SystemExit(f"error: failed to read {args.source}: {exc}") from exc

    try:
        program = parse(text)
    except BrainfuckError as exc:
        raise SystemExit(f"error: {args.source}: {exc}") from exc

    if args.ir:
        listing = format_program(program)
        if listing:
            print(listing)
        return 0

    try:
        args.output.write_text(generate(program))
    except OSError as exc:
        raise SystemExit(f"error: failed to write {args.output}: {exc}") from exc
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
