import pytest

from bfrv.compiler import compile_text
from bfrv.rv_assembler import (
    DATA_BASE,
    REGISTERS,
    TEXT_BASE,
    AssemblerError,
    assemble_lines,
    build_instruction_map,
)


def assemble(text, memory_size=64):
    memory = [0] * memory_size
    program, labels = assemble_lines(text.splitlines(), memory, build_instruction_map())
    return program, labels, memory


def test_data_and_text_labels():
    program, labels, memory = assemble(
        ".data\n"
        "buf: .space 4\n"
        "vals: .byte 1, 2, 0x10\n"
        ".text\n"
        "main:\n"
        "  la s0, vals   # pointer\n"
        "  lbu s1, 2(s0)\n"
        "done: ecall\n"
    )
    assert labels == {"buf": DATA_BASE, "vals": DATA_BASE + 4, "main": TEXT_BASE, "done": TEXT_BASE + 8}
    assert memory[4:7] == [1, 2, 0x10]
    assert [ins.mnemonic for ins in program] == ["la", "lbu", "ecall"]
    assert program[0].operands == [REGISTERS["s0"], DATA_BASE + 4]
    assert program[1].operands == [REGISTERS["s1"], (2, REGISTERS["s0"])]
    assert program[2].address == TEXT_BASE + 8


def test_word_directive_is_little_endian():
    _, _, memory = assemble(".data\nw: .word 0x01020304\n")
    assert memory[:4] == [4, 3, 2, 1]


def test_tab_separated_operands():
    program, _, _ = assemble("li\ta0, 0\nli \ta7, 93\necall\n")
    assert program[0].operands == [REGISTERS["a0"], 0]
    assert program[1].operands == [REGISTERS["a7"], 93]


def test_forward_label_reference():
    program, labels, _ = assemble("j later\nnop\nlater:\nnop\n")
    assert program[0].operands == [labels["later"]]


def test_compiled_output_assembles():
    memory = [0] * 30000
    program, labels = assemble_lines(compile_text("+[->+<]>.").splitlines(), memory,
                                     build_instruction_map())
    assert labels["memory"] == DATA_BASE
    assert {"start_1", "end_6"} <= set(labels)
    assert program[0].mnemonic == "la"


@pytest.mark.parametrize(
    "text, message",
    [
        ("frob a0\n", "Unknown instruction"),
        ("addi a0, a0\n", "expects 3 operand"),
        ("addi q9, a0, 1\n", "Unknown register"),
        ("li a0, twelve\n", "Invalid number"),
        ("j nowhere\n", "Undefined label"),
        ("lbu s1, s0\n", "Invalid memory operand"),
        ("x:\nx:\n", "Duplicate label"),
        (".data\nbig: .space 100\n", "does not fit"),
        (".data\naddi a0, a0, 1\n", "outside .text"),
        (".space 4\n", "only allowed in .data"),
        (".data\n.align 2\n", "Unknown directive"),
    ],
)
def test_errors(text, message):
    with pytest.raises(AssemblerError, match=message):
        assemble(text)


def test_error_carries_line_number():
    with pytest.raises(AssemblerError) as excinfo:
        assemble("nop\nnop\nbogus\n")
    assert excinfo.value.line == 3
