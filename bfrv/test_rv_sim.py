from pathlib import Path

import pytest

from bfrv.compiler import compile_text
from rv_sim import Computer, EmulatorError, main, run_source

HELLO_WORLD = (
    "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]"
    ">>.>---.+++++++..+++.>>.<-.<.+++.------.--------.>>+.>++."
)


def run_asm(text, input_data=b""):
    computer = Computer(text.splitlines(), input_data=input_data)
    exit_code = computer.run(max_steps=10_000)
    return computer, exit_code


def test_writes_byte_65():
    output, exit_code = run_source(">" + "+" * 65 + ".")
    assert output == b"A"
    assert exit_code == 0


def test_empty_program_exits_cleanly():
    assert run_source("") == (b"", 0)


def test_hello_world():
    output, exit_code = run_source(HELLO_WORLD)
    assert output == b"Hello World!\n"
    assert exit_code == 0


def test_nested_loops_multiply():
    output, _ = run_source("++++[>+++[>+<-]<-]>>.")
    assert output == bytes([12])


def test_repeated_write():
    output, _ = run_source("+" * 33 + "...")
    assert output == b"!!!"


def test_cells_wrap_around():
    assert run_source("-.")[0] == bytes([255])
    assert run_source("+" * 257 + ".")[0] == bytes([1])


def test_echo_until_end_of_input():
    output, _ = run_source(",[.,]", input_data=b"abc")
    assert output == b"abc"


def test_repeated_read_keeps_last_char():
    output, _ = run_source(",,.", input_data=b"xy")
    assert output == b"y"


def test_pointer_tracks_tape_cell():
    computer = Computer(compile_text(">>>+>").splitlines())
    computer.run()
    assert computer.pointer == 4
    first, values = computer.tape_window(8)
    assert first == 0
    assert values[:5] == [0, 0, 0, 1, 0]


def test_step_limit():
    computer = Computer(compile_text("+[]").splitlines())
    with pytest.raises(EmulatorError, match="Step limit"):
        computer.run(max_steps=1000)


def test_pointer_below_tape_faults():
    with pytest.raises(EmulatorError, match="out of range"):
        run_source("<+")


def test_exit_code_from_a0():
    _, exit_code = run_asm("li a0, 3\nli a7, 93\necall\n")
    assert exit_code == 3


def test_falling_off_the_end_halts():
    computer, exit_code = run_asm("li a0, 1\n")
    assert exit_code == 0
    assert computer.halting
    assert not computer.step()


def test_zero_register_is_hardwired():
    computer, _ = run_asm("li zero, 5\nmv a0, zero\nli a7, 93\necall\n")
    assert computer.reg(0) == 0
    assert computer.exit_code == 0


def test_branches_and_arithmetic():
    computer, exit_code = run_asm(
        "  li t1, 3\n"
        "  li t2, 0\n"
        "loop:\n"
        "  addi t2, t2, 2\n"
        "  addi t1, t1, -1\n"
        "  bne t1, zero, loop\n"
        "  sub a0, t2, t1\n"
        "  li a7, 93\n"
        "  ecall\n"
    )
    assert exit_code == 6


def test_unknown_syscall():
    with pytest.raises(EmulatorError, match="Unknown system call 99"):
        run_asm("li a7, 99\necall\n")


def test_cli_runs_brainfuck_source(tmp_path: Path, capsysbinary) -> None:
    source = tmp_path / "echo.b"
    source.write_text(",[.,]")

    assert main([str(source), "--input", "hi"]) == 0
    assert capsysbinary.readouterr().out == b"hi"


def test_cli_runs_source_with_non_utf8_comments(tmp_path: Path, capsysbinary) -> None:
    source = tmp_path / "latin.b"
    source.write_bytes(b"\xff\xfe " + b"+" * 66 + b" na\xefve .")

    assert main([str(source)]) == 0
    assert capsysbinary.readouterr().out == b"B"


def test_cli_runs_assembly(tmp_path: Path, capsysbinary) -> None:
    asm = tmp_path / "a.asm"
    asm.write_text(compile_text(">" + "+" * 65 + "."))

    assert main([str(asm), "--verbose"]) == 0
    out = capsysbinary.readouterr().out
    assert out.endswith(b"A")
    assert b"Program halted after" in out


def test_cli_reports_errors(tmp_path: Path) -> None:
    source = tmp_path / "bad.b"
    source.write_text("]")

    with pytest.raises(SystemExit) as excinfo:
        main([str(source)])
    assert "Unmatched loop end" in str(excinfo.value.code)
