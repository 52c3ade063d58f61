from pathlib import Path

import pytest

from bfrv.compiler import DEFAULT_OUTPUT, compile_text, main


def test_writes_assembly_to_output(tmp_path: Path) -> None:
    source = tmp_path / "hello.b"
    source.write_text("+[-]")
    out = tmp_path / "hello.asm"

    assert main([str(source), "-o", str(out)]) == 0
    assert out.read_text() == compile_text("+[-]")


def test_default_output_name(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "prog.b").write_text(">+.")

    assert main(["prog.b"]) == 0
    assert (tmp_path / DEFAULT_OUTPUT).read_text() == compile_text(">+.")


def test_ir_listing(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "loop.b"
    source.write_text("+[-]")
    out = tmp_path / "unused.asm"

    assert main([str(source), "--ir", "-o", str(out)]) == 0
    assert capsys.readouterr().out.splitlines() == [
        "0000  AddByte count=1",
        "0001  LoopStart end=3",
        "0002  SubByte count=1",
        "0003  LoopEnd start=1",
    ]
    assert not out.exists()


def test_parse_error_exits(tmp_path: Path) -> None:
    source = tmp_path / "bad.b"
    source.write_text("+[")
    out = tmp_path / "bad.asm"

    with pytest.raises(SystemExit) as excinfo:
        main([str(source), "-o", str(out)])
    assert "Unmatched loop start" in str(excinfo.value.code)
    assert not out.exists()


def test_non_utf8_comments_compile(tmp_path: Path) -> None:
    source = tmp_path / "cafe.b"
    source.write_bytes(b"caf\xe9 +.")
    out = tmp_path / "cafe.asm"

    assert main([str(source), "-o", str(out)]) == 0
    assert out.read_text() == compile_text("+.")


def test_missing_input_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main([str(tmp_path / "missing.b")])
    assert str(excinfo.value.code).startswith("error: failed to read")


def test_unwritable_output_exits(tmp_path: Path) -> None:
    source = tmp_path / "ok.b"
    source.write_text("+")

    with pytest.raises(SystemExit) as excinfo:
        main([str(source), "-o", str(tmp_path / "no_such_dir" / "out.asm")])
    assert str(excinfo.value.code).startswith("error: failed to write")
