"""Tests for the CLI module: arg parsing, exit codes, commands end-to-end."""

from __future__ import annotations

import io
import json
import sys
from pathlib import Path

import pytest
from rich.color import ColorSystem

from untex.cli import build_parser, detect_color_system, main, read_sources
from untex.errors import InputError

MATH = "a $x$ b\n"


@pytest.fixture
def tex(tmp_path: Path):
    """Return a helper that writes a .tex file and returns its path as str."""

    def _write(text: str, name: str = "doc.tex") -> str:
        path = tmp_path / name
        path.write_text(text)
        return str(path)

    return _write


# ---------------------------------------------------------------------------
# Arg parsing via build_parser
# ---------------------------------------------------------------------------


class TestArgParsing:
    def test_highlight_defaults(self) -> None:
        ns = build_parser().parse_args(["highlight", "doc.tex"])
        assert ns.command_name == "highlight"
        assert ns.filenames == ["doc.tex"]
        assert ns.part is None
        assert ns.token is None
        assert ns.bold is None

    def test_aliases(self) -> None:
        p = build_parser()
        assert p.parse_args(["hl"]).command_name == "highlight"
        assert p.parse_args(["fmt"]).command_name == "format"

    def test_part_and_token_conflict(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["highlight", "-p", "math", "-t", "comment"])

    def test_unknown_token_rejected(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["highlight", "-t", "nonsense"])

    def test_style_flags(self) -> None:
        ns = build_parser().parse_args(["hl", "--fg", "blue", "--bold", "--intense"])
        assert ns.fg == "blue"
        assert ns.bold is True
        assert ns.intense is True

    def test_format_flags(self) -> None:
        ns = build_parser().parse_args(["format", "-i", "--indent-width", "4", "a.tex"])
        assert ns.in_place is True
        assert ns.indent_width == 4

    def test_global_flags(self) -> None:
        ns = build_parser().parse_args(["--color", "never", "-v", "check"])
        assert ns.color == "never"
        assert ns.verbose is True

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class TestReadSources:
    def test_files(self, tex) -> None:
        sources = read_sources([Path(tex("x", "a.tex")), Path(tex("y", "b.tex"))])
        assert [s.text for s in sources] == ["x", "y"]
        assert sources[0].path is not None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(InputError, match="invalid filename"):
            read_sources([tmp_path / "nope.tex"])

    def test_stdin(self, monkeypatch) -> None:
        monkeypatch.setattr(sys, "stdin", io.StringIO("$x$"))
        sources = read_sources([])
        assert sources[0].name == "<stdin>"
        assert sources[0].text == "$x$"
        assert sources[0].path is None

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "latin1.tex"
        path.write_bytes(b"caf\xe9\n")
        with pytest.raises(InputError, match="not valid UTF-8 at byte 3"):
            read_sources([path])

    def test_line_endings_kept(self, tmp_path: Path) -> None:
        path = tmp_path / "crlf.tex"
        path.write_bytes(b"a\r\nb\r\n")
        assert read_sources([path])[0].text == "a\r\nb\r\n"


class TestColorSystem:
    def test_never(self) -> None:
        assert detect_color_system("never", io.StringIO()) is None

    def test_always(self) -> None:
        assert detect_color_system("always", io.StringIO()) is not None

    def test_auto_not_a_terminal(self, monkeypatch) -> None:
        monkeypatch.delenv("FORCE_COLOR", raising=False)
        monkeypatch.delenv("TTY_COMPATIBLE", raising=False)
        assert detect_color_system("auto", io.StringIO()) is None


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------


class TestExitCodes:
    def test_success(self, tex) -> None:
        assert main(["--color", "never", "highlight", tex(MATH)]) == 0

    def test_missing_file_returns_2(self, tmp_path: Path, capsys) -> None:
        assert main(["highlight", str(tmp_path / "missing.tex")]) == 2
        assert "invalid filename" in capsys.readouterr().err

    def test_check_failure_returns_1(self, tex) -> None:
        assert main(["check", tex("\\begin{document}\n")]) == 1

    def test_bad_color_returns_2(self, tex, capsys) -> None:
        assert main(["highlight", "--fg", "notacolor", tex(MATH)]) == 2
        assert capsys.readouterr().err.startswith("error:")

    def test_in_place_without_files_returns_2(self) -> None:
        assert main(["format", "-i"]) == 2

    def test_undecodable_file_returns_2(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "latin1.tex"
        path.write_bytes(b"\xff\xfe")
        assert main(["check", str(path)]) == 2
        assert "not valid UTF-8" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestHighlight:
    def test_annotated(self, tex, capsys) -> None:
        assert main(["highlight", "-f", "annotated", tex(MATH)]) == 0
        assert capsys.readouterr().out.splitlines() == [
            "2..3\tdollar-sign\t'$'",
            "3..4\tword\t'x'",
            "4..5\tdollar-sign\t'$'",
        ]

    def test_annotated_prefixes_filenames(self, tex, capsys) -> None:
        a, b = tex(MATH, "a.tex"), tex("$y$", "b.tex")
        assert main(["highlight", "-f", "annotated", a, b]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith(f"{a}:2..3")
        assert lines[-1].startswith(f"{b}:2..3")

    def test_auto_without_color_is_annotated(self, tex, capsys) -> None:
        assert main(["--color", "never", "highlight", tex(MATH)]) == 0
        assert capsys.readouterr().out.startswith("2..3\t")

    def test_json(self, tex, capsys) -> None:
        path = tex(MATH)
        assert main(["highlight", "-f", "json", path]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["file"] == path
        assert [h["text"] for h in data["highlights"]] == ["$", "x", "$"]
        assert data["highlights"][0] == {"start": 2, "end": 3, "kind": "dollar-sign", "text": "$"}

    def test_colorized(self, tex, capsys) -> None:
        assert main(["--color", "always", "highlight", "-f", "colorized", tex(MATH)]) == 0
        out = capsys.readouterr().out
        assert out.startswith("a \x1b[")
        assert "x" in out
        assert out.count("\x1b[0m") == 3

    def test_colorized_never_is_plain(self, tex, capsys) -> None:
        assert main(["--color", "never", "highlight", "-f", "colorized", tex(MATH)]) == 0
        assert capsys.readouterr().out == MATH

    def test_token(self, tex, capsys) -> None:
        path = tex("a % b\n")
        assert main(["highlight", "-t", "comment", "-f", "annotated", path]) == 0
        assert capsys.readouterr().out == "2..5\tcomment\t'% b'\n"

    def test_part(self, tex, capsys) -> None:
        path = tex("\\documentclass{x}\\begin{document}")
        assert main(["highlight", "-p", "preamble", "-f", "json", path]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["highlights"][-1]["text"] == "}"

    def test_stdin(self, monkeypatch, capsys) -> None:
        monkeypatch.setattr(sys, "stdin", io.StringIO(MATH))
        assert main(["highlight", "-f", "json"]) == 0
        assert json.loads(capsys.readouterr().out)["file"] == "<stdin>"

    def test_offsets_are_utf8_bytes(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "accent.tex"
        path.write_bytes("\u00e9t\u00e9 $x$\n".encode("utf-8"))
        assert main(["highlight", "-f", "json", str(path)]) == 0
        highlights = json.loads(capsys.readouterr().out)["highlights"]
        assert [(h["start"], h["end"]) for h in highlights] == [(6, 7), (7, 8), (8, 9)]

        assert main(["highlight", "-f", "annotated", str(path)]) == 0
        assert capsys.readouterr().out.splitlines()[0] == "6..7\tdollar-sign\t'$'"


class TestFormat:
    def test_prints_formatted(self, tex, capsys) -> None:
        path = tex("\\begin{document}\nx\n\\end{document}\n")
        assert main(["format", path]) == 0
        assert capsys.readouterr().out == "\\begin{document}\n  x\n\\end{document}\n"

    def test_in_place(self, tex, capsys) -> None:
        path = tex("\\begin{document}\nx\n\\end{document}\n")
        assert main(["fmt", "-i", path]) == 0
        assert Path(path).read_text() == "\\begin{document}\n  x\n\\end{document}\n"
        assert capsys.readouterr().out == ""

    def test_in_place_keeps_crlf(self, tmp_path: Path) -> None:
        path = tmp_path / "crlf.tex"
        path.write_bytes(b"\\begin{document}\r\nx\r\n\\end{document}\r\n")
        assert main(["format", "-i", str(path)]) == 0
        assert path.read_bytes() == b"\\begin{document}\r\n  x\r\n\\end{document}\r\n"

    def test_strip_comments_and_width(self, tex, capsys) -> None:
        path = tex("\\begin{document}\nx% c\n\\end{document}\n")
        assert main(["format", "--strip-comments", "--indent-width", "3", path]) == 0
        assert capsys.readouterr().out == "\\begin{document}\n   x\n\\end{document}\n"


class TestCheck:
    def test_clean(self, tex, capsys) -> None:
        assert main(["check", tex("\\begin{a}$x$\\end{a}")]) == 0
        assert capsys.readouterr().err == ""

    def test_reports_context(self, tex, capsys) -> None:
        path = tex("ok\n\\end{itemize}\n")
        assert main(["check", path]) == 1
        err = capsys.readouterr().err
        assert f"--> {path}:2:1" in err
        assert "^^^^^^^^^^^^^" in err

    def test_warnings_only(self, tex) -> None:
        assert main(["check", tex("\\?")]) == 0


class TestTokens:
    def test_dump(self, tex, capsys) -> None:
        assert main(["tokens", tex("\\x 1")]) == 0
        assert capsys.readouterr().out.splitlines() == [
            "1:1\tcommand-name\t'\\\\x'",
            "1:3\ttabs-or-spaces\t' '",
            "1:4\tnumber\t'1'",
        ]
