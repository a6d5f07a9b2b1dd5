"""
Tests for the levc command line driver.
"""

import subprocess
import sys

import pytest


def lit(value):
    return {"kind": "Literal", "value": value}


def var(name):
    return {"kind": "Var", "name": name}


COUNTDOWN = {
    "stmts": [
        {"kind": "LetMut", "name": "x", "rhs": lit(3)},
        {"kind": "TermSemicolon", "expr": {
            "kind": "While",
            "cond": var("x"),
            "block": {
                "stmts": [{"kind": "Mutate", "name": "x",
                           "rhs": {"kind": "Infix", "op": "-", "left": var("x"), "right": lit(1)}}],
                "end": lit(0),
            },
        }},
    ],
    "end": var("x"),
}


class TestDriver:
    """Tests for successful compilation"""

    def test_emit_ir(self, run_levc):
        result = run_levc(COUNTDOWN, "--emit-ir")
        assert result.returncode == 0, result.stderr
        assert 'define i32 @"main"()' in result.stdout
        assert "phi" in result.stdout

    def test_emit_ir_options(self, run_levc):
        result = run_levc(lit(7), "--emit-ir", "--module-name", "Seven", "--entry", "seven")
        assert result.returncode == 0, result.stderr
        assert '@"seven"()' in result.stdout
        assert "Seven" in result.stdout

    def test_object_file(self, run_levc, tmp_path):
        result = run_levc(COUNTDOWN)
        assert result.returncode == 0, result.stderr
        assert (tmp_path / "program.o").stat().st_size > 0
        assert "Successfully compiled" in result.stdout

    def test_bitcode_to_chosen_path(self, run_levc, tmp_path):
        output = tmp_path / "out" / "count.bc"
        output.parent.mkdir()
        result = run_levc(COUNTDOWN, "--emit-bitcode", "-o", str(output))
        assert result.returncode == 0, result.stderr
        assert output.read_bytes()[:4] == b"BC\xc0\xde"

    def test_emit_ast(self, run_levc):
        result = run_levc(COUNTDOWN, "--emit-ast")
        assert result.returncode == 0, result.stderr
        assert "While" in result.stdout

    def test_verbose_logs_lowering(self, run_levc):
        result = run_levc(COUNTDOWN, "--emit-ir", "--verbose")
        assert result.returncode == 0, result.stderr
        assert "merge point" in result.stderr


class TestDriverErrors:
    """Tests for reported failures"""

    def test_lowering_errors(self, run_levc):
        program = {"kind": "Infix", "op": "+", "left": var("a"), "right": var("b")}
        result = run_levc(program, "--emit-ir")
        assert result.returncode == 1
        assert "Error: Undeclared identifier 'a'" in result.stderr
        assert "Error: Undeclared identifier 'b'" in result.stderr
        assert "Compilation failed: 2 error(s)" in result.stderr

    def test_bad_ast(self, run_levc):
        result = run_levc({"kind": "Literal", "value": "three"})
        assert result.returncode == 1
        assert "Literal value must be an integer" in result.stderr

    def test_missing_source(self, compiler_root, tmp_path):
        result = subprocess.run(
            [sys.executable, str(compiler_root / "levc.py"), str(tmp_path / "missing.json")],
            capture_output=True, text=True, cwd=compiler_root
        )
        assert result.returncode == 1
        assert "Cannot read" in result.stderr

    @pytest.mark.parametrize("flags", [["--emit-ir", "--emit-bitcode"], ["--emit-ast", "--emit-ir"]])
    def test_exclusive_emit_flags(self, run_levc, flags):
        result = run_levc(lit(0), *flags)
        assert result.returncode == 2
