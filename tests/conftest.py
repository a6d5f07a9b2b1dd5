"""
Pytest configuration and fixtures for Lev lowering tests.

Provides reusable fixtures for:
- Lowering Lev ASTs into LLVM modules
- Running the entry function of a module under MCJIT
- Evaluating programs with a reference interpreter
- Invoking the levc driver
"""

import ctypes
import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from llvmlite import binding

from ast_nodes import (
    Literal, Var, Infix, Call, Scope, While, Operator,
    TermSemicolon, Let, LetMut, Mutate, Block
)
from lowering import Lowerer, LoweringOptions
from lowering.emit import create_target_machine, verify_module


@pytest.fixture
def compiler_root():
    """Path to compiler root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def lower():
    """
    Fixture that returns a function lowering a program to a Lowerer.

    Usage:
        cg = lower(program)
        assert cg.merge_points == []
        ir_text = cg.get_ir()
    """
    def _lower(program, **options) -> Lowerer:
        cg = Lowerer(LoweringOptions(**options))
        cg.build_module(program)
        return cg

    return _lower


@pytest.fixture
def run_module():
    """
    Fixture that JIT-compiles a module and returns the entry function's result.

    External callees can be bound to Python callables taking and returning ints.

    Usage:
        assert run_module(cg.module) == 42
        assert run_module(cg.module, externals={"add2": lambda a, b: a + b}) == 3
    """
    callbacks = []
    engines = []

    def _run(module, externals=None, entry="main") -> int:
        for name, func in (externals or {}).items():
            arity = len(module.get_global(name).args)
            proto = ctypes.CFUNCTYPE(ctypes.c_int32, *([ctypes.c_int32] * arity))
            callback = proto(func)
            callbacks.append(callback)
            binding.add_symbol(name, ctypes.cast(callback, ctypes.c_void_p).value)

        mod = verify_module(module)
        engine = binding.create_mcjit_compiler(mod, create_target_machine())
        engine.finalize_object()
        engines.append(engine)

        func_ptr = engine.get_function_address(entry)
        assert func_ptr, f"entry function '{entry}' not found in module"
        return ctypes.CFUNCTYPE(ctypes.c_int32)(func_ptr)()

    yield _run
    engines.clear()
    callbacks.clear()


class Interpreter:
    """Direct evaluator for Lev ASTs with 32-bit wrapping arithmetic.

    Mutable bindings live in one-element lists so scopes that copy the
    environment still share them.
    """

    def __init__(self, functions=None):
        self.functions = functions or {}

    @staticmethod
    def wrap(value):
        value &= 0xFFFFFFFF
        return value - (1 << 32) if value & 0x80000000 else value

    def eval(self, node, env=None):
        env = dict(env or {})
        if isinstance(node, Block):
            return self.eval_block(node, env)
        return self.eval_expr(node, env)

    def eval_block(self, block, env):
        env = dict(env)
        for stmt in block.stmts:
            if isinstance(stmt, TermSemicolon):
                self.eval_expr(stmt.expr, env)
            elif isinstance(stmt, Let):
                env[stmt.name] = self.eval_expr(stmt.rhs, env)
            elif isinstance(stmt, LetMut):
                env[stmt.name] = [self.eval_expr(stmt.rhs, env)]
            elif isinstance(stmt, Mutate):
                env[stmt.name][0] = self.eval_expr(stmt.rhs, env)
        return self.eval_expr(block.end, env)

    def eval_expr(self, expr, env):
        if isinstance(expr, Literal):
            return self.wrap(expr.value)
        if isinstance(expr, Var):
            value = env[expr.name]
            return value[0] if isinstance(value, list) else value
        if isinstance(expr, Infix):
            left = self.eval_expr(expr.left, env)
            right = self.eval_expr(expr.right, env)
            if expr.op == Operator.ADD:
                return self.wrap(left + right)
            if expr.op == Operator.SUB:
                return self.wrap(left - right)
            if expr.op == Operator.MUL:
                return self.wrap(left * right)
            quotient = abs(left) // abs(right)
            return self.wrap(-quotient if (left < 0) != (right < 0) else quotient)
        if isinstance(expr, Call):
            args = [self.eval_expr(a, env) for a in expr.args]
            return self.wrap(self.functions[expr.name](*args))
        if isinstance(expr, Scope):
            return self.eval_block(expr.block, env)
        if isinstance(expr, While):
            while self.eval_expr(expr.cond, env) != 0:
                self.eval_block(expr.block, env)
            return 0
        raise TypeError(f"Not a Lev expression: {expr!r}")


@pytest.fixture
def interpret():
    """
    Fixture that evaluates a program with the reference interpreter.

    Usage:
        assert interpret(program) == 6
    """
    def _interpret(program, functions=None) -> int:
        return Interpreter(functions).eval(program)

    return _interpret


@pytest.fixture
def run_levc(compiler_root, tmp_path):
    """
    Fixture that writes a program as JSON and runs the levc driver on it.

    Usage:
        result = run_levc(program_dict, "--emit-ir")
        assert result.returncode == 0
    """
    def _run(program: dict, *args) -> subprocess.CompletedProcess:
        source_path = tmp_path / "program.json"
        source_path.write_text(json.dumps(program))
        levc = os.path.join(compiler_root, "levc.py")
        return subprocess.run(
            [sys.executable, levc, str(source_path)] + list(args),
            capture_output=True,
            text=True,
            cwd=compiler_root
        )

    return _run
