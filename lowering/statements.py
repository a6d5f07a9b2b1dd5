"""
Statement and Block Lowering for Lev.

A block threads its environment through the statements strictly in order:
the environment produced by one statement is the one the next statement
sees. The trailing expression is lowered against the final environment and
its value is the block's value.

Statement types handled:
- TermSemicolon: evaluate for effect, discard the value
- Let: bind an immutable, compile-time constant value (Unboxed)
- LetMut: allocate a cell, store the initial value, bind it (Boxed)
- Mutate: store into the cell of an existing Boxed binding
"""
from typing import TYPE_CHECKING, Tuple
from llvmlite import ir

from ast_nodes import Block, Stmt, TermSemicolon, Let, LetMut, Mutate
from lowering.env import Environment, Unboxed, BOXED
from lowering.errors import UndeclaredVariable, ImmutableAssignment, NonConstantLet
from lowering.expressions import constant_value
from lowering.names import encode_identifier

if TYPE_CHECKING:
    from lowering.core import Lowerer


class StatementLowerer:
    """Generates LLVM IR for Lev statements and blocks."""

    def __init__(self, cg: 'Lowerer'):
        self.cg = cg

    @property
    def builder(self) -> ir.IRBuilder:
        return self.cg.builder

    # ========================================================================
    # Blocks
    # ========================================================================

    def lower_block(self, block: Block, env: Environment) -> Tuple[ir.Value, Environment]:
        """Lower a block; return its value and the environment after its statements"""
        for stmt in block.stmts:
            env = self.lower_statement(stmt, env)
        return self.cg.lower_expression(block.end, env), env

    # ========================================================================
    # Statements
    # ========================================================================

    def lower_statement(self, stmt: Stmt, env: Environment) -> Environment:
        """Lower one statement and return the environment that follows it"""
        if isinstance(stmt, TermSemicolon):
            self.cg.lower_expression(stmt.expr, env)
            return env

        elif isinstance(stmt, Let):
            return self.lower_let(stmt, env)

        elif isinstance(stmt, LetMut):
            return self.lower_let_mut(stmt, env)

        elif isinstance(stmt, Mutate):
            return self.lower_mutate(stmt, env)

        raise TypeError(f"Not a Lev statement: {stmt!r}")

    def lower_let(self, stmt: Let, env: Environment) -> Environment:
        value = self.cg.lower_expression(stmt.rhs, env)
        constant = constant_value(value)
        if constant is None:
            raise NonConstantLet(stmt.name)
        return env.bind(stmt.name, value, Unboxed(constant))

    def lower_let_mut(self, stmt: LetMut, env: Environment) -> Environment:
        cell = self.cg.cells.allocate(encode_identifier(stmt.name))
        value = self.cg.lower_expression(stmt.rhs, env)
        self.builder.store(value, cell.pointer)
        return env.bind(stmt.name, cell.pointer, BOXED)

    def lower_mutate(self, stmt: Mutate, env: Environment) -> Environment:
        binding = env.lookup(stmt.name)
        if binding is None:
            raise UndeclaredVariable(stmt.name)
        if not binding.is_boxed:
            raise ImmutableAssignment(stmt.name)
        value = self.cg.lower_expression(stmt.rhs, env)
        # Same cell: every environment aliasing it sees the store
        self.builder.store(value, binding.value)
        return env
