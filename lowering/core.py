"""
Lev LLVM Lowering Engine

Builds an LLVM module from a Lev AST using llvmlite. The module holds one
entry function that evaluates the program, plus a declaration for every
external function the program calls.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from llvmlite import ir, binding

from ast_nodes import Node, Block, Expr
from lowering.analysis import collect_call_sites, check_arities, check_bindings
from lowering.env import Environment, CellArena
from lowering.errors import (
    LoweringError, ModuleBuildError, ArityConflict
)
from lowering.expressions import ExpressionLowerer, wrap_int
from lowering.loops import LoopLowerer, MergePoint
from lowering.names import encode_identifier
from lowering.statements import StatementLowerer

logger = logging.getLogger(__name__)


@dataclass
class LoweringOptions:
    """Settings for one module build"""
    module_name: str = "Main"
    entry_name: str = "main"
    triple: Optional[str] = None  # None: host default


class Lowerer:
    """Lowers one Lev program into one LLVM module.

    A Lowerer owns the module and the single IR builder used to fill it, so it
    builds exactly one module; create a new Lowerer for the next program.
    """

    def __init__(self, options: LoweringOptions = None):
        self.options = options or LoweringOptions()
        self.int_type = ir.IntType(32)

        self.module = ir.Module(name=self.options.module_name)
        self.module.triple = self.options.triple or binding.get_default_triple()

        # Builder for the entry function, and the cells it allocates
        self.builder: Optional[ir.IRBuilder] = None
        self.cells: Optional[CellArena] = None

        # Callee name -> declared function; the signature table for calls
        self.functions: Dict[str, ir.Function] = {}
        self.entry_function: Optional[ir.Function] = None

        # Every loop header phi built so far, in construction order
        self.merge_points: List[MergePoint] = []

        self.expressions = ExpressionLowerer(self)
        self.statements = StatementLowerer(self)
        self.loops = LoopLowerer(self)

        self._used = False

    # ========================================================================
    # Module Scaffolding
    # ========================================================================

    def build_module(self, program: Node) -> ir.Module:
        """Lower `program` (a Block or an expression) into the module.

        Problems that can be found independently (arity conflicts, names LLVM
        cannot carry, undeclared or immutable variables) are all collected
        before any IR is emitted and raised together as a ModuleBuildError.
        A failure while lowering the body is raised the same way.
        """
        if self._used:
            raise RuntimeError("Lowerer has already built a module; create a new Lowerer")
        self._used = True

        entry_name = self.options.entry_name
        signatures, errors = self.discover_callees(program)
        errors.extend(check_bindings(program))
        if errors:
            raise ModuleBuildError(errors)

        for name, arity in signatures.items():
            if name != entry_name:
                self.declare_function(name, arity)
        self.entry_function = self.declare_function(entry_name, 0)

        try:
            self.build_entry(program)
        except LoweringError as e:
            raise ModuleBuildError([e]) from e
        return self.module

    def discover_callees(self, program: Node) -> Tuple[Dict[str, int], List[LoweringError]]:
        """Find every callee and its arity; report conflicts and bad names.

        The entry function is itself callable (with no arguments), so it seeds
        the table and its name is checked along with the callees.
        """
        signatures, conflicts = check_arities(
            collect_call_sites(program), known={self.options.entry_name: 0}
        )
        errors: List[LoweringError] = list(conflicts)
        for name in signatures:
            try:
                encode_identifier(name)
            except LoweringError as e:
                errors.append(e)
        return signatures, errors

    def declare_function(self, name: str, arity: int) -> ir.Function:
        """Declare `i32 name(i32 x arity)` and record it in the signature table"""
        existing = self.functions.get(name)
        if existing is not None:
            if len(existing.args) != arity:
                raise ArityConflict(name, len(existing.args), arity)
            return existing
        func_type = ir.FunctionType(self.int_type, [self.int_type] * arity)
        func = ir.Function(self.module, func_type, name=encode_identifier(name))
        self.functions[name] = func
        logger.debug("Declared %s/%d", name, arity)
        return func

    def build_entry(self, program: Node):
        """Fill the entry function with the program and return its value.

        Cells are allocated in the 'entry' block, which falls through to
        'start' where the program itself is lowered.
        """
        func = self.entry_function
        entry_block = func.append_basic_block("entry")
        start_block = func.append_basic_block("start")

        alloca_builder = ir.IRBuilder(entry_block)
        self.cells = CellArena(alloca_builder, self.int_type)

        self.builder = ir.IRBuilder(start_block)
        result = self.lower_program(program, Environment())
        self.builder.ret(result)

        alloca_builder.branch(start_block)
        logger.debug("Built %s with %d cell(s) and %d merge point(s)",
                     func.name, len(self.cells), len(self.merge_points))

    def lower_program(self, program: Node, env: Environment) -> ir.Value:
        if isinstance(program, Block):
            value, _ = self.lower_block(program, env)
            return value
        if isinstance(program, Expr):
            return self.lower_expression(program, env)
        raise TypeError(f"A program must be a Block or an expression, got {program!r}")

    # ========================================================================
    # Shared Entry Points
    # ========================================================================

    def lower_expression(self, expr: Expr, env: Environment) -> ir.Value:
        return self.expressions.lower(expr, env)

    def lower_block(self, block: Block, env: Environment) -> Tuple[ir.Value, Environment]:
        return self.statements.lower_block(block, env)

    def constant(self, value: int) -> ir.Constant:
        return ir.Constant(self.int_type, wrap_int(value, self.int_type.width))

    def get_ir(self) -> str:
        """Get LLVM IR as string"""
        return str(self.module)


def build_module(program: Node, options: LoweringOptions = None) -> ir.Module:
    """Lower a Lev program into a fresh LLVM module"""
    return Lowerer(options).build_module(program)
