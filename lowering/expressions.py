"""
Expression Lowering for Lev.

Turns one expression plus an environment snapshot into an LLVM value.
Expressions never change the environment they are given; bindings made
inside a Scope live in a fork that is dropped when the scope ends.
"""
from typing import TYPE_CHECKING, Optional
from llvmlite import ir

from ast_nodes import Expr, Literal, Var, Infix, Call, Scope, While, Operator
from lowering.env import Environment
from lowering.errors import UndeclaredVariable, UndeclaredFunction, ArityConflict
from lowering.names import encode_identifier

if TYPE_CHECKING:
    from lowering.core import Lowerer


def wrap_int(value: int, bits: int) -> int:
    """Reduce `value` to a signed two's complement integer of `bits` bits."""
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def constant_value(value: ir.Value) -> Optional[int]:
    """Return the integer a value is statically known to hold, if any."""
    if isinstance(value, ir.Constant) and isinstance(value.type, ir.IntType):
        if isinstance(value.constant, int):
            return value.constant
    return None


def fold_infix(op: Operator, left: int, right: int, bits: int) -> Optional[int]:
    """Evaluate an operator on two known constants the way the target does.

    Returns None for divisions the target leaves undefined (by zero, or the
    most negative value by -1); those are emitted as real instructions.
    """
    if op == Operator.ADD:
        return wrap_int(left + right, bits)
    elif op == Operator.SUB:
        return wrap_int(left - right, bits)
    elif op == Operator.MUL:
        return wrap_int(left * right, bits)
    elif op == Operator.DIV:
        if right == 0 or (left == -(1 << (bits - 1)) and right == -1):
            return None
        # sdiv truncates toward zero
        quotient = abs(left) // abs(right)
        return -quotient if (left < 0) != (right < 0) else quotient
    raise ValueError(f"Unknown operator {op!r}")


class ExpressionLowerer:
    """Generates LLVM IR for Lev expressions."""

    def __init__(self, cg: 'Lowerer'):
        self.cg = cg

    @property
    def builder(self) -> ir.IRBuilder:
        return self.cg.builder

    @property
    def int_type(self) -> ir.IntType:
        return self.cg.int_type

    # ========================================================================
    # Dispatcher
    # ========================================================================

    def lower(self, expr: Expr, env: Environment) -> ir.Value:
        """Lower an expression against `env`"""
        if isinstance(expr, Literal):
            return self.cg.constant(expr.value)

        elif isinstance(expr, Var):
            return self.lower_var(expr, env)

        elif isinstance(expr, Infix):
            return self.lower_infix(expr, env)

        elif isinstance(expr, Call):
            return self.lower_call(expr, env)

        elif isinstance(expr, Scope):
            value, _ = self.cg.lower_block(expr.block, env.fork())
            return value

        elif isinstance(expr, While):
            return self.cg.loops.lower_while(expr, env)

        raise TypeError(f"Not a Lev expression: {expr!r}")

    # ========================================================================
    # Variables
    # ========================================================================

    def lower_var(self, expr: Var, env: Environment) -> ir.Value:
        binding = env.lookup(expr.name)
        if binding is None:
            raise UndeclaredVariable(expr.name)
        if binding.is_boxed:
            return self.builder.load(binding.value, name=expr.name, typ=self.int_type)
        return binding.value

    # ========================================================================
    # Arithmetic
    # ========================================================================

    def lower_infix(self, expr: Infix, env: Environment) -> ir.Value:
        # Each operand starts from the environment in effect at entry
        left = self.lower(expr.left, env.fork())
        right = self.lower(expr.right, env.fork())

        left_const = constant_value(left)
        right_const = constant_value(right)
        if left_const is not None and right_const is not None:
            folded = fold_infix(expr.op, left_const, right_const, self.int_type.width)
            if folded is not None:
                return self.cg.constant(folded)

        if expr.op == Operator.ADD:
            return self.builder.add(left, right, name="add")
        elif expr.op == Operator.SUB:
            return self.builder.sub(left, right, name="sub")
        elif expr.op == Operator.MUL:
            return self.builder.mul(left, right, name="mul")
        elif expr.op == Operator.DIV:
            return self.builder.sdiv(left, right, name="div")
        raise ValueError(f"Unknown operator {expr.op!r}")

    # ========================================================================
    # Calls
    # ========================================================================

    def lower_call(self, expr: Call, env: Environment) -> ir.Value:
        func = self.cg.functions.get(expr.name)
        if func is None:
            raise UndeclaredFunction(expr.name)
        declared = len(func.args)
        if declared != len(expr.args):
            raise ArityConflict(expr.name, declared, len(expr.args))

        args = [self.lower(arg, env.fork()) for arg in expr.args]
        return self.builder.call(func, args, name="call_" + encode_identifier(expr.name))
