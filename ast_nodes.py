"""
Lev AST Node Definitions

AST for the Lev expression language: integer arithmetic, immutable and
mutable bindings, blocks, while loops and calls to external functions.
Nodes are produced by an external front end and are read-only during lowering.
"""

from dataclasses import dataclass, field
from typing import List, Union, Dict, Any
from enum import Enum
import json


# ============================================================================
# Enums
# ============================================================================

class Operator(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"


# ============================================================================
# Expression Nodes
# ============================================================================

@dataclass
class Expr:
    """Base class for expressions"""
    pass


@dataclass
class Literal(Expr):
    value: int


@dataclass
class Var(Expr):
    name: str


@dataclass
class Infix(Expr):
    left: Expr
    op: Operator
    right: Expr


@dataclass(frozen=True)
class CallSite:
    """A callee name together with the argument count seen at one call"""
    name: str
    arity: int

    def __repr__(self):
        return f"{self.name}/{self.arity}"


@dataclass
class Call(Expr):
    name: str
    args: List[Expr] = field(default_factory=list)

    @property
    def site(self) -> CallSite:
        return CallSite(self.name, len(self.args))


@dataclass
class Scope(Expr):
    block: 'Block'


@dataclass
class While(Expr):
    cond: Expr
    block: 'Block'


# ============================================================================
# Statement Nodes
# ============================================================================

@dataclass
class Stmt:
    """Base class for statements"""
    pass


@dataclass
class TermSemicolon(Stmt):
    """Expression statement; its value is discarded"""
    expr: Expr


@dataclass
class Let(Stmt):
    name: str
    rhs: Expr


@dataclass
class LetMut(Stmt):
    name: str
    rhs: Expr


@dataclass
class Mutate(Stmt):
    name: str
    rhs: Expr


# ============================================================================
# Block Node
# ============================================================================

@dataclass
class Block:
    """Statements followed by the expression whose value is the block's result"""
    stmts: List[Stmt]
    end: Expr


Node = Union[Expr, Stmt, Block]


# ============================================================================
# JSON Loading
# ============================================================================

class AstFormatError(ValueError):
    """Raised when a serialized AST does not match the node shapes"""
    pass


_BINDING_KINDS = {"Let": Let, "LetMut": LetMut, "Mutate": Mutate}


def _field(data: Dict[str, Any], key: str, kind: str):
    if key not in data:
        raise AstFormatError(f"{kind} node is missing field '{key}'")
    return data[key]


def _name(data: Dict[str, Any], kind: str) -> str:
    name = _field(data, "name", kind)
    if not isinstance(name, str):
        raise AstFormatError(f"{kind} node field 'name' must be a string, got {name!r}")
    return name


def block_from_dict(data: Dict[str, Any]) -> Block:
    """Rebuild a Block from its dictionary form"""
    if not isinstance(data, dict):
        raise AstFormatError(f"Expected a Block object, got {data!r}")
    stmts = _field(data, "stmts", "Block")
    if not isinstance(stmts, list):
        raise AstFormatError("Block node field 'stmts' must be a list")
    return Block(
        stmts=[stmt_from_dict(s) for s in stmts],
        end=expr_from_dict(_field(data, "end", "Block")),
    )


def stmt_from_dict(data: Dict[str, Any]) -> Stmt:
    """Rebuild a statement from its dictionary form"""
    if not isinstance(data, dict):
        raise AstFormatError(f"Expected a statement object, got {data!r}")
    kind = data.get("kind")
    if kind == "TermSemicolon":
        return TermSemicolon(expr_from_dict(_field(data, "expr", kind)))
    if kind in _BINDING_KINDS:
        return _BINDING_KINDS[kind](
            name=_name(data, kind),
            rhs=expr_from_dict(_field(data, "rhs", kind)),
        )
    raise AstFormatError(f"Unknown statement kind {kind!r}")


def expr_from_dict(data: Dict[str, Any]) -> Expr:
    """Rebuild an expression from its dictionary form"""
    if not isinstance(data, dict):
        raise AstFormatError(f"Expected an expression object, got {data!r}")
    kind = data.get("kind")

    if kind == "Literal":
        value = _field(data, "value", kind)
        # bool is an int subclass but never a Lev literal
        if not isinstance(value, int) or isinstance(value, bool):
            raise AstFormatError(f"Literal value must be an integer, got {value!r}")
        return Literal(value)

    elif kind == "Var":
        return Var(_name(data, kind))

    elif kind == "Infix":
        op = _field(data, "op", kind)
        try:
            operator = Operator(op)
        except ValueError:
            raise AstFormatError(f"Unknown operator {op!r}") from None
        return Infix(
            left=expr_from_dict(_field(data, "left", kind)),
            op=operator,
            right=expr_from_dict(_field(data, "right", kind)),
        )

    elif kind == "Call":
        args = data.get("args", [])
        if not isinstance(args, list):
            raise AstFormatError("Call node field 'args' must be a list")
        return Call(_name(data, kind), [expr_from_dict(a) for a in args])

    elif kind == "Scope":
        return Scope(block_from_dict(_field(data, "block", kind)))

    elif kind == "While":
        return While(
            cond=expr_from_dict(_field(data, "cond", kind)),
            block=block_from_dict(_field(data, "block", kind)),
        )

    raise AstFormatError(f"Unknown expression kind {kind!r}")


def node_from_dict(data: Dict[str, Any]) -> Node:
    """Rebuild any node, dispatching on its "kind" tag"""
    if not isinstance(data, dict):
        raise AstFormatError(f"Expected a node object, got {data!r}")
    kind = data.get("kind")
    if kind == "Block" or (kind is None and "stmts" in data):
        return block_from_dict(data)
    if kind == "TermSemicolon" or kind in _BINDING_KINDS:
        return stmt_from_dict(data)
    return expr_from_dict(data)


def program_from_json(text: str) -> Node:
    """Parse a program serialized as JSON (a Block or a bare expression)"""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AstFormatError(f"Invalid JSON: {e}") from e
    program = node_from_dict(data)
    if isinstance(program, Stmt):
        raise AstFormatError("A program must be a Block or an expression, not a statement")
    return program
