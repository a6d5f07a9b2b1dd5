"""
AST analyses run ahead of, or alongside, lowering.

- rhs_vars: the variable names a node reads (loop merge candidates)
- call discovery: every callee and its arity, so callees can be declared
  before any function body is lowered
- binding check: undeclared names and immutable mutations, found before
  any IR is emitted
"""
from typing import Dict, Iterator, List, Set, Tuple, Iterable

from ast_nodes import (
    Node, Block, Literal, Var, Infix, Call, CallSite, Scope, While,
    TermSemicolon, Let, LetMut, Mutate
)
from lowering.errors import (
    LoweringError, ArityConflict, UndeclaredVariable, ImmutableAssignment
)


# ============================================================================
# Free Variables
# ============================================================================

def rhs_vars(node: Node) -> Set[str]:
    """Collect the variable names read by a node.

    Binding targets (the name in `let x = ...` or `x = ...`) are not reads,
    and neither is the callee name of a call.
    """
    if isinstance(node, Literal):
        return set()
    elif isinstance(node, Var):
        return {node.name}
    elif isinstance(node, Infix):
        return rhs_vars(node.left) | rhs_vars(node.right)
    elif isinstance(node, Call):
        read: Set[str] = set()
        for arg in node.args:
            read |= rhs_vars(arg)
        return read
    elif isinstance(node, Scope):
        return rhs_vars(node.block)
    elif isinstance(node, While):
        return rhs_vars(node.cond) | rhs_vars(node.block)
    elif isinstance(node, TermSemicolon):
        return rhs_vars(node.expr)
    elif isinstance(node, (Let, LetMut, Mutate)):
        return rhs_vars(node.rhs)
    elif isinstance(node, Block):
        read = set()
        for stmt in node.stmts:
            read |= rhs_vars(stmt)
        return read | rhs_vars(node.end)
    raise TypeError(f"Not a Lev AST node: {node!r}")


# ============================================================================
# Call Discovery
# ============================================================================

def collect_call_sites(node: Node) -> Iterator[CallSite]:
    """Yield every call site under `node` in source order.

    Calls nested in arguments come after the call that contains them.
    """
    if isinstance(node, (Literal, Var)):
        return
    elif isinstance(node, Infix):
        yield from collect_call_sites(node.left)
        yield from collect_call_sites(node.right)
    elif isinstance(node, Call):
        yield node.site
        for arg in node.args:
            yield from collect_call_sites(arg)
    elif isinstance(node, Scope):
        yield from collect_call_sites(node.block)
    elif isinstance(node, While):
        yield from collect_call_sites(node.cond)
        yield from collect_call_sites(node.block)
    elif isinstance(node, TermSemicolon):
        yield from collect_call_sites(node.expr)
    elif isinstance(node, (Let, LetMut, Mutate)):
        yield from collect_call_sites(node.rhs)
    elif isinstance(node, Block):
        for stmt in node.stmts:
            yield from collect_call_sites(stmt)
        yield from collect_call_sites(node.end)
    else:
        raise TypeError(f"Not a Lev AST node: {node!r}")


def check_arities(sites: Iterable[CallSite],
                  known: Dict[str, int] = None) -> Tuple[Dict[str, int], List[ArityConflict]]:
    """Deduplicate call sites by name.

    Every site is compared with the arity first recorded for its name across
    the whole traversal (seeded from `known`). Returns the name -> arity table
    in first-seen order and one ArityConflict per conflicting name.
    """
    signatures: Dict[str, int] = dict(known or {})
    conflicts: Dict[str, ArityConflict] = {}
    for site in sites:
        expected = signatures.setdefault(site.name, site.arity)
        if expected != site.arity and site.name not in conflicts:
            conflicts[site.name] = ArityConflict(site.name, expected, site.arity)
    return signatures, list(conflicts.values())


def find_calls(node: Node) -> Set[CallSite]:
    """Return each distinct callee with its arity.

    Raises ArityConflict for the first name called with two argument counts.
    """
    signatures, conflicts = check_arities(collect_call_sites(node))
    if conflicts:
        raise conflicts[0]
    return {CallSite(name, arity) for name, arity in signatures.items()}


# ============================================================================
# Binding Check
# ============================================================================

def check_bindings(node: Node, scope: Dict[str, bool] = None) -> List[LoweringError]:
    """Resolve every variable reference without emitting IR.

    Walks the tree with the scoping rules lowering uses (a binding's
    right-hand side sees the previous bindings; Scope and loop bodies get a
    fresh copy of the enclosing scope) and reports each undeclared name and
    each mutation of an immutable name once.
    """
    errors: Dict[Tuple[type, str], LoweringError] = {}
    _check_node(node, dict(scope or {}), errors)
    return list(errors.values())


def _report(errors, error: LoweringError):
    errors.setdefault((type(error), error.name), error)


def _check_node(node: Node, scope: Dict[str, bool], errors) -> Dict[str, bool]:
    """Check `node` against `scope` (name -> is_mutable); return the scope after it."""
    if isinstance(node, Literal):
        pass
    elif isinstance(node, Var):
        if node.name not in scope:
            _report(errors, UndeclaredVariable(node.name))
    elif isinstance(node, Infix):
        _check_node(node.left, scope, errors)
        _check_node(node.right, scope, errors)
    elif isinstance(node, Call):
        for arg in node.args:
            _check_node(arg, scope, errors)
    elif isinstance(node, Scope):
        _check_node(node.block, dict(scope), errors)
    elif isinstance(node, While):
        _check_node(node.cond, scope, errors)
        _check_node(node.block, dict(scope), errors)
    elif isinstance(node, TermSemicolon):
        _check_node(node.expr, scope, errors)
    elif isinstance(node, (Let, LetMut)):
        _check_node(node.rhs, scope, errors)
        scope = dict(scope)
        scope[node.name] = isinstance(node, LetMut)
    elif isinstance(node, Mutate):
        if node.name not in scope:
            _report(errors, UndeclaredVariable(node.name))
        elif not scope[node.name]:
            _report(errors, ImmutableAssignment(node.name))
        _check_node(node.rhs, scope, errors)
    elif isinstance(node, Block):
        for stmt in node.stmts:
            scope = _check_node(stmt, scope, errors)
        _check_node(node.end, scope, errors)
    else:
        raise TypeError(f"Not a Lev AST node: {node!r}")
    return scope
