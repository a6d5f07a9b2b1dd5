"""
Lev Lowering Package

Lowers a Lev AST into an LLVM module with llvmlite.

    lowering/
    ├── __init__.py      # Public API (this file)
    ├── core.py          # Lowerer: module scaffolding, shared entry points
    ├── analysis.py      # Free variables, call discovery, binding check
    ├── env.py           # Environment, levity, cell arena
    ├── expressions.py   # Expression lowering, constant folding
    ├── statements.py    # Statement and block lowering
    ├── loops.py         # While loops and their merge points
    ├── names.py         # Identifier encoding rules
    ├── errors.py        # Error taxonomy
    └── emit.py          # Object, bitcode and IR output
"""

from lowering.core import Lowerer, LoweringOptions, build_module
from lowering.errors import (
    LoweringError, UndeclaredVariable, ImmutableAssignment, UndeclaredFunction,
    ArityConflict, NonConstantLet, IdentifierEncodingError, ModuleBuildError
)
from lowering.emit import EmitError, emit_object, emit_bitcode, emit_ir

__all__ = [
    'Lowerer', 'LoweringOptions', 'build_module',
    'LoweringError', 'UndeclaredVariable', 'ImmutableAssignment', 'UndeclaredFunction',
    'ArityConflict', 'NonConstantLet', 'IdentifierEncodingError', 'ModuleBuildError',
    'EmitError', 'emit_object', 'emit_bitcode', 'emit_ir',
]
