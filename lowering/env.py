"""
Lowering environment.

Maps Lev names to LLVM values together with their levity:

- Boxed: the value is a pointer to a cell; reads load, mutations store
- Unboxed: the value is used directly and carries its known constant

Environments are persistent: bind() returns a new environment and leaves the
receiver untouched, so nested scopes can fork freely. Boxed bindings share
their cell, so a store through any environment is seen by all of them.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional
from llvmlite import ir


# ============================================================================
# Levity
# ============================================================================

class Levity:
    """Representation of a bound variable"""
    pass


@dataclass(frozen=True)
class Boxed(Levity):
    def __repr__(self):
        return "Boxed"


@dataclass(frozen=True)
class Unboxed(Levity):
    constant: Optional[int]

    def __repr__(self):
        return f"Unboxed({self.constant})"


BOXED = Boxed()


@dataclass(frozen=True)
class Binding:
    value: ir.Value
    levity: Levity

    @property
    def is_boxed(self) -> bool:
        return isinstance(self.levity, Boxed)


# ============================================================================
# Environment
# ============================================================================

class Environment:
    """Persistent name -> Binding mapping"""

    __slots__ = ("_bindings",)

    def __init__(self, bindings: Dict[str, Binding] = None):
        self._bindings: Dict[str, Binding] = dict(bindings or {})

    def lookup(self, name: str) -> Optional[Binding]:
        return self._bindings.get(name)

    def bind(self, name: str, value: ir.Value, levity: Levity) -> 'Environment':
        """Return a new environment with `name` bound; self is unchanged."""
        bindings = dict(self._bindings)
        bindings[name] = Binding(value, levity)
        return Environment(bindings)

    def fork(self) -> 'Environment':
        return Environment(self._bindings)

    def names(self) -> List[str]:
        return list(self._bindings)

    def __contains__(self, name: str) -> bool:
        return name in self._bindings

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self):
        inner = ", ".join(f"{k}: {b.levity!r}" for k, b in self._bindings.items())
        return f"Environment({{{inner}}})"


# ============================================================================
# Cells
# ============================================================================

@dataclass
class Cell:
    """One addressable i32 slot, identified by its index in the arena"""
    index: int
    name: str
    pointer: ir.AllocaInstr


@dataclass
class CellArena:
    """Owns every cell of the function being built.

    All allocas are emitted into the function's dedicated entry block, ahead
    of any control flow, so a `let mut` inside a loop reuses one slot instead
    of growing the stack on each iteration.
    """
    builder: ir.IRBuilder
    int_type: ir.IntType
    cells: List[Cell] = field(default_factory=list)

    def allocate(self, name: str) -> Cell:
        pointer = self.builder.alloca(self.int_type, name=name)
        cell = Cell(len(self.cells), name, pointer)
        self.cells.append(cell)
        return cell

    def __getitem__(self, index: int) -> Cell:
        return self.cells[index]

    def __len__(self) -> int:
        return len(self.cells)
