"""
Lowering errors.

Every failure raised while turning a Lev AST into LLVM IR derives from
LoweringError and names the identifier at fault. Expression, statement and
loop lowering let the first error propagate; module scaffolding collects the
independent ones into a single ModuleBuildError.
"""

from typing import List, Iterable


class LoweringError(Exception):
    """Base exception for lowering errors"""

    def __init__(self, name: str, message: str):
        super().__init__(message)
        self.name = name
        self.message = message


class UndeclaredVariable(LoweringError):
    def __init__(self, name: str):
        super().__init__(
            name,
            f"Undeclared identifier '{name}': variable has not been declared in this scope",
        )


class ImmutableAssignment(LoweringError):
    def __init__(self, name: str):
        super().__init__(
            name,
            f"Cannot assign to '{name}': it was bound with 'let' and is immutable. "
            f"Declare it with 'let mut' to allow mutation.",
        )


class UndeclaredFunction(LoweringError):
    def __init__(self, name: str):
        super().__init__(name, f"Undeclared function '{name}': no signature was declared for it")


class ArityConflict(LoweringError):
    def __init__(self, name: str, expected: int = None, found: int = None):
        if expected is None or found is None:
            detail = ""
        else:
            detail = f" ({expected} and {found} arguments)"
        super().__init__(name, f"Function '{name}' is called with different numbers of arguments{detail}")
        self.expected = expected
        self.found = found


class NonConstantLet(LoweringError):
    def __init__(self, name: str):
        super().__init__(
            name,
            f"Immutable binding '{name}' needs a compile-time constant; "
            f"use 'let mut' for values computed at run time",
        )


class IdentifierEncodingError(LoweringError):
    def __init__(self, name: str, reason: str):
        super().__init__(name, f"Identifier {name!r} cannot be used as an LLVM name: {reason}")
        self.reason = reason


class ModuleBuildError(LoweringError):
    """Several independent failures found while building one module"""

    def __init__(self, errors: Iterable[LoweringError]):
        self.errors: List[LoweringError] = list(errors)
        message = "\n".join(self.messages)
        super().__init__(None, message)

    @property
    def messages(self) -> List[str]:
        return [e.message for e in self.errors]
