"""
Output for finished Lev modules.

Each emitter takes a complete llvmlite module, verifies it with LLVM and
writes one artifact: a native object file, LLVM bitcode, or textual IR.
"""

import logging
from typing import Optional

from llvmlite import ir, binding

logger = logging.getLogger(__name__)


class EmitError(RuntimeError):
    """The module could not be verified or written"""
    pass


def initialize_llvm():
    """Initialize LLVM's native target and assembly printer"""
    try:
        binding.initialize()
    except RuntimeError:
        # Newer llvmlite versions initialize the core automatically
        pass
    binding.initialize_native_target()
    binding.initialize_native_asmprinter()


def verify_module(module: ir.Module) -> binding.ModuleRef:
    """Parse the module's IR with LLVM and verify it"""
    initialize_llvm()
    try:
        mod = binding.parse_assembly(str(module))
        mod.verify()
    except RuntimeError as e:
        raise EmitError(f"LLVM rejected module '{module.name}': {e}") from e
    return mod


def create_target_machine(triple: Optional[str] = None) -> binding.TargetMachine:
    initialize_llvm()
    try:
        if triple:
            target = binding.Target.from_triple(triple)
        else:
            target = binding.Target.from_default_triple()
    except RuntimeError as e:
        raise EmitError(f"Unknown target triple {triple!r}: {e}") from e
    return target.create_target_machine()


def emit_object(module: ir.Module, output_path: str, triple: Optional[str] = None) -> str:
    """Compile the module to a native object file"""
    mod = verify_module(module)
    target_machine = create_target_machine(triple or module.triple)
    mod.triple = target_machine.triple

    with open(output_path, "wb") as f:
        f.write(target_machine.emit_object(mod))
    logger.debug("Wrote object file %s for %s", output_path, target_machine.triple)
    return output_path


def emit_bitcode(module: ir.Module, output_path: str) -> str:
    """Write the module as LLVM bitcode"""
    mod = verify_module(module)
    with open(output_path, "wb") as f:
        f.write(mod.as_bitcode())
    logger.debug("Wrote bitcode %s", output_path)
    return output_path


def emit_ir(module: ir.Module, output_path: str) -> str:
    """Write the module as textual LLVM IR"""
    verify_module(module)
    with open(output_path, "w") as f:
        f.write(str(module))
    logger.debug("Wrote IR %s", output_path)
    return output_path
