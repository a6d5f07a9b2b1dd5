#!/usr/bin/env python3
"""
Lev Compiler

Lowers a Lev program, given as a JSON-serialized AST, to LLVM.

Usage:
    python levc.py <program.json> [-o output] [--emit-ir] [--emit-bitcode] [--emit-ast]

Examples:
    python levc.py count.json                   # Produces count.o (object file)
    python levc.py count.json -o build/count.o  # Object file at a chosen path
    python levc.py count.json --emit-ir         # Print LLVM IR
    python levc.py count.json --emit-ir -o c.ll # Write LLVM IR to c.ll
    python levc.py count.json --emit-bitcode    # Produces count.bc
    python levc.py count.json --emit-ast        # Print the AST
"""

import sys
import os
import argparse
import logging
from pprint import pformat

from ast_nodes import AstFormatError, program_from_json
from lowering import (
    LoweringOptions, build_module, LoweringError, ModuleBuildError,
    EmitError, emit_object, emit_bitcode, emit_ir
)


class CompileError(Exception):
    """Compilation error"""
    pass


def load_program(source_path: str):
    """Read a JSON AST from disk"""
    try:
        with open(source_path, 'r') as f:
            source = f.read()
    except OSError as e:
        raise CompileError(f"Cannot read {source_path}: {e.strerror}")
    try:
        return program_from_json(source)
    except AstFormatError as e:
        raise CompileError(f"{source_path}: {e}")


def default_output(source_path: str, extension: str) -> str:
    base = os.path.splitext(source_path)[0]
    return base + extension


def compile_lev(source_path: str, output_path: str = None,
                emit_ir_text: bool = False, emit_bc: bool = False,
                emit_ast: bool = False, options: LoweringOptions = None):
    """
    Compile a Lev program.

    Args:
        source_path: Path to the JSON AST
        output_path: Output path (default: source name with .o / .bc extension)
        emit_ir_text: Produce LLVM IR (printed unless output_path is given)
        emit_bc: Produce LLVM bitcode instead of an object file
        emit_ast: Print the AST instead of compiling
        options: Module name, entry name and target triple
    """
    print(f"Loading {source_path}...")
    program = load_program(source_path)

    if emit_ast:
        print(pformat(program))
        return

    print("Lowering to LLVM IR...")
    try:
        module = build_module(program, options)
    except ModuleBuildError as e:
        for message in e.messages:
            print(f"Error: {message}", file=sys.stderr)
        raise CompileError(f"{len(e.errors)} error(s)")
    except LoweringError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        raise CompileError("1 error(s)")

    try:
        if emit_ir_text:
            if output_path is None:
                print(module)
                return
            print(f"Writing IR to {output_path}...")
            emit_ir(module, output_path)
        elif emit_bc:
            output_path = output_path or default_output(source_path, ".bc")
            print(f"Writing bitcode to {output_path}...")
            emit_bitcode(module, output_path)
        else:
            output_path = output_path or default_output(source_path, ".o")
            print(f"Compiling to {output_path}...")
            emit_object(module, output_path, triple=options.triple if options else None)
    except EmitError as e:
        raise CompileError(str(e))

    print(f"Successfully compiled to {output_path}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Lev Compiler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s count.json                   Compile to count.o
  %(prog)s count.json -o out.o          Compile to out.o
  %(prog)s count.json --emit-ir         Print LLVM IR
  %(prog)s count.json --emit-bitcode    Write count.bc
  %(prog)s count.json --emit-ast        Print AST
        """
    )

    parser.add_argument("source", help="Program AST (.json)")
    parser.add_argument("-o", "--output", help="Output file (default: source with .o/.bc extension)")
    emit = parser.add_mutually_exclusive_group()
    emit.add_argument("--emit-ir", action="store_true",
                      help="Print LLVM IR (or write it to -o)")
    emit.add_argument("--emit-bitcode", action="store_true",
                      help="Write LLVM bitcode instead of an object file")
    emit.add_argument("--emit-ast", action="store_true",
                      help="Print AST to stdout")
    parser.add_argument("--module-name", default="Main",
                        help="Name of the LLVM module (default: Main)")
    parser.add_argument("--entry", default="main",
                        help="Name of the entry function (default: main)")
    parser.add_argument("--triple", default=None,
                        help="Target triple (default: host)")
    parser.add_argument("--verbose", action="store_true",
                        help="Log lowering details to stderr")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    options = LoweringOptions(
        module_name=args.module_name,
        entry_name=args.entry,
        triple=args.triple,
    )

    try:
        compile_lev(
            args.source,
            args.output,
            emit_ir_text=args.emit_ir,
            emit_bc=args.emit_bitcode,
            emit_ast=args.emit_ast,
            options=options
        )
    except CompileError as e:
        print(f"Compilation failed: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Internal compiler error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(2)


if __name__ == "__main__":
    main()
