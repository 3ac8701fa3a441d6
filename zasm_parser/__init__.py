"""
zasm_parser
===========

A static parser for fixed-column z/OS assembler source.  It decodes records
into tokens and statements, joins continuation lines, resolves ``COPY``
members, captures and expands macros, classifies operands against an
opcode catalog and builds a symbol table.  Problems are reported as
diagnostics, never raised.

Quick start
-----------
>>> from zasm_parser import AssemblyParser, FileCatalog
>>> catalog = FileCatalog()
>>> _ = catalog.add("REGS.ASM", "R1       EQU   1\\n")
>>> result = AssemblyParser(catalog=catalog).parse("         COPY  REGS\\n")
>>> result.symbols["R1"].value
1
"""

from .errors import LineSyntaxError, OperandSyntaxError, StatementLimitExceeded, ZasmError
from .models import (
    MacroDefinition,
    Operand,
    ParseContext,
    ParseError,
    ParseResult,
    Statement,
    SymbolDefinition,
    Token,
)
from .pipeline.driver import AssemblyParser, parse
from .pipeline.file_catalog import FileCatalog, SourceFile
from .pipeline.opcodes import OpcodeCatalog

__version__ = "0.1.0"
__all__ = [
    "AssemblyParser",
    "parse",
    "FileCatalog",
    "SourceFile",
    "OpcodeCatalog",
    "MacroDefinition",
    "Operand",
    "ParseContext",
    "ParseError",
    "ParseResult",
    "Statement",
    "SymbolDefinition",
    "Token",
    "ZasmError",
    "LineSyntaxError",
    "OperandSyntaxError",
    "StatementLimitExceeded",
]
