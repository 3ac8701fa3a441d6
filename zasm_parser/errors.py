"""
Exception hierarchy
===================

Exceptions raised inside the parsing components.  None of them escape
:meth:`~zasm_parser.pipeline.driver.AssemblyParser.parse` for bad input: the
driver and the enrichment pass catch them and turn them into
:class:`~zasm_parser.models.ParseError` diagnostics.

::

    ZasmError
    ├── LineSyntaxError         – a physical record that cannot be decoded
    ├── OperandSyntaxError      – unbalanced parentheses / unterminated quote
    └── StatementLimitExceeded  – the statement ceiling was reached
"""
from __future__ import annotations

from typing import Optional


class ZasmError(Exception):
    """Base class for every error raised by this package."""


class LineSyntaxError(ZasmError, ValueError):
    """A source record could not be decoded into fields."""

    def __init__(self, message: str, column: int = 0) -> None:
        super().__init__(message)
        self.column = column


class OperandSyntaxError(ZasmError, ValueError):
    """An operand field could not be split into operands."""

    def __init__(self, message: str, operand_text: Optional[str] = None) -> None:
        super().__init__(message)
        self.operand_text = operand_text


class StatementLimitExceeded(ZasmError):
    """Raised when a parse produces more statements than allowed."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Statement limit of {limit} exceeded; parse aborted")
        self.limit = limit
