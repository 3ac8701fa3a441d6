"""
Statement enrichment
====================

Runs once per primary statement in open code:

1. Resolve the operation (catalog first, then the macro table).
2. Instruction -> classify operands, check the operand count.
3. Macro call  -> mark the statement and attach the informational expansion.
4. Unknown     -> error diagnostic.
5. Record any label in the symbol table.

Operand problems are warnings; an unknown operation is an error.  Nothing
raised by the operand analyzer or the expander escapes this pass.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from ..errors import OperandSyntaxError
from ..models import InstructionInfo, ParseContext, ParseError, Statement, excerpt_of
from ..parser.operand_analyzer import OperandAnalyzer
from ..passes.macro_expansion import MacroExpander, TextMacroExpander
from .opcodes import OpcodeCatalog
from .resolution import Instruction, MacroCall, Unknown, resolve_opcode
from .symbols import SymbolTableBuilder

logger = logging.getLogger(__name__)


class StatementEnricher:
    """
    Parameters
    ----------
    catalog:
        Opcode catalog used for resolution and arity checks.
    analyzer:
        Operand splitter/classifier.
    expander:
        Macro expander; defaults to :class:`TextMacroExpander`.
    """

    def __init__(
        self,
        catalog: Optional[OpcodeCatalog] = None,
        analyzer: Optional[OperandAnalyzer] = None,
        expander: Optional[MacroExpander] = None,
        symbols: Optional[SymbolTableBuilder] = None,
    ) -> None:
        self.catalog = catalog or OpcodeCatalog()
        self.analyzer = analyzer or OperandAnalyzer()
        self.expander = expander or TextMacroExpander()
        self.symbols = symbols or SymbolTableBuilder()

    def enrich(self, statement: Statement, context: ParseContext) -> List[ParseError]:
        """Enrich *statement* in place and return the diagnostics raised."""
        errors: List[ParseError] = []

        if statement.is_continuation or statement.is_comment or statement.is_blank:
            return errors

        if statement.opcode:
            resolution = resolve_opcode(statement.opcode, self.catalog, context.macros)

            if isinstance(resolution, Instruction):
                self._mark_opcode(statement)
                self._instruction(statement, resolution, errors)
            elif isinstance(resolution, MacroCall):
                self._mark_opcode(statement)
                self._macro_call(statement, resolution, errors)
            elif isinstance(resolution, Unknown):
                errors.append(
                    self._diagnostic(
                        statement,
                        f"Undefined macro or instruction: {resolution.name}",
                        column=self._opcode_column(statement),
                    )
                )

        self.symbols.record(statement, context.symbols)
        statement.errors.extend(errors)
        return errors

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    def _instruction(
        self, statement: Statement, resolution: Instruction, errors: List[ParseError]
    ) -> None:
        info = resolution.info
        try:
            operands = self.analyzer.parse_operands(statement.operands_text)
        except OperandSyntaxError as exc:
            logger.debug("Line %d: %s", statement.line_number, exc)
            errors.append(self._diagnostic(statement, str(exc), severity="warning"))
            statement.instruction = InstructionInfo(mnemonic=info.mnemonic, format=info.format)
            return

        statement.instruction = InstructionInfo(
            mnemonic=info.mnemonic, format=info.format, operands=operands
        )
        message = self.analyzer.check_arity(info, statement.operands_text, operands)
        if message:
            errors.append(self._diagnostic(statement, message, severity="warning"))

    def _macro_call(
        self, statement: Statement, resolution: MacroCall, errors: List[ParseError]
    ) -> None:
        macro = resolution.macro
        statement.is_macro_call = True
        statement.macro_name = macro.name
        try:
            statement.macro_expansion = self.expander.expand(macro, statement)
        except OperandSyntaxError as exc:
            errors.append(self._diagnostic(statement, str(exc), severity="warning"))
            return
        logger.debug(
            "Line %d: %s expanded to %d lines",
            statement.line_number,
            macro.name,
            len(statement.macro_expansion),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _mark_opcode(statement: Statement) -> None:
        """Re-tag the operation token as an opcode."""
        for token in statement.tokens:
            if token.kind in ("label", "whitespace"):
                continue
            if token.text.upper() == (statement.opcode or "").upper():
                token.kind = "opcode"
            return

    @staticmethod
    def _opcode_column(statement: Statement) -> int:
        for token in statement.tokens:
            if token.kind not in ("label", "whitespace"):
                return token.column_start
        return 0

    @staticmethod
    def _diagnostic(
        statement: Statement,
        message: str,
        severity: str = "error",
        column: int = 0,
    ) -> ParseError:
        return ParseError(
            line_number=statement.line_number,
            column=column,
            message=message,
            severity=severity,
            excerpt=excerpt_of(statement.logical_text or statement.raw_text),
            source_file=statement.source_file,
        )
