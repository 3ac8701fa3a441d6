"""
AssemblyParser
==============

Orchestrates the parsing components and returns a
:class:`~zasm_parser.models.ParseResult`.

Records flow through a pending queue.  Each record taken from the queue is
first grouped with its continuation members
(:class:`~zasm_parser.passes.line_continuation.ContinuationJoiner`), then
dispatched on the parser state:

+--------------------------+------------------+----------------------------+
| State                    | Statement        | Action                     |
+==========================+==================+============================+
| NORMAL                   | MACRO            | start capture              |
+--------------------------+------------------+----------------------------+
| IN_MACRO_DEFINITION      | ENDM / MEND      | commit definition          |
+--------------------------+------------------+----------------------------+
| IN_MACRO_DEFINITION      | anything else    | macro body                 |
+--------------------------+------------------+----------------------------+
| NORMAL                   | COPY             | splice member into queue   |
+--------------------------+------------------+----------------------------+
| NORMAL                   | ENDM / MEND      | error, statement emitted   |
+--------------------------+------------------+----------------------------+
| NORMAL                   | anything else    | enrich and emit            |
+--------------------------+------------------+----------------------------+

Records of a macro definition are emitted for display, tagged with
``macro_definition`` and never enriched.  COPY members are spliced in front
of the remaining records with line numbers allocated after the last record
of the primary source; an end marker after the member releases it from the
resolver's in-flight stack.
"""
from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional, Union

from ..errors import LineSyntaxError, StatementLimitExceeded
from ..models import (
    ParseContext,
    ParseError,
    ParseResult,
    SourceLine,
    Statement,
    excerpt_of,
)
from ..parser.line_parser import LineParser
from ..parser.operand_analyzer import OperandAnalyzer
from ..passes.columns import split_records
from ..passes.copy_resolver import DEFAULT_MAX_DEPTH, CopyResolver
from ..passes.line_continuation import ContinuationJoiner
from ..passes.macro_expansion import (
    MACRO_END,
    MACRO_START,
    MacroCollector,
    MacroExpander,
    directive_of,
    load_library_macros,
)
from .enrichment import StatementEnricher
from .file_catalog import FileCatalogLike
from .opcodes import OpcodeCatalog

logger = logging.getLogger(__name__)

DEFAULT_MAX_STATEMENTS = 100_000


class _EndOfCopy:
    """Queue marker placed after the records of a COPY member."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"_EndOfCopy({self.name!r})"


_Pending = Deque[Union[SourceLine, _EndOfCopy]]


class AssemblyParser:
    """
    Parameters
    ----------
    catalog:
        Member catalog for ``COPY`` resolution and library macros.
    opcodes:
        Opcode catalog.  Defaults to the built-in table.
    max_statements:
        Ceiling on emitted statements; reaching it ends the parse with an
        error diagnostic.
    max_copy_depth:
        Maximum COPY nesting.
    preload_macros:
        Register every macro defined in *catalog* before parsing.
    expander:
        Macro expander used for invocations.
    """

    def __init__(
        self,
        catalog: Optional[FileCatalogLike] = None,
        opcodes: Optional[OpcodeCatalog] = None,
        max_statements: int = DEFAULT_MAX_STATEMENTS,
        max_copy_depth: int = DEFAULT_MAX_DEPTH,
        preload_macros: bool = True,
        expander: Optional[MacroExpander] = None,
    ) -> None:
        self.catalog = catalog
        self.opcodes = opcodes or OpcodeCatalog()
        self.max_statements = max_statements
        self.max_copy_depth = max_copy_depth
        self.preload_macros = preload_macros
        self.line_parser = LineParser()
        self.joiner = ContinuationJoiner(self.line_parser)
        self.enricher = StatementEnricher(
            catalog=self.opcodes,
            analyzer=OperandAnalyzer(),
            expander=expander,
        )

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def parse(self, source: str, context: Optional[ParseContext] = None) -> ParseResult:
        """
        Parse assembler *source* text.

        Parameters
        ----------
        source:
            Complete source text; records are separated by newlines.
        context:
            Symbol and macro tables to fill.  A fresh one is created when
            omitted, so consecutive calls never share state.

        Returns
        -------
        ParseResult
        """
        context = context if context is not None else ParseContext()
        if self.preload_macros and self.catalog is not None:
            load_library_macros(self.catalog, context.macros, self.joiner)

        run = _ParseRun(self, context)
        run.execute(split_records(source))

        logger.info(
            "Parsed %d statements: %d errors, %d warnings, %d symbols, %d macros",
            len(run.statements),
            sum(1 for e in run.errors if e.severity == "error"),
            sum(1 for e in run.errors if e.severity == "warning"),
            len(context.symbols),
            len(context.macros),
        )
        return ParseResult(
            statements=run.statements,
            errors=run.errors,
            symbols=context.symbols,
            context=context,
        )

    def parse_file(self, file_path: str, context: Optional[ParseContext] = None) -> ParseResult:
        """Read *file_path* and parse its contents."""
        logger.info("Parsing file: %s", file_path)
        text = Path(file_path).read_text(encoding="utf-8", errors="replace")
        return self.parse(text, context)


def parse(
    source: str,
    catalog: Optional[FileCatalogLike] = None,
    **options,
) -> ParseResult:
    """Parse *source* with a one-off :class:`AssemblyParser`."""
    context = options.pop("context", None)
    return AssemblyParser(catalog=catalog, **options).parse(source, context)


# ---------------------------------------------------------------------------
# Per-call state
# ---------------------------------------------------------------------------


class _ParseRun:
    """Mutable state of one :meth:`AssemblyParser.parse` call."""

    def __init__(self, parser: AssemblyParser, context: ParseContext) -> None:
        self.parser = parser
        self.context = context
        self.statements: List[Statement] = []
        self.errors: List[ParseError] = []
        self.collector = MacroCollector()
        self.copies = CopyResolver(max_depth=parser.max_copy_depth)
        self._next_line = 1

    def execute(self, records: List[str]) -> None:
        pending: _Pending = deque(
            SourceLine(text, number) for number, text in enumerate(records, start=1)
        )
        self._next_line = len(records) + 1
        logger.info("Parsing %d source records", len(records))

        try:
            while pending:
                entry = pending.popleft()
                if isinstance(entry, _EndOfCopy):
                    self.copies.release()
                    continue
                group = self.parser.joiner.collect(entry, pending)
                self._dispatch(group, pending)
        except StatementLimitExceeded as exc:
            logger.error("%s", exc)
            if self.statements:
                error = self._diagnostic(self.statements[-1], str(exc))
            else:
                error = ParseError(0, 0, str(exc), severity="error")
            self.errors.append(error)
            return

        start = self.collector.abandon()
        if start is not None:
            header = self._statement_at(start)
            error = ParseError(
                start,
                0,
                "Unterminated macro definition: MACRO without ENDM",
                severity="error",
                excerpt=excerpt_of(header.raw_text) if header else "",
                source_file=header.source_file if header else None,
            )
            if header is not None:
                header.errors.append(error)
            self.errors.append(error)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, group: List[SourceLine], pending: _Pending) -> None:
        try:
            statements = self.parser.joiner.join(group)
        except LineSyntaxError as exc:
            self._malformed(group, exc)
            return

        primary = statements[0]
        directive = directive_of(primary)

        if self.collector.collecting or directive == MACRO_START:
            self._emit(statements)
            for stmt in statements:
                definition = self.collector.feed(stmt)
                if definition is not None:
                    self._define(definition, primary)
            return

        if directive in MACRO_END:
            error = self._diagnostic(primary, f"{directive} without matching MACRO")
            primary.errors.append(error)
            self.errors.append(error)
            self._emit(statements)
            return

        if directive == "COPY":
            self._copy(primary, pending)
            return

        self.errors.extend(self.parser.enricher.enrich(primary, self.context))
        self._emit(statements)

    def _define(self, definition, closing: Statement) -> None:
        if not definition.name:
            error = self._diagnostic(closing, "Macro definition without a name")
            self.errors.append(error)
            return
        accepted = self.context.macros.define(definition, in_copy=self.copies.depth > 0)
        if accepted:
            logger.debug("Macro %s defined at line %d", definition.name, definition.defined_at)
        else:
            logger.debug("Library macro %s kept over COPY definition", definition.name)

    def _copy(self, statement: Statement, pending: _Pending) -> None:
        result = self.copies.resolve(
            statement, statement.line_number, self.parser.catalog
        )
        if result.error is not None:
            self.errors.append(result.error)
            return

        name = result.file_name or ""
        spliced = [
            SourceLine(text, self._next_line + offset, name, offset + 1)
            for offset, text in enumerate(result.lines)
        ]
        self._next_line += len(spliced)
        pending.appendleft(_EndOfCopy(name))
        pending.extendleft(reversed(spliced))

    def _malformed(self, group: List[SourceLine], exc: LineSyntaxError) -> None:
        for line in group:
            stmt = Statement(
                line_number=line.line_number,
                raw_text=line.text,
                source_file=line.source_file,
                source_line=line.source_line,
            )
            error = ParseError(
                line.line_number,
                exc.column,
                f"Malformed line: {exc}",
                severity="error",
                excerpt=excerpt_of(line.text),
                source_file=line.source_file,
            )
            stmt.errors.append(error)
            self.errors.append(error)
            self._emit([stmt])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _emit(self, statements: List[Statement]) -> None:
        for stmt in statements:
            if len(self.statements) >= self.parser.max_statements:
                raise StatementLimitExceeded(self.parser.max_statements)
            self.statements.append(stmt)

    def _statement_at(self, line_number: int) -> Optional[Statement]:
        for stmt in self.statements:
            if stmt.line_number == line_number:
                return stmt
        return None

    @staticmethod
    def _diagnostic(statement: Statement, message: str) -> ParseError:
        return ParseError(
            line_number=statement.line_number,
            column=0,
            message=message,
            severity="error",
            excerpt=excerpt_of(statement.logical_text or statement.raw_text),
            source_file=statement.source_file,
        )
