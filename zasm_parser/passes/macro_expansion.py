"""
Macro definitions and expansion
===============================

Capture
-------
:class:`MacroCollector` is a two-state machine fed one statement at a time::

    OUTSIDE --MACRO--> COLLECTING --ENDM/MEND--> OUTSIDE (definition committed)

Two header forms are accepted:

* One-line form – ``MYMAC    MACRO &A,&B``.  The name is the first
  whitespace-delimited token of the record (longer than eight characters is
  fine) and the formals follow ``MACRO``.
* Prototype form – an unlabelled ``MACRO`` followed by a prototype record
  ``[&LBL]  NAME  [&P1,&P2,...]``.  ``&LBL`` becomes the label parameter,
  replaced by the label written on the invocation.

Formals written ``&KEY=default`` carry a default value.  Nested ``MACRO``
records inside a body are kept as body text; the first ``ENDM``/``MEND``
closes the definition.

Expansion
---------
:class:`MacroExpander` is the interface, :class:`TextMacroExpander` the
implementation: every ``&PARAM`` (word boundary, case-insensitive) in every
body line is replaced by its actual.  All parameters are substituted in a
single pass, so text coming from an actual is never rescanned.  Missing
actuals are blank (or the formal's default); extra actuals are ignored.
The result is informational and never re-enters the statement stream.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections import deque
from enum import Enum, auto
from typing import Deque, Dict, List, Optional, Tuple

from ..errors import LineSyntaxError, OperandSyntaxError
from ..models import MacroDefinition, MacroTable, SourceLine, Statement
from ..parser.operand_analyzer import split_operands
from .line_continuation import ContinuationJoiner

logger = logging.getLogger(__name__)

MACRO_START = "MACRO"
MACRO_END = frozenset({"ENDM", "MEND"})

_KEYWORD_ACTUAL_RE = re.compile(r"^([A-Z@#$_][A-Z0-9@#$_]*)=(.*)$", re.IGNORECASE | re.DOTALL)


def directive_of(statement: Statement) -> Optional[str]:
    """
    Upper-cased operation of *statement*.

    ``MACRO``, ``ENDM`` and ``MEND`` written in column 1 decode as a label
    with no opcode; they are still reported as the operation.
    """
    if statement.opcode:
        return statement.opcode.upper()
    if statement.label:
        word = statement.label.upper()
        if word == MACRO_START or word in MACRO_END:
            return word
    return None


def parse_formals(text: Optional[str]) -> Tuple[List[str], Dict[str, str]]:
    """
    Split a formal parameter list into names (``&`` stripped) and defaults.

    >>> parse_formals("&A,&B,&KEY=YES")
    (['A', 'B', 'KEY'], {'KEY': 'YES'})
    """
    if not text or not text.strip():
        return [], {}
    try:
        parts = split_operands(text)
    except OperandSyntaxError as exc:
        logger.warning("Malformed macro formals %r: %s", text, exc)
        parts = [p.strip() for p in text.split(",")]

    names: List[str] = []
    defaults: Dict[str, str] = {}
    for part in parts:
        name, eq, default = part.partition("=")
        name = name.strip().lstrip("&")
        if not name:
            continue
        names.append(name)
        if eq:
            defaults[name] = default.strip()
    return names, defaults


class CollectorState(Enum):
    OUTSIDE = auto()
    COLLECTING = auto()


class MacroCollector:
    """Accumulates the records of one macro definition at a time."""

    def __init__(self) -> None:
        self.state = CollectorState.OUTSIDE
        self._reset()

    def _reset(self) -> None:
        self.name: Optional[str] = None
        self.start_line: Optional[int] = None
        self.source_file: Optional[str] = None
        self.statements: List[Statement] = []
        self._parameters: List[str] = []
        self._defaults: Dict[str, str] = {}
        self._label_parameter: Optional[str] = None
        self._body: List[Statement] = []
        self._awaiting_prototype = False
        self._header_lines: List[int] = []

    @property
    def collecting(self) -> bool:
        return self.state is CollectorState.COLLECTING

    # ------------------------------------------------------------------
    # Feeding
    # ------------------------------------------------------------------

    def feed(self, statement: Statement) -> Optional[MacroDefinition]:
        """
        Consume one statement.

        Returns the committed :class:`MacroDefinition` when *statement*
        closes a definition, otherwise ``None``.  Only call this while
        :attr:`collecting` or for a ``MACRO`` record.
        """
        directive = directive_of(statement)

        if not self.collecting:
            if directive != MACRO_START:
                raise ValueError(f"Not a MACRO statement: {statement!r}")
            self._begin(statement)
            return None

        self.statements.append(statement)

        if directive in MACRO_END and not statement.is_continuation:
            return self._commit()

        if statement.is_continuation and statement.continuation_of in self._header_lines:
            return None

        if self._awaiting_prototype:
            if statement.is_comment or statement.is_blank:
                self._body.append(statement)
                return None
            self._prototype(statement)
            return None

        self._body.append(statement)
        return None

    def _begin(self, statement: Statement) -> None:
        self.state = CollectorState.COLLECTING
        self.start_line = statement.line_number
        self.source_file = statement.source_file
        self.statements = [statement]
        self._header_lines = [statement.line_number]

        if statement.opcode and statement.label:
            self.name = statement.raw_text.split()[0]
            self._parameters, self._defaults = parse_formals(statement.operands_text)
            logger.debug("Macro %s started at line %d", self.name, self.start_line)
        else:
            self._awaiting_prototype = True

    def _prototype(self, statement: Statement) -> None:
        self._awaiting_prototype = False
        self._header_lines.append(statement.line_number)
        if statement.opcode:
            self.name = statement.opcode
            if statement.label and statement.label.startswith("&"):
                self._label_parameter = statement.label[1:]
        else:
            self.name = statement.label
        self._parameters, self._defaults = parse_formals(statement.operands_text)
        logger.debug("Macro %s prototype at line %d", self.name, statement.line_number)

    def _commit(self) -> MacroDefinition:
        definition = MacroDefinition(
            name=self.name or "",
            parameters=self._parameters,
            body_statements=self._body,
            body_lines=[s.raw_text for s in self._body],
            defined_at=self.start_line or 0,
            source_file=self.source_file,
            defaults=self._defaults,
            label_parameter=self._label_parameter,
        )
        for stmt in self.statements:
            stmt.macro_definition = definition.name or None
        logger.debug(
            "Macro %s captured: %d params, %d body lines",
            definition.name,
            len(definition.parameters),
            len(definition.body_lines),
        )
        self.state = CollectorState.OUTSIDE
        self._reset()
        return definition

    def abandon(self) -> Optional[int]:
        """
        Drop an unterminated definition and return the line of its
        ``MACRO`` record, or ``None`` if nothing was open.
        """
        if not self.collecting:
            return None
        start = self.start_line
        for stmt in self.statements:
            stmt.macro_definition = self.name
        self.state = CollectorState.OUTSIDE
        self._reset()
        return start


# ---------------------------------------------------------------------------
# Library preload
# ---------------------------------------------------------------------------


def load_library_macros(
    catalog,
    table: MacroTable,
    joiner: Optional[ContinuationJoiner] = None,
) -> int:
    """
    Scan every member of *catalog* and register its macro definitions in
    *table* as library macros.  Returns the number registered.
    """
    joiner = joiner or ContinuationJoiner()
    count = 0
    for source in catalog.list():
        pending: Deque[object] = deque(
            SourceLine(text, number, source.name, number)
            for number, text in enumerate(source.lines, start=1)
        )
        collector = MacroCollector()
        while pending:
            group = joiner.collect(pending.popleft(), pending)
            try:
                statements = joiner.join(group)
            except LineSyntaxError as exc:
                logger.debug("Skipping undecodable record in %s: %s", source.name, exc)
                continue
            for stmt in statements:
                if not collector.collecting and directive_of(stmt) != MACRO_START:
                    continue
                definition = collector.feed(stmt)
                if definition is not None and definition.name:
                    definition.library = True
                    table.define(definition)
                    count += 1
        if collector.collecting:
            logger.warning(
                "Unterminated macro in library member %s at line %s",
                source.name,
                collector.abandon(),
            )
    if count:
        logger.info("Preloaded %d library macro%s", count, "" if count == 1 else "s")
    return count


# ---------------------------------------------------------------------------
# Expansion
# ---------------------------------------------------------------------------


class MacroExpander(ABC):
    """Produces the expansion text of a macro invocation."""

    @abstractmethod
    def expand(self, macro: MacroDefinition, call: Statement) -> List[str]:
        raise NotImplementedError


class TextMacroExpander(MacroExpander):
    """Textual ``&PARAM`` substitution over the captured body lines."""

    def expand(self, macro: MacroDefinition, call: Statement) -> List[str]:
        """
        Expand *call* against *macro*.

        Raises
        ------
        OperandSyntaxError
            The invocation's operand field cannot be split.
        """
        values = self.bind(macro, call)
        if not values:
            return list(macro.body_lines)

        names = sorted(values, key=len, reverse=True)
        pattern = re.compile(
            r"&(" + "|".join(re.escape(n) for n in names) + r")\b", re.IGNORECASE
        )

        def substitute(match: "re.Match[str]") -> str:
            return values[match.group(1).upper()]

        return [pattern.sub(substitute, line) for line in macro.body_lines]

    @staticmethod
    def bind(macro: MacroDefinition, call: Statement) -> Dict[str, str]:
        """Map upper-cased formal names to actual values."""
        actuals = split_operands(call.operands_text or "", keep_empty=True)

        keywords: Dict[str, str] = {}
        positional: List[str] = []
        keyword_formals = {k.upper() for k in macro.defaults}
        for actual in actuals:
            m = _KEYWORD_ACTUAL_RE.match(actual)
            if m and m.group(1).upper() in keyword_formals:
                keywords[m.group(1).upper()] = m.group(2)
            else:
                positional.append(actual)

        values: Dict[str, str] = {}
        for index, name in enumerate(macro.parameters):
            key = name.upper()
            actual = positional[index] if index < len(positional) else ""
            if key in keywords:
                actual = keywords[key]
            elif not actual:
                actual = macro.defaults.get(name, "")
            values[key] = actual

        if macro.label_parameter:
            values[macro.label_parameter.upper()] = call.label or ""
        return values
