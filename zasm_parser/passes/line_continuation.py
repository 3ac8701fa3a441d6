"""
ContinuationJoiner
==================

Groups physical records into continued statements.

HLASM line continuation rules:
  * A source statement that cannot fit within columns 1–71 may be continued
    on the next line.
  * The *continued* line has a non-blank continuation character in
    **column 72**.  Every record that follows a flagged record is a
    continuation member; the group ends with the first member whose own
    column 72 is blank.

Each record is classified relative to its predecessor:

+----------------------+---------------------------------------------------+
| Kind                 | Condition                                         |
+======================+===================================================+
| NORMAL               | previous not flagged, this not flagged            |
+----------------------+---------------------------------------------------+
| CONTINUATION_START   | previous not flagged, this flagged                |
+----------------------+---------------------------------------------------+
| CONTINUATION_MEMBER  | previous flagged                                  |
+----------------------+---------------------------------------------------+

A group produces one *primary* statement, whose fields come from the merged
text and whose tokens come from the first physical record, plus one
*secondary* statement per member, parsed as an operand-only fragment.
"""
from __future__ import annotations

import logging
from collections import deque
from enum import Enum, auto
from typing import Deque, List, Optional, Union

from ..models import SourceLine, Statement
from ..parser.line_parser import LineParser
from .columns import has_continuation_flag, is_comment_record, statement_zone

logger = logging.getLogger(__name__)


class LineKind(Enum):
    NORMAL = auto()
    CONTINUATION_START = auto()
    CONTINUATION_MEMBER = auto()


def classify(line: str, previous: Optional[str]) -> LineKind:
    """Classify *line* given the physical record before it."""
    if previous is not None and has_continuation_flag(previous):
        return LineKind.CONTINUATION_MEMBER
    if has_continuation_flag(line):
        return LineKind.CONTINUATION_START
    return LineKind.NORMAL


class ContinuationJoiner:
    """
    Collects continuation groups from the pending-line queue and turns them
    into statements.

    Parameters
    ----------
    line_parser:
        Decoder used for the physical records and the merged text.
    """

    def __init__(self, line_parser: Optional[LineParser] = None) -> None:
        self._parser = line_parser or LineParser()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def collect(self, first: SourceLine, pending: Deque[Union[SourceLine, object]]) -> List[SourceLine]:
        """
        Take *first* and, while the last taken record is flagged, every
        following record from the front of *pending*.

        Non-:class:`SourceLine` entries (end-of-COPY markers) stop the
        group; a group still open when the input runs out is closed as is.
        """
        group = [first]
        while (
            has_continuation_flag(group[-1].text)
            and pending
            and isinstance(pending[0], SourceLine)
        ):
            group.append(pending.popleft())
        if len(group) > 1:
            logger.debug(
                "Continuation group at line %d spans %d records",
                first.line_number,
                len(group),
            )
        return group

    def join(self, group: List[SourceLine]) -> List[Statement]:
        """
        Build the primary statement and its secondaries for *group*.

        Raises
        ------
        LineSyntaxError
            Any record of the group cannot be decoded.
        """
        first, members = group[0], group[1:]
        primary = self._parser.parse(first.text, first.line_number)
        _stamp(primary, first)
        if not members:
            # A flagged record with nothing after it is a group of one.
            if has_continuation_flag(first.text):
                primary.logical_text = statement_zone(first.text).strip()
                primary.continuation_lines = [first.line_number]
            return [primary]

        if not is_comment_record(first.text):
            merged = statement_zone(first.text).rstrip() + " " + " ".join(
                statement_zone(m.text).strip() for m in members
            )
            fields = self._parser.parse_logical(merged, first.line_number)
            primary.label = fields.label
            primary.opcode = fields.opcode
            primary.operands_text = fields.operands_text
            primary.comment = fields.comment

        primary.logical_text = " ".join(statement_zone(line.text).strip() for line in group)
        primary.continuation_lines = [line.line_number for line in group]

        statements = [primary]
        for member in members:
            secondary = self._parser.parse(
                member.text, member.line_number, is_continuation_fragment=True
            )
            secondary.is_continuation = True
            secondary.continuation_of = first.line_number
            _stamp(secondary, member)
            statements.append(secondary)
        return statements

    def run(self, lines: List[str]) -> List[Statement]:
        """Convenience wrapper: group and join a plain list of records."""
        pending: Deque[Union[SourceLine, object]] = deque(
            SourceLine(text, number) for number, text in enumerate(lines, start=1)
        )
        statements: List[Statement] = []
        while pending:
            group = self.collect(pending.popleft(), pending)
            statements.extend(self.join(group))
        return statements


def _stamp(statement: Statement, line: SourceLine) -> None:
    statement.source_file = line.source_file
    statement.source_line = line.source_line
