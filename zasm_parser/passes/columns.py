"""
Fixed-column record layout
==========================

IBM mainframe assembler source uses an 80-column record:

  - Columns  1–8  : Name (label) field
  - Column   9    : (blank separator)
  - Columns 10–71 : Operation, operand and remarks fields
  - Column  72    : Continuation flag (any non-blank character)
  - Columns 73–80 : Sequence number / continuation payload

Everything in this package works with **0-indexed** columns, so the
continuation flag lives at index 71 and the instruction zone is
``line[:71]``.
"""
from __future__ import annotations

from typing import List, Optional

CONTINUATION_COLUMN: int = 71  # index of the column-72 flag
SEQUENCE_START: int = 72       # columns 73+


def has_continuation_flag(line: Optional[str]) -> bool:
    """True when column 72 of *line* holds a non-blank character."""
    if not line or len(line) <= CONTINUATION_COLUMN:
        return False
    return not line[CONTINUATION_COLUMN].isspace()


def statement_zone(line: str) -> str:
    """Columns 1–71: everything the assembler reads as the statement."""
    return line[:CONTINUATION_COLUMN]


def is_comment_record(line: str) -> bool:
    """
    True for a whole-line comment: ``*`` as the first non-blank character,
    or the ``.*`` macro-body comment form.
    """
    stripped = line.lstrip()
    return stripped.startswith("*") or stripped.startswith(".*")


def split_records(text: str) -> List[str]:
    """
    Split source text into physical records.

    Only ``\\n`` ends a record (a trailing ``\\r`` is dropped), so other
    control characters stay inside their record and are reported there.

    >>> split_records("A\\r\\nB\\x0cC\\n")
    ['A', 'B\\x0cC']
    """
    records = text.split("\n")
    if records and records[-1] == "":
        records.pop()
    return [r.rstrip("\r") for r in records]
