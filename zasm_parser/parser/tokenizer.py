"""
Tokenizer
=========

Splits the instruction part of a statement (opcode + operands) into
:class:`~zasm_parser.models.Token` objects with exact column spans.

One scan loop is driven by a two-state lexer:

+-------------+--------------------------------------------------------------+
| State       | Behaviour                                                    |
+=============+==============================================================+
| NORMAL      | Whitespace runs, delimiters ``, ( )`` and operators          |
|             | ``+ - * / =`` end the pending word.                          |
+-------------+--------------------------------------------------------------+
| IN_STRING   | Everything up to the matching quote belongs to the token.    |
|             | A doubled quote (``''``) stays inside the string.            |
+-------------+--------------------------------------------------------------+

A quote only opens a string when the pending word is empty or a constant
type designator (``C``, ``X``, ``CL8``, ``3F``, ``=F`` …).  One-letter
attribute references such as ``L'FIELD`` stay inside the symbol.

Quoted tokens are classified on close: ``=…`` is a LITERAL, ``X'…'``,
``B'…'`` and numeric ``F/H/P/Z'…'`` are NUMBERs (with their value), and
anything else is a STRING.  A quote that is never closed degrades to one
STRING token spanning the remainder of the text.
"""
from __future__ import annotations

import re
from enum import Enum, auto
from typing import List, Optional, Union

from ..models import Token

QUOTES = ("'", '"')
DELIMITERS = ",()"
OPERATORS = "+-*/="

# One-letter attribute references: L'X, T'X, K'&P, N'&P, I'X, O'X
ATTRIBUTE_LETTERS = frozenset("LTKNIO")

_TYPE_DESIGNATOR_RE = re.compile(
    r"^\d*(?:C[AEU]?|X|B|P|Z|FD?|H|[DEL][DHB]?|G)(?:L\d+)?$", re.IGNORECASE
)
_LITERAL_HEAD_RE = re.compile(r"\d*[A-Z]{1,2}(?:L\d+)?['(]", re.IGNORECASE)

_REGISTER_RE = re.compile(r"^G?R\d+$", re.IGNORECASE)
_DECIMAL_RE = re.compile(r"^\d+$")
_HEX_SUFFIX_RE = re.compile(r"^\d[0-9A-F]*H$", re.IGNORECASE)

_QUOTED_HEX_RE = re.compile(r"^\d*X(?:L\d+)?'([0-9A-F]+)'$", re.IGNORECASE)
_QUOTED_BIN_RE = re.compile(r"^\d*B(?:L\d+)?'([01]+)'$", re.IGNORECASE)
_QUOTED_DEC_RE = re.compile(r"^\d*[FHPZ](?:L\d+)?'([+-]?\d+)'$", re.IGNORECASE)


class LexState(Enum):
    NORMAL = auto()
    IN_STRING = auto()


def opens_string(prefix: str) -> bool:
    """
    Return True when a quote following *prefix* starts a quoted constant.

    *prefix* is the pending word immediately before the quote, for example
    ``""``, ``"C"``, ``"CL8"``, ``"=F"`` or ``"L"``.
    """
    if not prefix:
        return True
    if prefix.startswith("="):
        return bool(_TYPE_DESIGNATOR_RE.match(prefix[1:])) or len(prefix) == 1
    if len(prefix) == 1 and prefix.upper() in ATTRIBUTE_LETTERS:
        return False
    return bool(_TYPE_DESIGNATOR_RE.match(prefix))


def starts_literal(text: str, pos: int) -> bool:
    """True when ``text[pos:]`` looks like the body of an ``=`` literal."""
    return _LITERAL_HEAD_RE.match(text, pos) is not None


def matching_paren(text: str, open_pos: int) -> int:
    """Index of the parenthesis closing ``text[open_pos]``, or -1."""
    depth = 0
    state = LexState.NORMAL
    quote: Optional[str] = None
    for i in range(open_pos, len(text)):
        ch = text[i]
        if state is LexState.IN_STRING:
            if ch == quote:
                state = LexState.NORMAL
            continue
        if ch in QUOTES and i > open_pos and opens_string(_word_before(text, i)):
            state = LexState.IN_STRING
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _word_before(text: str, pos: int) -> str:
    """The run of word characters (and a leading ``=``) ending at *pos*."""
    i = pos
    while i > 0 and not text[i - 1].isspace() and text[i - 1] not in ",()+-*/'\"":
        i -= 1
    return text[i:pos]


def parse_number(text: str) -> Optional[int]:
    """Numeric value of a NUMBER token's text, or None."""
    if _DECIMAL_RE.match(text):
        return int(text, 10)
    if _HEX_SUFFIX_RE.match(text):
        return int(text[:-1], 16)
    m = _QUOTED_HEX_RE.match(text)
    if m:
        return int(m.group(1), 16)
    m = _QUOTED_BIN_RE.match(text)
    if m:
        return int(m.group(1), 2)
    m = _QUOTED_DEC_RE.match(text)
    if m:
        return int(m.group(1), 10)
    return None


class Tokenizer:
    """Stateless tokenizer for the instruction part of a statement."""

    def tokenize(self, text: str, column_offset: int = 0) -> List[Token]:
        """
        Tokenize *text*, whose first character sits at 0-indexed column
        *column_offset* of the source line.
        """
        tokens: List[Token] = []
        state = LexState.NORMAL
        quote = ""
        word: List[str] = []
        start = 0
        pos = 0
        n = len(text)

        def flush(end: int) -> None:
            if word:
                tokens.append(
                    self._classify_word(
                        "".join(word), column_offset + start, column_offset + end
                    )
                )
                word.clear()

        while pos < n:
            ch = text[pos]

            if state is LexState.IN_STRING:
                word.append(ch)
                if ch == quote:
                    if pos + 1 < n and text[pos + 1] == quote:
                        word.append(quote)
                        pos += 2
                        continue
                    pos += 1
                    tokens.append(
                        self._classify_quoted(
                            "".join(word), column_offset + start, column_offset + pos
                        )
                    )
                    word.clear()
                    state = LexState.NORMAL
                    continue
                pos += 1
                continue

            if ch in QUOTES:
                if not word:
                    start = pos
                if opens_string("".join(word)):
                    state = LexState.IN_STRING
                    quote = ch
                word.append(ch)
                pos += 1
                continue

            if ch.isspace():
                flush(pos)
                ws_start = pos
                while pos < n and text[pos].isspace():
                    pos += 1
                tokens.append(
                    Token(
                        "whitespace",
                        text[ws_start:pos],
                        column_offset + ws_start,
                        column_offset + pos,
                    )
                )
                continue

            if ch == "(" and word and word[0] == "=":
                # Address-constant literal: =A(LABEL), =V(EXTERNAL)
                close = matching_paren(text, pos)
                end = close + 1 if close >= 0 else n
                literal = "".join(word) + text[pos:end]
                kind = "literal" if close >= 0 else "string"
                tokens.append(
                    Token(kind, literal, column_offset + start, column_offset + end)
                )
                word.clear()
                pos = end
                continue

            if ch == "=" and not word and starts_literal(text, pos + 1):
                start = pos
                word.append(ch)
                pos += 1
                continue

            if ch in DELIMITERS or ch in OPERATORS:
                flush(pos)
                kind = "delimiter" if ch in DELIMITERS else "operator"
                tokens.append(
                    Token(kind, ch, column_offset + pos, column_offset + pos + 1)
                )
                pos += 1
                continue

            if not word:
                start = pos
            word.append(ch)
            pos += 1

        if state is LexState.IN_STRING:
            tokens.append(
                Token("string", "".join(word), column_offset + start, column_offset + n)
            )
        else:
            flush(n)
        return tokens

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    @staticmethod
    def _classify_word(text: str, start: int, end: int) -> Token:
        if _REGISTER_RE.match(text):
            return Token("register", text, start, end)
        if _DECIMAL_RE.match(text) or _HEX_SUFFIX_RE.match(text):
            return Token("number", text, start, end, value=parse_number(text))
        if text.startswith("="):
            return Token("literal", text, start, end)
        return Token("symbol", text, start, end)

    @staticmethod
    def _classify_quoted(text: str, start: int, end: int) -> Token:
        if text.startswith("="):
            return Token("literal", text, start, end)
        value: Optional[Union[int, str]] = parse_number(text)
        if value is not None:
            return Token("number", text, start, end, value=value)
        return Token("string", text, start, end)
