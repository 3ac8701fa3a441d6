"""
LineParser
==========

Decodes one physical source record into a :class:`~zasm_parser.models.Statement`.

Record layout (see :mod:`zasm_parser.passes.columns`):

+-------------+-------------------------------------------------------------+
| Columns     | Meaning                                                     |
+=============+=============================================================+
| 1           | ``*`` (or ``.*``) makes the whole line a comment            |
+-------------+-------------------------------------------------------------+
| 1–8         | Label.  Scanned up to the next blank, so longer labels      |
|             | (``RESTOREREGS``) are kept whole.                           |
+-------------+-------------------------------------------------------------+
| 10–71       | Opcode, operands and remarks                                |
+-------------+-------------------------------------------------------------+
| 72          | Continuation flag, emitted as a delimiter token             |
+-------------+-------------------------------------------------------------+
| 73+         | Sequence field, emitted as a comment token                  |
+-------------+-------------------------------------------------------------+

Field splitting rules:

* The operand field starts at the first non-blank after the opcode and ends
  at a run of two or more blanks, or at a single blank followed by a bare
  ``*``.  Blanks, commas and asterisks inside quotes or parentheses never end
  it, so ``*+4`` and ``*,12`` stay operands.
* An opcode followed by ten or more blanks has no operands; the text after
  the gap is a remark.
* Whatever follows the operand field is the remark (``comment``).

Concatenating the returned tokens in order reproduces the physical line.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..errors import LineSyntaxError
from ..models import Statement, Token
from ..passes.columns import CONTINUATION_COLUMN, SEQUENCE_START, is_comment_record
from .tokenizer import QUOTES, LexState, Tokenizer, _word_before, opens_string

_REMARK_GAP = 10   # blanks after an operand-less opcode that start a remark


@dataclass
class _Fields:
    """Field values and their spans inside the decoded text."""

    label: Optional[str] = None
    label_span: Optional[tuple] = None
    opcode: Optional[str] = None
    instruction_span: Optional[tuple] = None
    operands: Optional[str] = None
    comment: Optional[str] = None
    comment_span: Optional[tuple] = None


class LineParser:
    """
    Stateless single-record decoder.

    Parameters
    ----------
    tokenizer:
        Tokenizer used for the instruction part.  Defaults to
        :class:`~zasm_parser.parser.tokenizer.Tokenizer`.
    """

    def __init__(self, tokenizer: Optional[Tokenizer] = None) -> None:
        self._tokenizer = tokenizer or Tokenizer()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def parse(
        self,
        line: str,
        line_number: int,
        is_continuation_fragment: bool = False,
    ) -> Statement:
        """
        Decode one physical *line*.

        Parameters
        ----------
        line:
            The source record, newline already stripped.
        line_number:
            Number recorded on the statement.
        is_continuation_fragment:
            Parse the record as a continuation member: no label, no opcode,
            columns 1–71 are operand text.

        Raises
        ------
        LineSyntaxError
            The record contains a control character other than a tab.
        """
        raw = line.rstrip("\r\n")
        self._check_characters(raw)

        if not raw.strip():
            tokens = [Token("whitespace", raw, 0, len(raw))] if raw else []
            return Statement(line_number=line_number, raw_text=raw, tokens=tokens)

        if not is_continuation_fragment and is_comment_record(raw):
            return Statement(
                line_number=line_number,
                raw_text=raw,
                comment=raw.strip(),
                tokens=[Token("comment", raw, 0, len(raw))],
            )

        body = raw[:CONTINUATION_COLUMN]
        fields = self._split_fields(body, fragment=is_continuation_fragment)
        tokens = self._build_tokens(body, fields)
        tokens.extend(self._tail_tokens(raw))

        return Statement(
            line_number=line_number,
            raw_text=raw,
            label=fields.label,
            opcode=fields.opcode,
            operands_text=fields.operands,
            comment=fields.comment,
            tokens=_merge_whitespace(tokens),
        )

    def parse_logical(self, text: str, line_number: int) -> Statement:
        """
        Decode a merged continuation text without applying the column-72
        limit.  The returned statement carries fields only, no tokens.
        """
        self._check_characters(text)
        fields = self._split_fields(text, fragment=False)
        return Statement(
            line_number=line_number,
            raw_text=text,
            label=fields.label,
            opcode=fields.opcode,
            operands_text=fields.operands,
            comment=fields.comment,
        )

    # ------------------------------------------------------------------
    # Field splitting
    # ------------------------------------------------------------------

    def _split_fields(self, text: str, fragment: bool) -> _Fields:
        fields = _Fields()
        n = len(text)
        pos = 0

        if not fragment and n and not text[0].isspace():
            end = _skip_word(text, 0)
            fields.label = text[:end]
            fields.label_span = (0, end)
            pos = end

        pos = _skip_blanks(text, pos)
        if pos >= n:
            return fields

        if fragment:
            operand_start = pos
            instr_start = pos
        else:
            instr_start = pos
            opcode_end = _skip_word(text, pos)
            fields.opcode = text[pos:opcode_end]
            operand_start = _skip_blanks(text, opcode_end)
            if operand_start >= n:
                fields.instruction_span = (instr_start, opcode_end)
                return fields
            if operand_start - opcode_end >= _REMARK_GAP:
                fields.instruction_span = (instr_start, opcode_end)
                self._set_comment(fields, text, operand_start)
                return fields

        operand_end = self._find_operands_end(text, operand_start)
        fields.operands = text[operand_start:operand_end]
        fields.instruction_span = (instr_start, operand_end)

        remark_start = _skip_blanks(text, operand_end)
        if remark_start < n:
            self._set_comment(fields, text, remark_start)
        return fields

    @staticmethod
    def _set_comment(fields: _Fields, text: str, start: int) -> None:
        end = len(text.rstrip())
        fields.comment = text[start:end]
        fields.comment_span = (start, end)

    @staticmethod
    def _find_operands_end(text: str, start: int) -> int:
        """
        Return the index where the operand field starting at *start* ends:
        the first blank (outside quotes and parentheses) that begins a run of
        two or more blanks, is followed by a bare ``*``, or ends the text.
        """
        state = LexState.NORMAL
        quote: Optional[str] = None
        depth = 0
        n = len(text)
        i = start

        while i < n:
            ch = text[i]
            if state is LexState.IN_STRING:
                if ch == quote:
                    if i + 1 < n and text[i + 1] == quote:
                        i += 2
                        continue
                    state = LexState.NORMAL
                i += 1
                continue

            if ch in QUOTES and opens_string(_word_before(text, i)):
                state = LexState.IN_STRING
                quote = ch
            elif ch == "(":
                depth += 1
            elif ch == ")":
                depth = max(depth - 1, 0)
            elif ch.isspace() and depth == 0:
                run_end = _skip_blanks(text, i)
                if run_end >= n or run_end - i >= 2:
                    return i
                after = text[run_end]
                if after == "*" and (run_end + 1 >= n or text[run_end + 1].isspace()):
                    return i
                i = run_end
                continue
            i += 1

        return len(text.rstrip())

    # ------------------------------------------------------------------
    # Token construction
    # ------------------------------------------------------------------

    def _build_tokens(self, body: str, fields: _Fields) -> List[Token]:
        tokens: List[Token] = []
        pos = 0

        if fields.label_span:
            start, end = fields.label_span
            tokens.append(Token("label", body[start:end], start, end))
            pos = end

        if fields.instruction_span:
            start, end = fields.instruction_span
            _append_blank(tokens, body, pos, start)
            tokens.extend(self._tokenizer.tokenize(body[start:end], start))
            pos = end

        if fields.comment_span:
            start, end = fields.comment_span
            _append_blank(tokens, body, pos, start)
            tokens.append(Token("comment", body[start:end], start, end))
            pos = end

        _append_blank(tokens, body, pos, len(body))
        return tokens

    @staticmethod
    def _tail_tokens(raw: str) -> List[Token]:
        """Tokens for column 72 and the sequence field."""
        tokens: List[Token] = []
        if len(raw) <= CONTINUATION_COLUMN:
            return tokens

        flag = raw[CONTINUATION_COLUMN]
        kind = "whitespace" if flag.isspace() else "delimiter"
        tokens.append(Token(kind, flag, CONTINUATION_COLUMN, CONTINUATION_COLUMN + 1))

        rest = raw[SEQUENCE_START:]
        if not rest:
            return tokens
        lead = len(rest) - len(rest.lstrip())
        if lead:
            tokens.append(
                Token("whitespace", rest[:lead], SEQUENCE_START, SEQUENCE_START + lead)
            )
        if lead < len(rest):
            tokens.append(
                Token("comment", rest[lead:], SEQUENCE_START + lead, len(raw))
            )
        return tokens

    @staticmethod
    def _check_characters(text: str) -> None:
        for i, ch in enumerate(text):
            code = ord(ch)
            if (code < 32 and ch != "\t") or code == 127:
                raise LineSyntaxError(
                    f"Control character 0x{code:02X} at column {i + 1}", column=i
                )


# ---------------------------------------------------------------------------
# Scanning helpers
# ---------------------------------------------------------------------------


def _skip_blanks(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _skip_word(text: str, pos: int) -> int:
    while pos < len(text) and not text[pos].isspace():
        pos += 1
    return pos


def _append_blank(tokens: List[Token], text: str, start: int, end: int) -> None:
    if end > start:
        tokens.append(Token("whitespace", text[start:end], start, end))


def _merge_whitespace(tokens: List[Token]) -> List[Token]:
    merged: List[Token] = []
    for tok in tokens:
        if (
            merged
            and tok.kind == "whitespace"
            and merged[-1].kind == "whitespace"
            and merged[-1].column_end == tok.column_start
        ):
            prev = merged[-1]
            merged[-1] = Token(
                "whitespace", prev.text + tok.text, prev.column_start, tok.column_end
            )
        else:
            merged.append(tok)
    return merged
