"""
OperandAnalyzer
===============

Splits an operand field into operands and classifies each one.

Classification is tried in priority order:

+--------------------+------------------------------------------------------+
| Kind               | Examples                                             |
+====================+======================================================+
| register           | ``R1``  ``GR15``                                     |
+--------------------+------------------------------------------------------+
| base-displacement  | ``4(R1)``  ``FIELD(R12)``  ``0(,R13)``  ``12(13)``   |
+--------------------+------------------------------------------------------+
| indexed            | ``4(R1,R2)`` (base is the first register)            |
+--------------------+------------------------------------------------------+
| immediate          | ``15``  ``-1``  ``0FH``  ``X'FF'``  ``B'1010'``      |
+--------------------+------------------------------------------------------+
| literal            | ``=F'4'``  ``=A(TABLE)``                             |
+--------------------+------------------------------------------------------+
| string             | ``C'TEXT'``  ``CL8'NAME'``                           |
+--------------------+------------------------------------------------------+
| memory             | anything else: ``LABEL``  ``*+4``  ``(R2,R3)``       |
+--------------------+------------------------------------------------------+
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional

from ..errors import OperandSyntaxError
from ..models import OpcodeInfo, Operand
from .tokenizer import QUOTES, LexState, _word_before, matching_paren, opens_string

logger = logging.getLogger(__name__)

_REG = r"G?R\d+"
_REGISTER_RE = re.compile(rf"^{_REG}$", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^-?\d+$")

_BASE_DISP_RE = re.compile(
    rf"^(?P<disp>[^(),\s]+)\(\s*(?P<comma>,)?\s*(?P<base>{_REG}|\d+)\s*\)$",
    re.IGNORECASE,
)
_INDEXED_RE = re.compile(
    rf"^(?P<disp>[^(),\s]+)\(\s*(?P<first>{_REG}|\d+)\s*,\s*(?P<second>{_REG}|\d+)\s*\)$",
    re.IGNORECASE,
)

_IMMEDIATE_RES = (
    re.compile(r"^-?\d+$"),
    re.compile(r"^\d[0-9A-F]*H$", re.IGNORECASE),
    re.compile(r"^X'[0-9A-F]*'$", re.IGNORECASE),
    re.compile(r"^B'[01]*'$", re.IGNORECASE),
)
_STRING_RE = re.compile(r"^\d*C[AEU]?(?:L(?P<len>\d+))?'(?P<text>.*)'$", re.IGNORECASE)


def split_operands(text: str, keep_empty: bool = False) -> List[str]:
    """
    Split *text* on top-level commas, respecting quotes and parentheses.

    Parameters
    ----------
    text:
        The operand field, e.g. ``"14,12,12(13)"``.
    keep_empty:
        Keep empty positions (``"A,,C"`` -> ``["A", "", "C"]``).  Macro
        actuals are positional, so the expander needs them.

    Raises
    ------
    OperandSyntaxError
        Unbalanced parentheses or an unterminated quote.

    Examples
    --------
    >>> split_operands("14,12,12(13)")
    ['14', '12', '12(13)']
    >>> split_operands("C'HELLO,WORLD',80")
    ["C'HELLO,WORLD'", '80']
    """
    operands: List[str] = []
    current: List[str] = []
    state = LexState.NORMAL
    quote: Optional[str] = None
    depth = 0

    def push() -> None:
        token = "".join(current).strip()
        if token or keep_empty:
            operands.append(token)
        current.clear()

    for i, ch in enumerate(text):
        if state is LexState.IN_STRING:
            current.append(ch)
            if ch == quote:
                state = LexState.NORMAL
        elif ch in QUOTES and opens_string(_word_before(text, i)):
            state = LexState.IN_STRING
            quote = ch
            current.append(ch)
        elif ch == "(":
            depth += 1
            current.append(ch)
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise OperandSyntaxError("Unbalanced ')' in operands", text)
            current.append(ch)
        elif ch == "," and depth == 0:
            push()
        else:
            current.append(ch)

    if state is LexState.IN_STRING:
        raise OperandSyntaxError("Unterminated quoted string in operands", text)
    if depth:
        raise OperandSyntaxError("Unbalanced '(' in operands", text)

    if current or (keep_empty and operands):
        push()
    return operands


def _is_parenthesised_group(operand: str) -> bool:
    return (
        operand.startswith("(")
        and matching_paren(operand, 0) == len(operand) - 1
        and "," in operand
    )


class OperandAnalyzer:
    """Stateless operand splitter, classifier and arity checker."""

    def parse_operands(self, text: Optional[str]) -> List[Operand]:
        """Split *text* and classify every operand."""
        if not text or not text.strip():
            return []
        return [self.classify(op) for op in split_operands(text)]

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    @staticmethod
    def classify(text: str) -> Operand:
        """Classify a single operand."""
        if _REGISTER_RE.match(text):
            return Operand(kind="register", value=text, register=text.upper())

        m = _BASE_DISP_RE.match(text)
        if m and _register_fits(m.group("disp"), m.group("base")):
            return Operand(
                kind="base-displacement",
                value=text,
                displacement=_displacement(m.group("disp")),
                base_register=m.group("base").upper(),
            )

        m = _INDEXED_RE.match(text)
        if (
            m
            and _register_fits(m.group("disp"), m.group("first"))
            and _register_fits(m.group("disp"), m.group("second"))
        ):
            return Operand(
                kind="indexed",
                value=text,
                displacement=_displacement(m.group("disp")),
                base_register=m.group("first").upper(),
                index_register=m.group("second").upper(),
            )

        if any(rx.match(text) for rx in _IMMEDIATE_RES):
            return Operand(kind="immediate", value=text)

        if text.startswith("="):
            return Operand(kind="literal", value=text)

        m = _STRING_RE.match(text)
        if m:
            if m.group("len"):
                length = int(m.group("len"))
            else:
                length = len(m.group("text").replace("''", "'"))
            return Operand(kind="string", value=text, length=length)

        return Operand(kind="memory", value=text)

    # ------------------------------------------------------------------
    # Arity
    # ------------------------------------------------------------------

    @staticmethod
    def check_arity(
        info: OpcodeInfo,
        operands_text: Optional[str],
        operands: List[Operand],
    ) -> Optional[str]:
        """
        Compare the operand count against the catalog entry.

        Returns a warning message, or ``None`` when the count is acceptable
        or the mnemonic has variable arity.
        """
        expected = info.operand_count
        if expected is None:
            return None

        actual = len(operands)
        text = (operands_text or "").strip()

        if expected == 0 and text and not text.replace(",", "").strip():
            return None
        if actual == 1 and _is_parenthesised_group(operands[0].value):
            return None
        if info.operand_types == ("string",) and actual >= 1:
            actual = 1

        if actual == expected:
            return None
        logger.debug("%s: expected %d operands, found %d", info.mnemonic, expected, actual)
        return (
            f"{info.mnemonic} expects {expected} operand"
            f"{'' if expected == 1 else 's'}, found {actual}"
        )


def _register_fits(displacement: str, register: str) -> bool:
    """A bare numeric register (``12(13)``) needs a numeric displacement."""
    if register.isdigit():
        return bool(_NUMBER_RE.match(displacement))
    return True


def _displacement(text: str):
    return int(text) if _NUMBER_RE.match(text) else text
