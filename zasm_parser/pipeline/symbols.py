"""
SymbolTableBuilder
==================

Records labels, equates and storage definitions as statements are enriched.

+--------+-----------+------------------------------------------------------+
| Opcode | Kind      | Value                                                |
+========+===========+======================================================+
| EQU    | equ       | decimal, ``nH`` hex, ``X'..'`` hex, ``*`` (line      |
|        |           | number); anything else kept as text                  |
+--------+-----------+------------------------------------------------------+
| DC     | constant  | decoded constant                                     |
+--------+-----------+------------------------------------------------------+
| DS     | variable  | defining line number                                 |
+--------+-----------+------------------------------------------------------+
| other  | label     | defining line number, only if not already defined    |
+--------+-----------+------------------------------------------------------+

EQU, DC and DS overwrite an existing entry.

DC/DS operand grammar: ``[dup]type[Ln]['value' | (value)]``.  Unit
lengths: F/A/V/E = 4, H/S/Y = 2, D = 8; C is the text length, X is half the
hex digits (rounded up), P is ``(digits + 2) // 2``, Z is the digit count.
An explicit ``Ln`` wins.  The total length is ``dup * unit``.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

from ..errors import OperandSyntaxError
from ..models import Statement, SymbolDefinition, SymbolTable
from ..parser.operand_analyzer import split_operands

logger = logging.getLogger(__name__)

_FIXED_LENGTHS = {"F": 4, "A": 4, "V": 4, "E": 4, "H": 2, "S": 2, "Y": 2, "D": 8}

_CONSTANT_RE = re.compile(
    r"^(?P<dup>\d*)(?P<type>[FHDASYVXCPZE])(?:L(?P<len>\d+))?"
    r"(?:'(?P<quoted>.*)'|\((?P<paren>.*)\))?$",
    re.IGNORECASE | re.DOTALL,
)
_DECIMAL_RE = re.compile(r"^[+-]?\d+$")
_HEX_SUFFIX_RE = re.compile(r"^\d[0-9A-F]*H$", re.IGNORECASE)
_QUOTED_HEX_RE = re.compile(r"^X'([0-9A-F]+)'$", re.IGNORECASE)


@dataclass
class ConstantSpec:
    """A decoded DC/DS operand."""

    data_type: str
    length: int
    value: Union[int, str, None]


def parse_constant(operand: str) -> Optional[ConstantSpec]:
    """
    Decode one DC/DS operand, or return ``None`` when it does not fit the
    grammar.

    >>> parse_constant("CL10'HELLO'")
    ConstantSpec(data_type='CL10', length=10, value='HELLO')
    >>> parse_constant("F'100'")
    ConstantSpec(data_type='F', length=4, value=100)
    """
    m = _CONSTANT_RE.match(operand.strip())
    if not m:
        return None

    kind = m.group("type").upper()
    explicit = m.group("len")
    quoted = m.group("quoted")
    paren = m.group("paren")
    dup = int(m.group("dup")) if m.group("dup") else 1

    if paren is not None and kind not in "ASYV":
        return None
    if quoted is not None and kind in "ASYV":
        return None

    text = quoted.replace("''", "'") if quoted is not None else None
    unit = int(explicit) if explicit else _unit_length(kind, text)
    data_type = f"{kind}L{explicit}" if explicit else kind

    if quoted is not None:
        value: Union[int, str, None] = _decode(kind, text)
    elif paren is not None:
        value = paren
    else:
        value = None
    return ConstantSpec(data_type=data_type, length=dup * unit, value=value)


def _unit_length(kind: str, text: Optional[str]) -> int:
    if kind in _FIXED_LENGTHS:
        return _FIXED_LENGTHS[kind]
    if text is None:
        return 1
    if kind == "C":
        return len(text)
    digits = len(re.sub(r"[^0-9A-Fa-f]", "", text))
    if kind == "X":
        return (digits + 1) // 2
    if kind == "P":
        return (digits + 2) // 2
    return digits  # Z


def _decode(kind: str, text: str) -> Union[int, str]:
    if kind == "C":
        return text
    if kind == "X":
        try:
            return int(text, 16)
        except ValueError:
            return text
    if kind in "FHPZ" and _DECIMAL_RE.match(text.strip()):
        return int(text.strip())
    return text


def equ_value(operand: str, line_number: int) -> Union[int, str]:
    """Evaluate the small EQU grammar; unknown forms stay as text."""
    text = operand.strip()
    if text == "*":
        return line_number
    if _DECIMAL_RE.match(text):
        return int(text)
    if _HEX_SUFFIX_RE.match(text):
        return int(text[:-1], 16)
    m = _QUOTED_HEX_RE.match(text)
    if m:
        return int(m.group(1), 16)
    return text


class SymbolTableBuilder:
    """Adds the symbol defined by a statement to a :class:`SymbolTable`."""

    def record(self, statement: Statement, table: SymbolTable) -> Optional[SymbolDefinition]:
        """Record *statement*'s label, returning the new definition if any."""
        label = statement.label
        if not label:
            return None

        opcode = (statement.opcode or "").upper()
        operand = self._first_operand(statement.operands_text)
        line = statement.line_number

        if opcode == "EQU":
            symbol = SymbolDefinition(
                name=label,
                value=equ_value(operand, line),
                kind="equ",
                defined_at=line,
                source_file=statement.source_file,
            )
        elif opcode in ("DC", "DS"):
            decoded = parse_constant(operand) if operand else None
            kind = "constant" if opcode == "DC" else "variable"
            if decoded is None:
                value: Union[int, str] = operand
            elif opcode == "DS":
                value = line
            else:
                value = decoded.value if decoded.value is not None else operand
            symbol = SymbolDefinition(
                name=label,
                value=value,
                kind=kind,
                defined_at=line,
                source_file=statement.source_file,
                data_type=decoded.data_type if decoded else None,
                length=decoded.length if decoded else None,
            )
        else:
            if label in table:
                logger.debug("Label %s at line %d already defined; keeping first", label, line)
                return None
            symbol = SymbolDefinition(
                name=label,
                value=line,
                kind="label",
                defined_at=line,
                source_file=statement.source_file,
            )

        table.define(symbol)
        return symbol

    @staticmethod
    def _first_operand(operands_text: Optional[str]) -> str:
        if not operands_text:
            return ""
        try:
            operands = split_operands(operands_text)
        except OperandSyntaxError:
            return operands_text.strip()
        return operands[0] if operands else ""
