"""
Core data models for the z/OS assembler parser.

Every record is a plain dataclass with a ``to_dict()`` projection so that a
:class:`ParseResult` can be dumped straight to JSON for the presentation layer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

TOKEN_KINDS = {
    "label",       # Name field (cols 1-8, may run longer)
    "opcode",      # Operation field, once resolved by enrichment
    "register",    # R0-R15, GR0-GR15
    "symbol",      # Any other name / unresolved operation
    "literal",     # =F'4', =CL8'ABC', =A(LABEL)
    "number",      # 12, 0FH, X'FF', B'1010', P'123'
    "operator",    # + - * / =
    "string",      # C'TEXT', CL8'TEXT', unterminated quote remainder
    "comment",     # Whole-line comment, remarks, sequence field
    "whitespace",  # Runs of blanks / tabs
    "delimiter",   # , ( ) and the column-72 continuation flag
}

OPERAND_KINDS = {
    "register",
    "base-displacement",
    "indexed",
    "immediate",
    "literal",
    "string",
    "memory",
}

SYMBOL_KINDS = {"label", "equ", "constant", "variable"}

SEVERITIES = ("error", "warning", "info")

_EXCERPT_WIDTH = 40


def _check_kind(value: str, allowed, what: str) -> None:
    if value not in allowed:
        raise ValueError(f"Unknown {what}: {value!r}")


def excerpt_of(text: Optional[str], width: int = _EXCERPT_WIDTH) -> str:
    """Return a short single-line excerpt of *text* for diagnostics."""
    if not text:
        return ""
    flat = text.strip()
    if len(flat) <= width:
        return flat
    return flat[: width - 3] + "..."


# ---------------------------------------------------------------------------
# Tokens and operands
# ---------------------------------------------------------------------------


@dataclass
class Token:
    """A lexical token with its exact 0-indexed column span."""

    kind: str
    text: str
    column_start: int
    column_end: int
    value: Optional[Union[int, str]] = None

    def __post_init__(self) -> None:
        _check_kind(self.kind, TOKEN_KINDS, "token kind")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "kind": self.kind,
            "text": self.text,
            "column_start": self.column_start,
            "column_end": self.column_end,
        }
        if self.value is not None:
            data["value"] = self.value
        return data


@dataclass
class Operand:
    """One classified operand of an instruction."""

    kind: str
    value: str
    register: Optional[str] = None
    displacement: Optional[Union[int, str]] = None
    base_register: Optional[str] = None
    index_register: Optional[str] = None
    length: Optional[int] = None

    def __post_init__(self) -> None:
        _check_kind(self.kind, OPERAND_KINDS, "operand kind")

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class InstructionInfo:
    """Instruction details attached to a statement by enrichment."""

    mnemonic: str
    format: Optional[str] = None
    operands: List[Operand] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mnemonic": self.mnemonic,
            "format": self.format,
            "operands": [o.to_dict() for o in self.operands],
        }


@dataclass(frozen=True)
class OpcodeInfo:
    """
    Static catalog entry for one mnemonic.

    ``operand_count`` is ``None`` for variable-arity directives, which are
    never arity-checked.
    """

    mnemonic: str
    format: str
    operand_count: Optional[int]
    operand_types: Tuple[str, ...] = ()
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mnemonic": self.mnemonic,
            "format": self.format,
            "operand_count": self.operand_count,
            "operand_types": list(self.operand_types),
            "description": self.description,
        }


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


@dataclass
class ParseError:
    """A diagnostic produced while parsing.  Never raised."""

    line_number: int
    column: int
    message: str
    severity: str = "error"
    excerpt: str = ""
    source_file: Optional[str] = None

    def __post_init__(self) -> None:
        _check_kind(self.severity, SEVERITIES, "severity")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line_number": self.line_number,
            "column": self.column,
            "message": self.message,
            "severity": self.severity,
            "excerpt": self.excerpt,
            "source_file": self.source_file,
        }

    def __str__(self) -> str:
        where = f"{self.source_file}:" if self.source_file else ""
        text = f"{where}{self.line_number}:{self.column}: {self.severity}: {self.message}"
        if self.excerpt:
            text += f"  [{self.excerpt}]"
        return text


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass
class SourceLine:
    """A physical record waiting in the driver's queue."""

    text: str
    line_number: int
    source_file: Optional[str] = None
    source_line: Optional[int] = None


@dataclass
class Statement:
    """
    One decoded source statement.

    Created by :class:`~zasm_parser.parser.line_parser.LineParser`, mutated
    once by the enrichment pass and left alone afterwards.  Continuation
    members are secondary statements pointing back at their primary line
    through ``continuation_of``.
    """

    line_number: int
    raw_text: str
    label: Optional[str] = None
    opcode: Optional[str] = None
    operands_text: Optional[str] = None
    comment: Optional[str] = None
    tokens: List[Token] = field(default_factory=list)
    source_file: Optional[str] = None
    source_line: Optional[int] = None
    is_macro_call: bool = False
    macro_name: Optional[str] = None
    macro_expansion: List[str] = field(default_factory=list)
    macro_definition: Optional[str] = None
    is_continuation: bool = False
    continuation_of: Optional[int] = None
    continuation_lines: List[int] = field(default_factory=list)
    logical_text: Optional[str] = None
    instruction: Optional[InstructionInfo] = None
    errors: List[ParseError] = field(default_factory=list)

    @property
    def is_comment(self) -> bool:
        return (
            self.comment is not None
            and self.label is None
            and self.opcode is None
            and self.operands_text is None
        )

    @property
    def is_blank(self) -> bool:
        return not self.raw_text.strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line_number": self.line_number,
            "raw_text": self.raw_text,
            "label": self.label,
            "opcode": self.opcode,
            "operands_text": self.operands_text,
            "comment": self.comment,
            "tokens": [t.to_dict() for t in self.tokens],
            "source_file": self.source_file,
            "source_line": self.source_line,
            "is_macro_call": self.is_macro_call,
            "macro_name": self.macro_name,
            "macro_expansion": self.macro_expansion,
            "macro_definition": self.macro_definition,
            "is_continuation": self.is_continuation,
            "continuation_of": self.continuation_of,
            "continuation_lines": self.continuation_lines,
            "logical_text": self.logical_text,
            "instruction": self.instruction.to_dict() if self.instruction else None,
            "errors": [e.to_dict() for e in self.errors],
        }

    def __repr__(self) -> str:
        return (
            f"Statement(line={self.line_number}, label={self.label!r}, "
            f"opcode={self.opcode!r}, operands={self.operands_text!r})"
        )


# ---------------------------------------------------------------------------
# Symbols
# ---------------------------------------------------------------------------


@dataclass
class SymbolDefinition:
    """A label, equate or storage definition."""

    name: str
    value: Union[int, str]
    kind: str
    defined_at: int
    source_file: Optional[str] = None
    data_type: Optional[str] = None
    length: Optional[int] = None

    def __post_init__(self) -> None:
        _check_kind(self.kind, SYMBOL_KINDS, "symbol kind")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "kind": self.kind,
            "defined_at": self.defined_at,
            "source_file": self.source_file,
            "data_type": self.data_type,
            "length": self.length,
        }


class SymbolTable:
    """
    Single flat symbol namespace with case-insensitive lookup.

    The name as first written is preserved on the stored
    :class:`SymbolDefinition`; lookups fold case.
    """

    def __init__(self) -> None:
        self._symbols: Dict[str, SymbolDefinition] = {}

    def define(self, symbol: SymbolDefinition) -> None:
        """Insert or replace *symbol*."""
        self._symbols[symbol.name.upper()] = symbol

    def get(self, name: str) -> Optional[SymbolDefinition]:
        return self._symbols.get(name.upper())

    def __getitem__(self, name: str) -> SymbolDefinition:
        return self._symbols[name.upper()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.upper() in self._symbols

    def __iter__(self) -> Iterator[SymbolDefinition]:
        return iter(self._symbols.values())

    def __len__(self) -> int:
        return len(self._symbols)

    def to_dict(self) -> Dict[str, Any]:
        return {s.name: s.to_dict() for s in self._symbols.values()}

    def __repr__(self) -> str:
        return f"SymbolTable({len(self._symbols)} symbols)"


# ---------------------------------------------------------------------------
# Macros
# ---------------------------------------------------------------------------


@dataclass
class MacroDefinition:
    """A captured MACRO ... ENDM definition."""

    name: str
    parameters: List[str]
    body_statements: List[Statement]
    body_lines: List[str]
    defined_at: int
    source_file: Optional[str] = None
    defaults: Dict[str, str] = field(default_factory=dict)
    label_parameter: Optional[str] = None
    library: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "parameters": self.parameters,
            "defaults": self.defaults,
            "label_parameter": self.label_parameter,
            "body_lines": self.body_lines,
            "defined_at": self.defined_at,
            "source_file": self.source_file,
            "library": self.library,
        }

    def __repr__(self) -> str:
        return (
            f"MacroDefinition(name={self.name!r}, params={self.parameters}, "
            f"lines={len(self.body_lines)})"
        )


class MacroTable:
    """
    Macro definitions keyed by upper-cased name.

    Library definitions (preloaded from the file catalog) survive same-named
    definitions captured while a COPY member is being expanded, but a
    top-level redefinition replaces them.
    """

    def __init__(self) -> None:
        self._macros: Dict[str, MacroDefinition] = {}

    def define(self, macro: MacroDefinition, in_copy: bool = False) -> bool:
        """Register *macro*; return ``False`` when an existing library macro wins."""
        key = macro.name.upper()
        existing = self._macros.get(key)
        if in_copy and existing is not None and existing.library:
            return False
        self._macros[key] = macro
        return True

    def get(self, name: str) -> Optional[MacroDefinition]:
        return self._macros.get(name.upper())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.upper() in self._macros

    def __iter__(self) -> Iterator[MacroDefinition]:
        return iter(self._macros.values())

    def __len__(self) -> int:
        return len(self._macros)

    def to_dict(self) -> Dict[str, Any]:
        return {m.name: m.to_dict() for m in self._macros.values()}

    def __repr__(self) -> str:
        return f"MacroTable({sorted(self._macros)})"


# ---------------------------------------------------------------------------
# Parse context and result
# ---------------------------------------------------------------------------


@dataclass
class ParseContext:
    """Symbol and macro tables for one parse.  Built fresh for every call."""

    symbols: SymbolTable = field(default_factory=SymbolTable)
    macros: MacroTable = field(default_factory=MacroTable)

    def to_dict(self) -> Dict[str, Any]:
        return {"symbols": self.symbols.to_dict(), "macros": self.macros.to_dict()}


@dataclass
class ParseResult:
    """The sole output contract of the parser."""

    statements: List[Statement]
    errors: List[ParseError]
    symbols: SymbolTable
    context: ParseContext

    def statement_at(self, line_number: int) -> Optional[Statement]:
        """Return the statement for physical *line_number* (primary or secondary)."""
        for stmt in self.statements:
            if stmt.line_number == line_number:
                return stmt
        return None

    def errors_by_severity(self, severity: str) -> List[ParseError]:
        return [e for e in self.errors if e.severity == severity]

    @property
    def has_errors(self) -> bool:
        return any(e.severity == "error" for e in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statements": [s.to_dict() for s in self.statements],
            "errors": [e.to_dict() for e in self.errors],
            "symbols": self.symbols.to_dict(),
            "context": self.context.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"ParseResult(statements={len(self.statements)}, "
            f"errors={len(self.errors)}, symbols={len(self.symbols)})"
        )
