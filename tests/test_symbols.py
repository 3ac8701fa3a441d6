"""
Tests for DC/DS decoding, EQU evaluation and symbol table building.
"""
from __future__ import annotations

import pytest

from zasm_parser.models import Statement, SymbolTable
from zasm_parser.pipeline.driver import AssemblyParser
from zasm_parser.pipeline.symbols import SymbolTableBuilder, equ_value, parse_constant


def source(*lines: str) -> str:
    return "\n".join(lines) + "\n"


# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────


class TestParseConstant:
    @pytest.mark.parametrize(
        "operand,data_type,length,value",
        [
            ("F'100'", "F", 4, 100),
            ("H'-5'", "H", 2, -5),
            ("D'0'", "D", 8, "0"),
            ("CL10'HELLO'", "CL10", 10, "HELLO"),
            ("C'ABC'", "C", 3, "ABC"),
            ("C'IT''S'", "C", 4, "IT'S"),
            ("X'1F2'", "X", 2, 0x1F2),
            ("XL2'FF'", "XL2", 2, 0xFF),
            ("P'12345'", "P", 3, 12345),
            ("Z'123'", "Z", 3, 123),
            ("A(TABLE)", "A", 4, "TABLE"),
            ("V(EXTERN)", "V", 4, "EXTERN"),
        ],
    )
    def test_dc_forms(self, operand, data_type, length, value):
        decoded = parse_constant(operand)
        assert (decoded.data_type, decoded.length, decoded.value) == (data_type, length, value)

    def test_storage_without_value(self):
        decoded = parse_constant("F")
        assert (decoded.data_type, decoded.length, decoded.value) == ("F", 4, None)

    def test_duplication_factor(self):
        assert parse_constant("3F").length == 12
        assert parse_constant("2CL8").length == 16

    def test_zero_duplication_aligns_only(self):
        assert parse_constant("0F").length == 0

    def test_lowercase_type(self):
        assert parse_constant("f'7'").data_type == "F"

    @pytest.mark.parametrize("operand", ["", "TABLE", "Q'1'", "C(X)", "F'1"])
    def test_not_a_constant(self, operand):
        assert parse_constant(operand) is None


# ─────────────────────────────────────────────────────────────────────────────
# EQU
# ─────────────────────────────────────────────────────────────────────────────


class TestEquValue:
    def test_location_counter_is_line_number(self):
        assert equ_value("*", 42) == 42

    @pytest.mark.parametrize(
        "text,value",
        [("10", 10), ("-3", -3), ("0FH", 15), ("X'1F'", 31)],
    )
    def test_numeric_forms(self, text, value):
        assert equ_value(text, 1) == value

    def test_expression_kept_as_text(self):
        assert equ_value("TABLE+4", 1) == "TABLE+4"


# ─────────────────────────────────────────────────────────────────────────────
# Builder
# ─────────────────────────────────────────────────────────────────────────────


class TestSymbolTableBuilder:
    @pytest.fixture
    def builder(self):
        return SymbolTableBuilder()

    def _stmt(self, line, label, opcode, operands=None):
        return Statement(
            line_number=line,
            raw_text="",
            label=label,
            opcode=opcode,
            operands_text=operands,
        )

    def test_plain_label(self, builder):
        table = SymbolTable()
        symbol = builder.record(self._stmt(5, "LOOP", "LA", "R1,0"), table)
        assert (symbol.kind, symbol.value, symbol.defined_at) == ("label", 5, 5)

    def test_first_plain_label_kept(self, builder):
        table = SymbolTable()
        builder.record(self._stmt(1, "X", "LR", "R1,R2"), table)
        assert builder.record(self._stmt(9, "X", "LR", "R3,R4"), table) is None
        assert table["X"].defined_at == 1

    def test_equ_overwrites(self, builder):
        table = SymbolTable()
        builder.record(self._stmt(1, "R1", "LR", "R1,R2"), table)
        builder.record(self._stmt(2, "R1", "EQU", "1"), table)
        assert table["R1"].kind == "equ"
        assert table["R1"].value == 1

    def test_ds_value_is_line_number(self, builder):
        table = SymbolTable()
        symbol = builder.record(self._stmt(7, "AREA", "DS", "CL80"), table)
        assert (symbol.kind, symbol.value, symbol.length) == ("variable", 7, 80)

    def test_dc_uses_first_operand(self, builder):
        table = SymbolTable()
        symbol = builder.record(self._stmt(3, "PAIR", "DC", "F'1',F'2'"), table)
        assert (symbol.kind, symbol.value, symbol.data_type) == ("constant", 1, "F")

    def test_unparseable_dc_operand(self, builder):
        table = SymbolTable()
        symbol = builder.record(self._stmt(3, "ODD", "DC", "Q'1'"), table)
        assert symbol.value == "Q'1'"
        assert symbol.data_type is None
        assert symbol.length is None

    def test_no_label(self, builder):
        assert builder.record(self._stmt(1, None, "LR", "R1,R2"), SymbolTable()) is None


class TestSymbolsThroughParser:
    def test_symbols_collected(self):
        result = AssemblyParser().parse(source(
            "PROG     CSECT",
            "COUNT    DC    F'100'",
            "NAME     DC    CL10'HELLO'",
            "WORK     DS    3F",
            "LEN      EQU   10",
            "PROG     DS    F",
        ))
        symbols = result.symbols
        assert symbols["COUNT"].value == 100
        assert symbols["NAME"].length == 10
        assert symbols["WORK"].length == 12
        assert symbols["LEN"].value == 10
        assert symbols["PROG"].kind == "variable"
        assert symbols["PROG"].defined_at == 6

    def test_symbol_source_location(self):
        result = AssemblyParser().parse(source("         LR    R1,R2", "HERE     LR    R3,R4"))
        assert result.symbols["HERE"].defined_at == 2
        assert result.symbols["HERE"].source_file is None
