"""
End-to-end integration tests.

These tests run the full pipeline (records → continuation joining → COPY
and macro handling → enrichment → symbols) and check the overall result.
"""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from zasm_parser import AssemblyParser, FileCatalog, parse

FIXTURES = Path(__file__).parent / "fixtures"
LIBRARY_DIR = str(FIXTURES / "lib")


def source(*lines: str) -> str:
    return "\n".join(lines) + "\n"


def card(body: str, flag: str = " ", seq: str = "") -> str:
    return body.ljust(71) + flag + seq


class TestEndToEnd:
    """Full pipeline tests using the fixture program and library."""

    @pytest.fixture
    def result(self):
        catalog = FileCatalog.from_directory(LIBRARY_DIR)
        return AssemblyParser(catalog=catalog).parse_file(str(FIXTURES / "payroll.asm"))

    def test_no_diagnostics(self, result):
        assert result.errors == []

    def test_statement_count(self, result):
        # 15 records minus the COPY statement plus 5 copied records
        assert len(result.statements) == 19

    def test_copied_records_follow_copy_position(self, result):
        opcodes = [s.opcode for s in result.statements[:9]]
        assert opcodes == [None, "CSECT", "USING", "EQU", "EQU", "EQU", "EQU", "EQU", "SAVEREGS"]
        assert [s.line_number for s in result.statements[3:8]] == [16, 17, 18, 19, 20]

    def test_library_macro_call(self, result):
        call = next(s for s in result.statements if s.opcode == "SAVEREGS")
        assert call.is_macro_call
        assert call.macro_expansion[-1] == "         ST    R13,SAVEAREA+4"

    def test_symbols(self, result):
        symbols = result.symbols
        assert symbols["PAYROLL"].kind == "label"
        assert symbols["R12"].value == 12
        assert symbols["R12"].source_file == "REGS.asm"
        assert symbols["COUNT"].value == 100
        assert symbols["INNAME"].data_type == "CL10"
        assert symbols["SAVEAREA"].length == 72

    def test_remark_kept(self, result):
        la = next(s for s in result.statements if s.opcode == "LA")
        assert la.comment == "BUMP POINTER"
        assert [o.kind for o in la.instruction.operands] == ["register", "base-displacement"]

    def test_json_round_trip(self, result):
        recovered = json.loads(json.dumps(result.to_dict()))
        assert len(recovered["statements"]) == len(result.statements)
        assert recovered["symbols"]["COUNT"]["value"] == 100
        assert "SAVEREGS" in recovered["context"]["macros"]


# ─────────────────────────────────────────────────────────────────────────────
# Behavioural properties
# ─────────────────────────────────────────────────────────────────────────────


class TestProperties:
    @pytest.fixture
    def parser(self):
        return AssemblyParser()

    @pytest.mark.parametrize(
        "line",
        [
            "LOOP     LA    R1,4(R1)          BUMP POINTER",
            "         STM   R14,R12,12(R13)",
            "         B     *+4",
            card("PROG     CSECT", " ", "00000100"),
        ],
    )
    def test_tokens_reproduce_line(self, parser, line):
        stmt = parser.parse(line).statements[0]
        assert "".join(t.text for t in stmt.tokens) == line

    def test_comment_record(self, parser):
        stmt = parser.parse("* HOUSEKEEPING\n").statements[0]
        assert stmt.comment == "* HOUSEKEEPING"
        assert (stmt.label, stmt.opcode, stmt.operands_text) == (None, None, None)

    def test_continuation_pair(self, parser):
        first = card("TABLE    DC    A(FIRST),", "X")
        second = card("               A(SECOND)")
        result = parser.parse(source(first, second))
        assert len(result.statements) == 2
        primary = result.statements[0]
        assert primary.logical_text == first[:71].strip() + " " + second[:71].strip()
        assert primary.continuation_lines == [1, 2]
        assert result.statements[1].continuation_of == 1
        assert result.symbols["TABLE"].value == "FIRST"

    def test_macro_substitution(self, parser):
        result = parser.parse(source(
            "MYMAC    MACRO &A,&B",
            "         MVC   &A,&B",
            "         ENDM",
            "         MYMAC F1,F2",
        ))
        assert result.statements[-1].macro_expansion == ["         MVC   F1,F2"]

    def test_circular_copy(self):
        catalog = FileCatalog()
        catalog.add("A", "         COPY  B")
        catalog.add("B", "         COPY  A")
        result = AssemblyParser(catalog=catalog).parse("         COPY  A\n")
        errors = result.errors_by_severity("error")
        assert len(errors) == 1
        assert "Circular" in errors[0].message

    def test_matching_operand_count(self, parser):
        assert parser.parse("         LA    R1,LABEL\n").errors == []

    def test_operand_count_mismatch(self, parser):
        result = parser.parse(source("         LR    R1,R2", "         LA    R1"))
        assert len(result.errors) == 1
        warning = result.errors[0]
        assert warning.severity == "warning"
        assert warning.line_number == 2
        assert warning.message == "LA expects 2 operands, found 1"

    @pytest.mark.parametrize(
        "operand,data_type,length,value",
        [("F'100'", "F", 4, 100), ("CL10'HELLO'", "CL10", 10, "HELLO")],
    )
    def test_dc_symbol(self, parser, operand, data_type, length, value):
        result = parser.parse(f"FIELD    DC    {operand}\n")
        symbol = result.symbols["FIELD"]
        assert (symbol.data_type, symbol.length, symbol.value) == (data_type, length, value)

    def test_three_statement_program(self, parser):
        result = parser.parse(source(
            "LBL1     DS    F",
            "         L     R1,LBL1",
            "         LA    R2,4(R1)",
        ))
        assert len(result.statements) == 3
        symbol = result.symbols["LBL1"]
        assert (symbol.kind, symbol.data_type, symbol.length) == ("variable", "F", 4)
        operand = result.statements[2].instruction.operands[1]
        assert operand.kind == "base-displacement"
        assert operand.displacement == 4
        assert operand.base_register == "R1"


# ─────────────────────────────────────────────────────────────────────────────
# Diagnostics and limits
# ─────────────────────────────────────────────────────────────────────────────


class TestDiagnostics:
    def test_undefined_operation(self):
        result = parse("         FROB  R1\n")
        assert result.has_errors
        error = result.errors[0]
        assert error.message == "Undefined macro or instruction: FROB"
        assert error.excerpt == "FROB  R1"

    def test_statement_ceiling(self):
        text = source(*["         LR    R1,R2"] * 10)
        result = AssemblyParser(max_statements=5).parse(text)
        assert len(result.statements) == 5
        errors = result.errors_by_severity("error")
        assert len(errors) == 1
        assert "Statement limit of 5" in errors[0].message
        assert errors[0].line_number == 5
        assert errors[0].excerpt == "LR    R1,R2"

    def test_malformed_line_does_not_abort(self):
        result = parse(source("         LA\x07R1", "         LR    R1,R2"))
        assert len(result.statements) == 2
        bad = result.statements[0]
        assert bad.opcode is None
        assert bad.errors[0].message.startswith("Malformed line")
        assert result.statements[1].opcode == "LR"

    def test_fresh_context_per_call(self):
        parser = AssemblyParser()
        first = parser.parse(source("TEN      EQU   10", "M        MACRO", "         ENDM"))
        assert "TEN" in first.symbols
        second = parser.parse("         LR    R1,R2\n")
        assert len(second.symbols) == 0
        assert len(second.context.macros) == 0

    def test_caller_supplied_context_is_filled(self):
        from zasm_parser import ParseContext

        context = ParseContext()
        parse("TEN      EQU   10\n", context=context)
        assert context.symbols["TEN"].value == 10

    def test_crlf_records(self):
        result = parse("         LR    R1,R2\r\n         BR    R14\r\n")
        assert [s.opcode for s in result.statements] == ["LR", "BR"]
        assert result.errors == []

    def test_opcode_token_retagged(self):
        stmt = parse("         LR    R1,R2\n").statements[0]
        assert [t.kind for t in stmt.tokens if t.kind != "whitespace"][0] == "opcode"
