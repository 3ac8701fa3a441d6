"""
Tests for macro capture, library preload and textual expansion.
"""
from __future__ import annotations

import pytest

from zasm_parser.models import MacroDefinition, MacroTable, ParseContext, Statement
from zasm_parser.passes.macro_expansion import (
    MacroCollector,
    TextMacroExpander,
    directive_of,
    load_library_macros,
    parse_formals,
)
from zasm_parser.pipeline.driver import AssemblyParser
from zasm_parser.pipeline.file_catalog import FileCatalog


def source(*lines: str) -> str:
    return "\n".join(lines) + "\n"


def macro(name="M", parameters=("A",), body=("         MVC   &A,&B",), **kwargs):
    return MacroDefinition(
        name=name,
        parameters=list(parameters),
        body_statements=[],
        body_lines=list(body),
        defined_at=1,
        **kwargs,
    )


def call(operands, label=None):
    return Statement(
        line_number=10,
        raw_text="",
        label=label,
        opcode="M",
        operands_text=operands,
    )


MYMAC = source(
    "MYMAC    MACRO &A,&B",
    "         MVC   &A,&B",
    "         ENDM",
    "         MYMAC F1,F2",
)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


class TestHelpers:
    def test_parse_formals(self):
        assert parse_formals("&A,&B,&KEY=YES") == (["A", "B", "KEY"], {"KEY": "YES"})

    def test_parse_formals_empty(self):
        assert parse_formals(None) == ([], {})

    def test_directive_in_column_one(self):
        stmt = Statement(line_number=1, raw_text="MEND", label="MEND")
        assert directive_of(stmt) == "MEND"

    def test_directive_from_opcode(self):
        stmt = Statement(line_number=1, raw_text="", opcode="endm")
        assert directive_of(stmt) == "ENDM"

    def test_plain_label_is_not_directive(self):
        stmt = Statement(line_number=1, raw_text="HERE", label="HERE")
        assert directive_of(stmt) is None


# ─────────────────────────────────────────────────────────────────────────────
# Expansion
# ─────────────────────────────────────────────────────────────────────────────


class TestTextMacroExpander:
    @pytest.fixture
    def expander(self):
        return TextMacroExpander()

    def test_positional_substitution(self, expander):
        m = macro(parameters=["A", "B"])
        assert expander.expand(m, call("F1,F2")) == ["         MVC   F1,F2"]

    def test_word_boundary(self, expander):
        m = macro(parameters=["A"], body=["         MVC   &AB,&A"])
        assert expander.expand(m, call("X")) == ["         MVC   &AB,X"]

    def test_longer_name_wins(self, expander):
        m = macro(parameters=["A", "AB"], body=["         MVC   &AB,&A"])
        assert expander.expand(m, call("X,Y")) == ["         MVC   Y,X"]

    def test_case_insensitive(self, expander):
        m = macro(parameters=["A"], body=["         LA    R1,&a"])
        assert expander.expand(m, call("FIELD")) == ["         LA    R1,FIELD"]

    def test_missing_actual_is_blank(self, expander):
        m = macro(parameters=["A", "B"])
        assert expander.expand(m, call("F1")) == ["         MVC   F1,"]

    def test_extra_actuals_ignored(self, expander):
        m = macro(parameters=["A", "B"])
        assert expander.expand(m, call("F1,F2,F3")) == ["         MVC   F1,F2"]

    def test_empty_position_kept(self, expander):
        m = macro(parameters=["A", "B"])
        assert expander.expand(m, call(",F2")) == ["         MVC   ,F2"]

    def test_substituted_text_not_rescanned(self, expander):
        m = macro(parameters=["A", "B"])
        assert expander.expand(m, call("&B,Z")) == ["         MVC   &B,Z"]

    def test_default_used(self, expander):
        m = macro(parameters=["A", "B"], defaults={"B": "DFLT"})
        assert expander.expand(m, call("F1")) == ["         MVC   F1,DFLT"]

    def test_keyword_actual(self, expander):
        m = macro(parameters=["A", "B"], defaults={"B": "DFLT"})
        assert expander.expand(m, call("F1,B=KW")) == ["         MVC   F1,KW"]

    def test_label_parameter(self, expander):
        m = macro(parameters=["R"], body=["&LBL     ST    &R,SAVE"], label_parameter="LBL")
        assert expander.expand(m, call("R5", label="HERE")) == ["HERE     ST    R5,SAVE"]

    def test_no_parameters(self, expander):
        m = macro(parameters=[], body=["         BR    R14"])
        assert expander.expand(m, call(None)) == ["         BR    R14"]


# ─────────────────────────────────────────────────────────────────────────────
# Capture through the driver
# ─────────────────────────────────────────────────────────────────────────────


class TestMacroCapture:
    @pytest.fixture
    def parser(self):
        return AssemblyParser()

    def test_one_line_form(self, parser):
        result = parser.parse(MYMAC)
        assert result.errors == []
        definition = result.context.macros.get("mymac")
        assert definition.parameters == ["A", "B"]
        assert definition.body_lines == ["         MVC   &A,&B"]
        assert definition.defined_at == 1

    def test_invocation_expanded(self, parser):
        invocation = parser.parse(MYMAC).statements[-1]
        assert invocation.is_macro_call
        assert invocation.macro_name == "MYMAC"
        assert invocation.macro_expansion == ["         MVC   F1,F2"]
        assert [t.kind for t in invocation.tokens if t.kind != "whitespace"][0] == "opcode"

    def test_definition_lines_tagged_not_enriched(self, parser):
        statements = parser.parse(MYMAC).statements
        assert [s.macro_definition for s in statements[:3]] == ["MYMAC"] * 3
        assert all(s.instruction is None for s in statements[:3])

    def test_long_macro_name(self, parser):
        text = source(
            "VERYLONGNAME MACRO &P",
            "         LA    R1,&P",
            "         ENDM",
            "         VERYLONGNAME TABLE",
        )
        result = parser.parse(text)
        assert result.errors == []
        assert result.statements[-1].macro_expansion == ["         LA    R1,TABLE"]

    def test_prototype_form(self, parser):
        text = source(
            "         MACRO",
            "&LBL     SAVEIT &REG,&AREA=SAVEAREA",
            "&LBL     ST    &REG,&AREA",
            "         MEND",
            "HERE     SAVEIT R5",
        )
        result = parser.parse(text)
        assert result.errors == []
        definition = result.context.macros.get("SAVEIT")
        assert definition.label_parameter == "LBL"
        assert definition.defaults == {"AREA": "SAVEAREA"}
        assert result.statements[-1].macro_expansion == ["HERE     ST    R5,SAVEAREA"]
        assert result.symbols["HERE"].kind == "label"

    def test_endm_without_macro(self, parser):
        result = parser.parse(source("         LR    R1,R2", "         ENDM"))
        errors = result.errors_by_severity("error")
        assert len(errors) == 1
        assert errors[0].line_number == 2
        assert "without matching MACRO" in errors[0].message
        assert result.statements[1].errors == errors

    def test_unterminated_definition(self, parser):
        result = parser.parse(source("OPEN     MACRO", "         LR    R1,R2"))
        errors = result.errors_by_severity("error")
        assert len(errors) == 1
        assert errors[0].line_number == 1
        assert "Unterminated" in errors[0].message
        assert "OPEN" not in result.context.macros

    def test_undefined_macro(self, parser):
        result = parser.parse(source("         NOSUCH A,B"))
        errors = result.errors_by_severity("error")
        assert len(errors) == 1
        assert errors[0].message == "Undefined macro or instruction: NOSUCH"
        assert errors[0].column == 9

    def test_redefinition_replaces(self, parser):
        text = source(
            "M1       MACRO",
            "         LR    R1,R2",
            "         ENDM",
            "M1       MACRO",
            "         LR    R3,R4",
            "         ENDM",
            "         M1",
        )
        result = parser.parse(text)
        assert result.statements[-1].macro_expansion == ["         LR    R3,R4"]


# ─────────────────────────────────────────────────────────────────────────────
# Library macros
# ─────────────────────────────────────────────────────────────────────────────


class TestLibraryMacros:
    @pytest.fixture
    def catalog(self):
        catalog = FileCatalog()
        catalog.add(
            "MACLIB.MAC",
            source(
                "         MACRO",
                "         PRT   &MSG",
                "         WTO   &MSG",
                "         MEND",
            ),
        )
        return catalog

    def test_collector_directly(self):
        collector = MacroCollector()
        assert not collector.collecting
        header = Statement(line_number=1, raw_text="X        MACRO", label="X", opcode="MACRO")
        assert collector.feed(header) is None
        assert collector.collecting
        end = Statement(line_number=2, raw_text="         ENDM", opcode="ENDM")
        definition = collector.feed(end)
        assert definition.name == "X"
        assert not collector.collecting

    def test_load_library_macros(self, catalog):
        table = MacroTable()
        assert load_library_macros(catalog, table) == 1
        assert table.get("PRT").library
        assert table.get("PRT").source_file == "MACLIB.MAC"

    def test_preloaded_macro_resolves(self, catalog):
        result = AssemblyParser(catalog=catalog).parse(source("         PRT   'HELLO'"))
        assert result.errors == []
        assert result.statements[0].macro_expansion == ["         WTO   'HELLO'"]

    def test_preload_disabled(self, catalog):
        result = AssemblyParser(catalog=catalog, preload_macros=False).parse(
            source("         PRT   'HELLO'")
        )
        assert result.has_errors

    def test_library_kept_over_copy_definition(self, catalog):
        context = ParseContext()
        load_library_macros(catalog, context.macros)
        members = FileCatalog()
        members.add(
            "OVERRIDE",
            source("PRT      MACRO &X", "         LR    R1,R2", "         ENDM"),
        )
        text = source("         COPY  OVERRIDE", "         PRT   'HI'")
        parser = AssemblyParser(catalog=members, preload_macros=False)
        result = parser.parse(text, context)
        assert result.context.macros.get("PRT").source_file == "MACLIB.MAC"
        assert result.statements[-1].macro_expansion == ["         WTO   'HI'"]

    def test_top_level_definition_replaces_library(self, catalog):
        text = source(
            "PRT      MACRO &X",
            "         LR    R1,R2",
            "         ENDM",
            "         PRT   'HI'",
        )
        result = AssemblyParser(catalog=catalog).parse(text)
        assert not result.context.macros.get("PRT").library
        assert result.statements[-1].macro_expansion == ["         LR    R1,R2"]
