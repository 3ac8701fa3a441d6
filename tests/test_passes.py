"""
Tests for the record-level passes: column helpers and continuation joining.
"""
from __future__ import annotations

from collections import deque

import pytest

from zasm_parser.models import SourceLine
from zasm_parser.passes.columns import (
    has_continuation_flag,
    is_comment_record,
    split_records,
    statement_zone,
)
from zasm_parser.passes.line_continuation import ContinuationJoiner, LineKind, classify


def card(body: str, flag: str = " ", seq: str = "") -> str:
    return body.ljust(71) + flag + seq


# ─────────────────────────────────────────────────────────────────────────────
# Column helpers
# ─────────────────────────────────────────────────────────────────────────────


class TestColumns:
    def test_flag_detected_at_column_72(self):
        assert has_continuation_flag(card("         DC    A(X),", "X"))

    def test_blank_column_72(self):
        assert not has_continuation_flag(card("         DC    A(X)"))

    def test_short_line_has_no_flag(self):
        assert not has_continuation_flag("         LR    R1,R2")
        assert not has_continuation_flag("")

    def test_statement_zone_drops_flag_and_sequence(self):
        line = card("         LR    R1,R2", "X", "00010000")
        assert statement_zone(line) == "         LR    R1,R2".ljust(71)

    @pytest.mark.parametrize("line", ["* COMMENT", "   * INDENTED", ".* MACRO COMMENT"])
    def test_comment_records(self, line):
        assert is_comment_record(line)

    def test_instruction_is_not_comment(self):
        assert not is_comment_record("         B     *+4")

    def test_split_records_drops_final_newline_and_cr(self):
        assert split_records("A\r\nB\n") == ["A", "B"]

    def test_split_records_keeps_blank_records(self):
        assert split_records("A\n\nB") == ["A", "", "B"]

    def test_split_records_only_on_newline(self):
        assert split_records("A\x0cB\vC") == ["A\x0cB\vC"]


# ─────────────────────────────────────────────────────────────────────────────
# Classification
# ─────────────────────────────────────────────────────────────────────────────


class TestClassify:
    def test_normal(self):
        assert classify("         LR    R1,R2", None) is LineKind.NORMAL

    def test_start(self):
        assert classify(card("         DC    A(X),", "X"), None) is LineKind.CONTINUATION_START

    def test_member(self):
        first = card("         DC    A(X),", "X")
        assert classify("               A(Y)", first) is LineKind.CONTINUATION_MEMBER

    def test_member_that_continues_is_still_member(self):
        first = card("         DC    A(X),", "X")
        second = card("               A(Y),", "X")
        assert classify(second, first) is LineKind.CONTINUATION_MEMBER


# ─────────────────────────────────────────────────────────────────────────────
# Joining
# ─────────────────────────────────────────────────────────────────────────────


class TestContinuationJoiner:
    @pytest.fixture
    def joiner(self):
        return ContinuationJoiner()

    @pytest.fixture
    def pair(self):
        return [
            card("TABLE    DC    A(FIRST),", "X"),
            card("               A(SECOND)"),
        ]

    def test_pair_produces_primary_and_secondary(self, joiner, pair):
        statements = joiner.run(pair)
        assert len(statements) == 2
        primary, secondary = statements
        assert primary.line_number == 1
        assert not primary.is_continuation
        assert secondary.is_continuation
        assert secondary.continuation_of == 1
        assert secondary.line_number == 2

    def test_logical_text(self, joiner, pair):
        primary = joiner.run(pair)[0]
        expected = pair[0][:71].strip() + " " + pair[1][:71].strip()
        assert primary.logical_text == expected
        assert primary.continuation_lines == [1, 2]

    def test_fields_come_from_merged_text(self, joiner, pair):
        primary = joiner.run(pair)[0]
        assert primary.label == "TABLE"
        assert primary.opcode == "DC"
        assert primary.operands_text.replace(" ", "") == "A(FIRST),A(SECOND)"

    def test_tokens_come_from_first_record(self, joiner, pair):
        primary = joiner.run(pair)[0]
        assert "".join(t.text for t in primary.tokens) == pair[0]

    def test_secondary_is_operand_fragment(self, joiner, pair):
        secondary = joiner.run(pair)[1]
        assert secondary.label is None
        assert secondary.opcode is None
        assert secondary.operands_text == "A(SECOND)"

    def test_three_record_group(self, joiner):
        lines = [
            card("         DC    A(ONE),", "X"),
            card("               A(TWO),", "X"),
            card("               A(THREE)"),
            "         LR    R1,R2",
        ]
        statements = joiner.run(lines)
        assert len(statements) == 4
        assert statements[0].continuation_lines == [1, 2, 3]
        assert [s.continuation_of for s in statements[1:3]] == [1, 1]
        assert statements[3].opcode == "LR"
        assert not statements[3].is_continuation

    def test_group_open_at_end_of_input(self, joiner):
        statements = joiner.run([card("         DC    A(ONE),", "X")])
        assert len(statements) == 1
        assert statements[0].continuation_lines == [1]
        assert statements[0].logical_text == "DC    A(ONE),"

    def test_every_record_appears_once(self, joiner):
        lines = [
            card("         DC    A(ONE),", "X"),
            card("               A(TWO)"),
            "* COMMENT",
            card("         MVC   A,", "X"),
            card("               B"),
        ]
        numbers = [s.line_number for s in joiner.run(lines)]
        assert numbers == [1, 2, 3, 4, 5]

    def test_collect_stops_at_queue_marker(self, joiner):
        marker = object()
        first = SourceLine(card("         DC    A(ONE),", "X"), 1)
        pending = deque([marker, SourceLine("               A(TWO)", 2)])
        group = joiner.collect(first, pending)
        assert group == [first]
        assert pending[0] is marker
