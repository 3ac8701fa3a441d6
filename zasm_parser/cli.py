"""
zasm_parser – command-line interface
====================================

Usage
-----
::

    python -m zasm_parser.cli SOURCE [OPTIONS]

Options
-------
--library, -l         Directory of COPY members / macro libraries (repeatable).
--output, -o          Output file path (default: stdout).
--format, -f          Output format: ``json`` (default) or ``text``.
--max-copy-depth N    Maximum COPY nesting (default: 10).
--max-statements N    Statement ceiling (default: 100000).
--no-preload          Do not register library macros before parsing.
--verbose, -v         Enable DEBUG logging.

The exit status is 1 when any error diagnostic was produced, 2 when the
source file cannot be read, and 0 otherwise.

Examples
--------
::

    python -m zasm_parser.cli program.asm --library ./maclib
    python -m zasm_parser.cli program.asm -l ./maclib -l ./copylib -f text
    python -m zasm_parser.cli program.asm -l ./maclib -o result.json
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .models import ParseResult
from .passes.copy_resolver import DEFAULT_MAX_DEPTH
from .pipeline.driver import DEFAULT_MAX_STATEMENTS, AssemblyParser
from .pipeline.file_catalog import FileCatalog

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="zasm_parser",
        description="Parse fixed-column z/OS assembler source into statements, symbols and diagnostics",
    )
    p.add_argument("source", help="Assembler source file to parse")
    p.add_argument(
        "--library", "-l",
        action="append",
        default=[],
        metavar="DIR",
        help="Directory of COPY members and macro libraries (may be repeated)",
    )
    p.add_argument(
        "--output", "-o",
        default="-",
        metavar="FILE",
        help="Output file (default: stdout)",
    )
    p.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="json",
        help="Output format (default: json)",
    )
    p.add_argument(
        "--max-copy-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        metavar="N",
        help=f"Maximum COPY nesting depth (default: {DEFAULT_MAX_DEPTH})",
    )
    p.add_argument(
        "--max-statements",
        type=int,
        default=DEFAULT_MAX_STATEMENTS,
        metavar="N",
        help=f"Abort after N statements (default: {DEFAULT_MAX_STATEMENTS})",
    )
    p.add_argument(
        "--no-preload",
        action="store_true",
        help="Do not register macros found in the library directories before parsing",
    )
    p.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    return p


def _format_text(result: ParseResult) -> str:
    """Render a human-readable listing of *result*."""
    lines: List[str] = []
    for stmt in result.statements:
        if stmt.is_continuation:
            kind = "CONT"
        elif stmt.macro_definition:
            kind = "MDEF"
        elif stmt.is_macro_call:
            kind = "MCALL"
        elif stmt.is_comment:
            kind = "CMT"
        elif stmt.instruction is not None:
            kind = stmt.instruction.format or "INSTR"
        else:
            kind = ""
        origin = f" [{stmt.source_file}:{stmt.source_line}]" if stmt.source_file else ""
        lines.append(f"{stmt.line_number:>6} {kind:<6}{stmt.raw_text}{origin}")
        for text in stmt.macro_expansion:
            lines.append(f"{'':>6} {'+':<6}{text}")

    if len(result.symbols):
        lines.append("")
        lines.append("Symbols:")
        for sym in sorted(result.symbols, key=lambda s: s.name.upper()):
            detail = f" {sym.data_type} len={sym.length}" if sym.data_type else ""
            lines.append(
                f"  {sym.name:<12} {sym.kind:<9} line {sym.defined_at:<6} value={sym.value!r}{detail}"
            )

    if result.errors:
        lines.append("")
        lines.append("Diagnostics:")
        for err in result.errors:
            lines.append(f"  {err}")
    return "\n".join(lines)


def _load_catalog(directories: List[str]) -> Optional[FileCatalog]:
    if not directories:
        return None
    catalog = FileCatalog()
    for directory in directories:
        for source in FileCatalog.from_directory(directory).list():
            catalog.add(source.name, source.content, path=source.path)
    return catalog


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        source = Path(args.source).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    assembler = AssemblyParser(
        catalog=_load_catalog(args.library),
        max_statements=args.max_statements,
        max_copy_depth=args.max_copy_depth,
        preload_macros=not args.no_preload,
    )
    result = assembler.parse(source)

    if args.format == "text":
        output_text = _format_text(result)
    else:
        output_data = {"source": args.source, **result.to_dict()}
        output_text = json.dumps(output_data, indent=2)

    if args.output == "-":
        print(output_text)
    else:
        Path(args.output).write_text(output_text, encoding="utf-8")
        print(f"Output written to {args.output}", file=sys.stderr)

    return 1 if result.has_errors else 0


if __name__ == "__main__":
    sys.exit(main())
