"""
CopyResolver
============

Resolves ``COPY member`` statements against a file catalog.

The resolver keeps a stack of members currently being expanded.  The driver
splices the returned lines into its pending queue followed by an end marker;
when the marker is consumed the driver calls :meth:`CopyResolver.release`.

Diagnostics:

+------------------------------+----------+
| Condition                    | Severity |
+==============================+==========+
| ``COPY`` without an operand  | error    |
+------------------------------+----------+
| member already in flight     | error    |
+------------------------------+----------+
| nesting deeper than the cap  | error    |
+------------------------------+----------+
| member not in the catalog    | warning  |
+------------------------------+----------+

Errors abort only the offending inclusion; parsing continues.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import ParseError, Statement, excerpt_of
from ..parser.operand_analyzer import split_operands
from ..errors import OperandSyntaxError
from ..pipeline.file_catalog import FileCatalogLike, normalize_name

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10


@dataclass
class CopyResult:
    """Outcome of one COPY resolution."""

    lines: List[str] = field(default_factory=list)
    file_name: Optional[str] = None
    error: Optional[ParseError] = None


class CopyResolver:
    """
    Parameters
    ----------
    max_depth:
        Maximum number of COPY members in flight at once.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.max_depth = max_depth
        self._stack: List[str] = []

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def in_flight(self) -> List[str]:
        return list(self._stack)

    def release(self) -> None:
        """Pop the innermost in-flight member."""
        if self._stack:
            logger.debug("COPY %s finished", self._stack[-1])
            self._stack.pop()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(
        self,
        statement: Statement,
        line_number: int,
        catalog: Optional[FileCatalogLike],
    ) -> CopyResult:
        """
        Resolve the member named by *statement*'s first operand.

        On success the member is pushed on the in-flight stack and its lines
        are returned; the caller must :meth:`release` it once consumed.
        """
        name = self._member_name(statement.operands_text)
        if not name:
            return self._diagnostic(statement, line_number, "COPY statement without a member name")

        source = catalog.find(name) if catalog is not None else None
        if source is None:
            logger.warning("COPY member not found: %s", name)
            return self._diagnostic(
                statement, line_number, f"COPY member {name} not found", severity="warning"
            )

        # in-flight entries are resolved member names
        key = normalize_name(source.name)
        if key in (normalize_name(n) for n in self._stack):
            chain = " -> ".join(self._stack + [source.name])
            logger.warning("Circular COPY detected: %s", chain)
            return self._diagnostic(
                statement, line_number, f"Circular COPY of {name} ({chain})"
            )

        if len(self._stack) >= self.max_depth:
            logger.warning("COPY depth limit %d reached at %s", self.max_depth, name)
            return self._diagnostic(
                statement,
                line_number,
                f"COPY nesting exceeds maximum depth of {self.max_depth}",
            )

        self._stack.append(source.name)
        lines = source.lines
        logger.debug("COPY %s resolved to %s (%d lines)", name, source.name, len(lines))
        return CopyResult(lines=lines, file_name=source.name)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _member_name(operands_text: Optional[str]) -> str:
        if not operands_text:
            return ""
        try:
            operands = split_operands(operands_text)
        except OperandSyntaxError:
            operands = operands_text.split(",")
        return operands[0].strip() if operands else ""

    @staticmethod
    def _diagnostic(
        statement: Statement,
        line_number: int,
        message: str,
        severity: str = "error",
    ) -> CopyResult:
        error = ParseError(
            line_number=line_number,
            column=0,
            message=message,
            severity=severity,
            excerpt=excerpt_of(statement.logical_text or statement.raw_text),
            source_file=statement.source_file,
        )
        return CopyResult(error=error)
