"""
Diagnostic types for AcuMate IR.

Positions are 0-indexed (line, character) pairs, matching what editor
diagnostics surfaces expect.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class DiagnosticSeverity(StrEnum):
    """Severity of a reported diagnostic."""

    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"
    HINT = "hint"


class DiagnosticSource(StrEnum):
    """Diagnostic families; also used as suppression codes."""

    HTML = "htmlValidator"
    GRAPH_INFO = "graphInfo"


class Position(BaseModel):
    line: int
    character: int

    model_config = ConfigDict(frozen=True)


class Range(BaseModel):
    start: Position
    end: Position

    model_config = ConfigDict(frozen=True)


class Diagnostic(BaseModel):
    """
    A single validation finding.

    Attributes:
        range: Source range the finding applies to
        message: Human-readable message naming the offending identifier
        severity: Finding severity
        source: Diagnostic family
        code: Suppression code (defaults to the source)
        origin_class: Screen class the finding originates from, if known
    """

    range: Range
    message: str
    severity: DiagnosticSeverity = DiagnosticSeverity.WARNING
    source: str
    code: str | None = None
    origin_class: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def line(self) -> int:
        return self.range.start.line

    @property
    def effective_code(self) -> str:
        return self.code or self.source
