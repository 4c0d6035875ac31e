# survey_engine/ingest/models.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple


ColumnKind = Literal["number", "date", "boolean", "text", "mixed"]
SchemaName = Literal["current", "legacy", "unknown"]
Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class RawGrid:
    # Header row plus data rows exactly as read from the sheet (None for blank cells).
    header: List[Any]
    rows: List[List[Any]]
    # Zero-based sheet row index of `header`; data row i sits at header_row + 1 + i.
    header_row: int = 0
    # 1-based sheet row numbers of `rows`, when rows were filtered after reading.
    row_numbers: List[int] = field(default_factory=list)

    def numbered_rows(self) -> List[Tuple[int, List[Any]]]:
        numbers = self.row_numbers or [self.header_row + 2 + i for i in range(len(self.rows))]
        return list(zip(numbers, self.rows))


@dataclass(frozen=True)
class ColumnInfo:
    index: int
    header: str
    data_type: ColumnKind
    sample_values: List[str]
    null_count: int
    question_id: Optional[str] = None

    @property
    def answer_key(self) -> str:
        return self.question_id or self.header


@dataclass(frozen=True)
class FormatDetectionResult:
    schema: SchemaName
    confidence: float
    matched_headers: List[str]
    missing_headers: List[str]
    extra_headers: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ResponseMetadata:
    is_empty: bool
    has_errors: bool = False
    error_messages: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Response:
    """
    One survey submission.

    answers holds only canonical question ids (see QuestionId); headers that did
    not resolve to an id keep their raw text as key in `unmapped`.
    """

    row_number: int
    metadata: ResponseMetadata
    answers: Dict[str, Any] = field(default_factory=dict)
    unmapped: Dict[str, Any] = field(default_factory=dict)
    response_id: Optional[str] = None
    timestamp: Optional[str] = None

    def get(self, key: str, default: Any = None) -> Any:
        if key in self.answers:
            return self.answers[key]
        return self.unmapped.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_number": self.row_number,
            "response_id": self.response_id,
            "timestamp": self.timestamp,
            "answers": {**self.unmapped, **self.answers},
            "metadata": asdict(self.metadata),
        }


@dataclass(frozen=True)
class DefaultedCell:
    # A cell whose normalized value came from a fallback rather than the input.
    row: int
    column: str
    raw_value: str


@dataclass(frozen=True)
class ParseOptions:
    sheet_name: Optional[str] = None
    header_row: int = 0
    skip_empty_rows: bool = False
    max_rows: Optional[int] = None


@dataclass(frozen=True)
class ParseMetadata:
    file_name: str
    sheet_name: str
    total_rows: int
    total_columns: int
    header_row: int
    data_rows: int
    processed_at: str
    columns: List[ColumnInfo] = field(default_factory=list)
    sheet_names: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ParsedSheet:
    responses: List[Response]
    columns: List[ColumnInfo]
    detection: FormatDetectionResult
    defaulted_cells: List[DefaultedCell] = field(default_factory=list)


@dataclass(frozen=True)
class ParseResult:
    success: bool
    data: Optional[List[Response]] = None
    metadata: Optional[ParseMetadata] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    detection: Optional[FormatDetectionResult] = None
    defaulted_cells: List[DefaultedCell] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": [r.to_dict() for r in self.data] if self.data is not None else None,
            "metadata": asdict(self.metadata) if self.metadata is not None else None,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "detection": self.detection.to_dict() if self.detection is not None else None,
            "defaulted_cells": [asdict(c) for c in self.defaulted_cells],
        }


@dataclass(frozen=True)
class ValidationError:
    row: int
    column: str
    message: str
    severity: Severity = "error"


@dataclass(frozen=True)
class ValidationWarning:
    message: str
    affected_rows: List[int] = field(default_factory=list)
    suggestion: Optional[str] = None


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def non_empty(responses: Sequence[Response]) -> List[Response]:
    return [r for r in responses if not r.metadata.is_empty]
