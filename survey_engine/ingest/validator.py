# survey_engine/ingest/validator.py
from __future__ import annotations

from typing import List, Optional, Sequence

from survey_engine.app.logging import get_logger

from .models import (
    ColumnInfo,
    DefaultedCell,
    FormatDetectionResult,
    Response,
    ValidationError,
    ValidationResult,
    ValidationWarning,
    non_empty,
)
from .normalizer import is_blank
from .vocabulary import DEFAULT_VOCABULARY, SurveyVocabulary

logger = get_logger(__name__)


def validate(
    responses: Sequence[Response],
    columns: Sequence[ColumnInfo],
    *,
    detection: Optional[FormatDetectionResult] = None,
    defaulted_cells: Sequence[DefaultedCell] = (),
    min_responses: int = 10,
    vocabulary: SurveyVocabulary = DEFAULT_VOCABULARY,
) -> ValidationResult:
    """
    Aggregates data-quality findings over a parsed response set.

    Errors block nothing by themselves; the caller decides whether to drop
    error-flagged rows. Inputs are never modified.
    """
    errors: List[ValidationError] = []
    warnings: List[ValidationWarning] = []
    suggestions: List[str] = []

    empty = [r for r in responses if r.metadata.is_empty]
    if empty:
        warnings.append(
            ValidationWarning(
                message=f"{len(empty)} empty responses were found.",
                affected_rows=[r.row_number for r in empty],
                suggestion="Consider removing the empty rows from the sheet.",
            )
        )

    filled = non_empty(responses)
    headers_by_id = {c.question_id: c.header for c in columns if c.question_id}
    for question_id, fallback_header in vocabulary.required_fields:
        column = headers_by_id.get(question_id, fallback_header)
        for r in filled:
            if is_blank(r.answers.get(question_id)) and is_blank(r.unmapped.get(fallback_header)):
                errors.append(
                    ValidationError(
                        row=r.row_number,
                        column=column,
                        message=f"Required field '{column}' is missing.",
                    )
                )

    ordinal = set(vocabulary.ordinal_questions)
    if filled and not any(c.question_id in ordinal for c in columns):
        warnings.append(
            ValidationWarning(
                message="No satisfaction questions were recognized in the header row.",
                suggestion="Check that the file is an export of the employee satisfaction survey.",
            )
        )

    if detection is not None and detection.schema == "unknown":
        warnings.append(
            ValidationWarning(
                message=(
                    f"The header row does not match a known questionnaire version "
                    f"(best match {detection.confidence:.0%})."
                ),
                suggestion="Unrecognized columns are kept under their original header text.",
            )
        )

    if defaulted_cells:
        rows = sorted({c.row for c in defaulted_cells})
        warnings.append(
            ValidationWarning(
                message=f"{len(defaulted_cells)} cells could not be interpreted and were given default values.",
                affected_rows=rows,
                suggestion="Review the affected rows for unexpected answer labels.",
            )
        )

    if len(filled) < min_responses:
        suggestions.append(
            f"Only {len(filled)} responses were submitted; statistical results may be unreliable "
            f"with fewer than {min_responses}."
        )

    result = ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        suggestions=suggestions,
    )
    logger.info(
        "Validation finished",
        extra={"errors": len(errors), "warnings": len(warnings), "responses": len(responses)},
    )
    return result
