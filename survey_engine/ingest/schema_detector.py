# survey_engine/ingest/schema_detector.py
from __future__ import annotations

from typing import Any, List, Sequence, Set

from .models import FormatDetectionResult
from .normalizer import is_blank
from .vocabulary import DEFAULT_VOCABULARY, SchemaVocabulary, SurveyVocabulary

CURRENT_THRESHOLD = 0.8
LEGACY_THRESHOLD = 0.6


def _score(header_set: Set[str], schema: SchemaVocabulary) -> float:
    expected = set(schema.detection_headers)
    if not expected:
        return 0.0
    return len(header_set & expected) / len(expected)


def clean_headers(headers: Sequence[Any]) -> List[str]:
    return [str(h).strip() for h in headers if not is_blank(h)]


def detect_format(
    headers: Sequence[Any], vocabulary: SurveyVocabulary = DEFAULT_VOCABULARY
) -> FormatDetectionResult:
    """
    Scores the header row against the current and legacy vocabularies.

    The current schema wins above 80% coverage, then legacy above 60%;
    otherwise the result is `unknown` with the better of the two ratios.
    Output lists do not depend on header order: matched/missing follow the
    vocabulary order, extras are sorted.
    """
    header_set = set(clean_headers(headers))

    current_score = _score(header_set, vocabulary.current)
    legacy_score = _score(header_set, vocabulary.legacy)

    if current_score > CURRENT_THRESHOLD:
        schema, confidence, target = "current", current_score, vocabulary.current
    elif legacy_score > LEGACY_THRESHOLD:
        schema, confidence, target = "legacy", legacy_score, vocabulary.legacy
    else:
        schema = "unknown"
        confidence = max(current_score, legacy_score)
        # Report lists against whichever vocabulary came closer.
        target = vocabulary.current if current_score >= legacy_score else vocabulary.legacy

    expected = list(dict.fromkeys(target.detection_headers))
    return FormatDetectionResult(
        schema=schema,
        confidence=round(confidence, 2),
        matched_headers=[h for h in expected if h in header_set],
        missing_headers=[h for h in expected if h not in header_set],
        extra_headers=sorted(header_set - set(expected)),
    )
