# survey_engine/ingest/normalizer.py
from __future__ import annotations

import math
import re
import warnings
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from functools import lru_cache
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar, Union

import numpy as np
import pandas as pd

from .vocabulary import DEFAULT_VOCABULARY, SurveyVocabulary


T = TypeVar("T")

AnswerKind = Literal["ordinal", "boolean", "multi_select", "date", "number", "text"]

NUMERIC_RE = re.compile(r"^[+-]?\d+(?:\.\d+)?$")
# Bare words such as "now" or "today" are not dates.
KEYWORD_RE = re.compile(r"^[A-Za-z\s]+$")


@dataclass(frozen=True)
class Normalized(Generic[T]):
    """
    Outcome of normalizing one cell.

    `defaulted` is True when the input was not recognized and `value` is the
    fallback for the target kind (midpoint ordinal, False, None date).
    """

    value: T
    defaulted: bool = False

    @staticmethod
    def present(value: Any) -> "Normalized[Any]":
        return Normalized(value=value, defaulted=False)

    @staticmethod
    def fallback(value: Any) -> "Normalized[Any]":
        return Normalized(value=value, defaulted=True)


# -------------------------
# Helpers
# -------------------------

def is_blank(value: Any) -> bool:
    # None / NaN / NaT / whitespace-only strings count as empty cells.
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict, set)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def is_number(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, (int, float, np.integer, np.floating))


def parse_number(text: str) -> Optional[float]:
    s = text.strip()
    if not NUMERIC_RE.match(s):
        return None
    try:
        return float(s)
    except ValueError:
        return None


def round_half_up(x: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(x * factor + 0.5) / factor


def stringify(value: Any) -> str:
    # Stable string form for tallies and samples.
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if is_number(value):
        f = float(value)
        if math.isfinite(f) and f.is_integer():
            return str(int(f))
        return str(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify(v) for v in value)
    return str(value).strip()


@lru_cache(maxsize=16)
def _ordinal_labels(vocabulary: SurveyVocabulary) -> Dict[str, int]:
    return vocabulary.ordinal_label_map()


@lru_cache(maxsize=16)
def _boolean_tokens(vocabulary: SurveyVocabulary) -> Dict[str, bool]:
    return vocabulary.boolean_token_map()


def _clamp_ordinal(x: float) -> int:
    return int(max(1, min(5, round_half_up(x))))


def _to_iso_utc(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return f"{dt.year:04d}-" + dt.strftime("%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}Z"


# -------------------------
# Normalizers (total: never raise)
# -------------------------

def normalize_ordinal(raw: Any, vocabulary: SurveyVocabulary = DEFAULT_VOCABULARY) -> Normalized[int]:
    midpoint = vocabulary.ordinal_midpoint

    if is_number(raw):
        x = float(raw)
        if not math.isfinite(x):
            return Normalized.fallback(midpoint)
        return Normalized.present(_clamp_ordinal(x))

    if isinstance(raw, str):
        s = raw.strip()
        labels = _ordinal_labels(vocabulary)
        if s in labels:
            return Normalized.present(labels[s])
        x = parse_number(s)
        if x is not None:
            return Normalized.present(_clamp_ordinal(x))

    return Normalized.fallback(midpoint)


def normalize_boolean(raw: Any, vocabulary: SurveyVocabulary = DEFAULT_VOCABULARY) -> Normalized[bool]:
    if isinstance(raw, (bool, np.bool_)):
        return Normalized.present(bool(raw))
    if is_blank(raw):
        return Normalized.fallback(False)

    token = str(raw).strip().casefold()
    tokens = _boolean_tokens(vocabulary)
    if token in tokens:
        return Normalized.present(tokens[token])
    return Normalized.fallback(False)


def normalize_multi_select(
    raw: Any, vocabulary: SurveyVocabulary = DEFAULT_VOCABULARY
) -> Normalized[List[str]]:
    if isinstance(raw, (list, tuple)):
        items = [str(v).strip() for v in raw if not is_blank(v)]
        return Normalized.present([s for s in items if s])
    if is_blank(raw):
        return Normalized.present([])

    parts = str(raw).strip().split(vocabulary.multi_select_delimiter)
    return Normalized.present([p.strip() for p in parts if p.strip()])


def normalize_date(raw: Any) -> Normalized[Optional[str]]:
    if is_blank(raw):
        return Normalized.fallback(None)

    if isinstance(raw, datetime):
        return Normalized.present(_to_iso_utc(raw))
    if isinstance(raw, date):
        return Normalized.present(_to_iso_utc(datetime.combine(raw, time())))
    if not isinstance(raw, str) or KEYWORD_RE.match(raw.strip()):
        return Normalized.fallback(None)

    try:
        with warnings.catch_warnings():
            # pandas warns when it has to guess a per-element format
            warnings.simplefilter("ignore")
            parsed = pd.to_datetime(raw.strip(), errors="coerce", utc=True)
    except (ValueError, TypeError, OverflowError):
        return Normalized.fallback(None)

    if parsed is None or pd.isna(parsed):
        return Normalized.fallback(None)
    return Normalized.present(_to_iso_utc(parsed.to_pydatetime()))


def normalize_number(raw: Any, vocabulary: SurveyVocabulary = DEFAULT_VOCABULARY) -> Normalized[Any]:
    """
    Generic numeric cell: ints stay ints, other numbers become floats, known
    ordinal labels become their score. Anything else is kept as trimmed text.
    """
    if is_number(raw):
        x = float(raw)
        if math.isfinite(x) and x.is_integer():
            return Normalized.present(int(x))
        return Normalized.present(x)

    if isinstance(raw, str):
        s = raw.strip()
        x = parse_number(s)
        if x is not None:
            return Normalized.present(int(x) if x.is_integer() else x)
        labels = _ordinal_labels(vocabulary)
        if s in labels:
            return Normalized.present(labels[s])
        return Normalized.present(s)

    return Normalized.present(raw)


def normalize_text(raw: Any) -> Normalized[str]:
    if isinstance(raw, str):
        return Normalized.present(raw.strip())
    return Normalized.present(stringify(raw))


def normalize(
    raw: Any, kind: AnswerKind, vocabulary: SurveyVocabulary = DEFAULT_VOCABULARY
) -> Normalized[Union[int, float, bool, str, List[str], None]]:
    if kind == "ordinal":
        return normalize_ordinal(raw, vocabulary)
    if kind == "boolean":
        return normalize_boolean(raw, vocabulary)
    if kind == "multi_select":
        return normalize_multi_select(raw, vocabulary)
    if kind == "date":
        return normalize_date(raw)
    if kind == "number":
        return normalize_number(raw, vocabulary)
    return normalize_text(raw)
