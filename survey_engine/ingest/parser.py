# survey_engine/ingest/parser.py
from __future__ import annotations

import io
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from survey_engine.app.errors import WorkbookReadError
from survey_engine.app.logging import get_logger

from .models import (
    ColumnInfo,
    ColumnKind,
    DefaultedCell,
    ParsedSheet,
    ParseMetadata,
    ParseOptions,
    ParseResult,
    RawGrid,
    Response,
    ResponseMetadata,
)
from .normalizer import (
    NUMERIC_RE,
    AnswerKind,
    is_blank,
    is_number,
    normalize,
    stringify,
)
from .schema_detector import detect_format
from .vocabulary import DEFAULT_VOCABULARY, SurveyVocabulary

logger = get_logger(__name__)

DEFAULT_FILE_NAME = "uploaded-file.xlsx"
INFERENCE_SAMPLE_SIZE = 10
SAMPLE_VALUES = 5

DATE_RE = re.compile(r"\d{4}[/-]\d{1,2}[/-]\d{1,2}")


@dataclass(frozen=True)
class _Sheet:
    name: str
    sheet_names: List[str]
    rows: List[List[Any]]
    total_columns: int


def resolve_question_id(header: str, columns: Sequence[Tuple[str, str]]) -> Optional[str]:
    # Exact match first, then substring match in either direction.
    if not header:
        return None
    for key, question_id in columns:
        if header == key:
            return question_id
    for key, question_id in columns:
        if key in header or header in key:
            return question_id
    return None


class SurveySheetParser:
    """
    Turns an exported survey spreadsheet into Response records.

    A new parser (or at least a new parse_* call) is used per upload; no state
    is shared between calls.
    """

    def __init__(self, vocabulary: SurveyVocabulary = DEFAULT_VOCABULARY):
        self.vocabulary = vocabulary
        self._ordinal = frozenset(vocabulary.ordinal_questions)
        self._boolean = frozenset(vocabulary.boolean_questions)
        self._multi_select = frozenset(vocabulary.multi_select_questions)
        self._labels = vocabulary.ordinal_label_map()
        self._tokens = vocabulary.boolean_token_map()

    # -------------------------
    # Entry points
    # -------------------------

    def parse_file(
        self,
        buffer: bytes,
        options: Optional[ParseOptions] = None,
        file_name: Optional[str] = None,
    ) -> ParseResult:
        options = options or ParseOptions()
        file_label = file_name or DEFAULT_FILE_NAME
        logger.info("Parsing survey file", extra={"file_name": file_label})

        try:
            sheet = self._read_sheet(buffer, options.sheet_name, file_name)
            grid, warnings = self._build_grid(sheet.rows, options)
        except WorkbookReadError as e:
            logger.warning("Survey file could not be parsed", extra={"file_name": file_label, "error": str(e)})
            return ParseResult(success=False, errors=[str(e)])

        parsed = self.parse_grid(grid)

        metadata = ParseMetadata(
            file_name=file_label,
            sheet_name=sheet.name,
            total_rows=len(sheet.rows),
            total_columns=sheet.total_columns,
            header_row=options.header_row,
            data_rows=max(0, len(sheet.rows) - options.header_row - 1),
            processed_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            columns=parsed.columns,
            sheet_names=sheet.sheet_names,
        )

        logger.info(
            "Survey file parsed",
            extra={
                "file_name": file_label,
                "sheet_name": sheet.name,
                "schema": parsed.detection.schema,
                "responses": len(parsed.responses),
                "defaulted_cells": len(parsed.defaulted_cells),
            },
        )

        return ParseResult(
            success=True,
            data=parsed.responses,
            metadata=metadata,
            errors=[],
            warnings=warnings,
            detection=parsed.detection,
            defaulted_cells=parsed.defaulted_cells,
        )

    def parse_grid(self, grid: RawGrid) -> ParsedSheet:
        detection = detect_format(grid.header, self.vocabulary)
        header_columns = list(self.vocabulary.header_columns(detection.schema))

        columns = self._analyze_columns(grid.header, grid.rows, header_columns)
        kinds = {c.index: self._answer_kind(c) for c in columns}

        responses: List[Response] = []
        defaulted: List[DefaultedCell] = []
        for row_number, row in grid.numbered_rows():
            response, row_defaults = self._parse_row(row_number, row, columns, kinds, grid.header_row)
            responses.append(response)
            defaulted.extend(row_defaults)

        return ParsedSheet(
            responses=responses,
            columns=columns,
            detection=detection,
            defaulted_cells=defaulted,
        )

    # -------------------------
    # Reading
    # -------------------------

    def _read_sheet(self, buffer: bytes, sheet_name: Optional[str], file_name: Optional[str]) -> _Sheet:
        if not buffer:
            raise WorkbookReadError("The uploaded file is empty.")

        if file_name and Path(file_name).suffix.lower() == ".csv":
            try:
                df = pd.read_csv(
                    io.BytesIO(buffer),
                    header=None,
                    dtype=object,
                    encoding="utf-8-sig",
                    skip_blank_lines=False,
                    keep_default_na=False,
                    na_filter=False,
                )
            except Exception as e:
                raise WorkbookReadError(f"Failed to read CSV: {e}") from e
            name = Path(file_name).stem
            return _Sheet(name=name, sheet_names=[name], rows=self._frame_rows(df), total_columns=df.shape[1])

        try:
            with pd.ExcelFile(io.BytesIO(buffer)) as xls:
                sheet_names = [str(s) for s in xls.sheet_names]
                target = sheet_name or (sheet_names[0] if sheet_names else None)
                if target is None or target not in sheet_names:
                    raise WorkbookReadError(f"Sheet '{target}' was not found in the workbook.")
                # Keep "NA", "null", "N/A" etc. as text; is_blank decides what is empty.
                df = xls.parse(target, header=None, dtype=object, keep_default_na=False, na_filter=False)
        except WorkbookReadError:
            raise
        except Exception as e:
            raise WorkbookReadError(f"Failed to read Excel: {e}") from e

        return _Sheet(name=target, sheet_names=sheet_names, rows=self._frame_rows(df), total_columns=df.shape[1])

    @staticmethod
    def _frame_rows(df: pd.DataFrame) -> List[List[Any]]:
        # NaN/NaT -> None so downstream code sees one blank marker.
        df = df.astype(object)
        return df.where(pd.notnull(df), None).values.tolist()

    def _build_grid(self, rows: List[List[Any]], options: ParseOptions) -> Tuple[RawGrid, List[str]]:
        if not rows:
            raise WorkbookReadError("No data was found in the sheet.")

        header_row = options.header_row
        if header_row < 0 or header_row >= len(rows):
            raise WorkbookReadError(f"Header row {header_row} is outside the sheet ({len(rows)} rows).")

        warnings: List[str] = []
        numbered = [(header_row + 2 + i, row) for i, row in enumerate(rows[header_row + 1:])]

        if options.skip_empty_rows:
            numbered = [(n, row) for n, row in numbered if not all(is_blank(v) for v in row)]

        if options.max_rows is not None and len(numbered) > options.max_rows:
            warnings.append(
                f"Only the first {options.max_rows} of {len(numbered)} data rows were read."
            )
            numbered = numbered[: max(options.max_rows, 0)]

        grid = RawGrid(
            header=list(rows[header_row]),
            rows=[row for _, row in numbered],
            header_row=header_row,
            row_numbers=[n for n, _ in numbered],
        )
        return grid, warnings

    # -------------------------
    # Columns
    # -------------------------

    def _analyze_columns(
        self,
        header: Sequence[Any],
        rows: Sequence[Sequence[Any]],
        header_columns: Sequence[Tuple[str, str]],
    ) -> List[ColumnInfo]:
        columns: List[ColumnInfo] = []
        for index, raw_header in enumerate(header):
            values = [row[index] for row in rows if index < len(row) and not is_blank(row[index])]
            blank_header = is_blank(raw_header)
            text = f"Column {index + 1}" if blank_header else stringify(raw_header)

            columns.append(
                ColumnInfo(
                    index=index,
                    header=text,
                    data_type=self.infer_data_type(values),
                    sample_values=[stringify(v) for v in values[:SAMPLE_VALUES]],
                    null_count=len(rows) - len(values),
                    question_id=None if blank_header else resolve_question_id(text, header_columns),
                )
            )
        return columns

    def infer_data_type(self, values: Sequence[Any]) -> ColumnKind:
        if not values:
            return "text"
        kinds = {self._value_kind(v) for v in values[:INFERENCE_SAMPLE_SIZE]}
        if len(kinds) == 1:
            return kinds.pop()
        return "mixed"

    def _value_kind(self, value: Any) -> ColumnKind:
        if isinstance(value, (bool, np.bool_)):
            return "boolean"
        if is_number(value):
            return "number"
        if isinstance(value, (datetime, date)):
            return "date"

        s = str(value).strip()
        if NUMERIC_RE.match(s) or s in self._labels:
            return "number"
        if DATE_RE.search(s):
            return "date"
        if s.casefold() in self._tokens:
            return "boolean"
        return "text"

    def _answer_kind(self, column: ColumnInfo) -> Optional[AnswerKind]:
        qid = column.question_id
        if qid in self._ordinal:
            return "ordinal"
        if qid in self._boolean:
            return "boolean"
        if qid in self._multi_select:
            return "multi_select"
        if qid == "timestamp" or column.data_type == "date":
            return "date"
        if column.data_type == "number":
            return "number"
        if column.data_type == "boolean":
            return "boolean"
        if column.data_type == "mixed":
            return None
        return "text"

    # -------------------------
    # Rows
    # -------------------------

    def _mixed_kind(self, value: Any) -> AnswerKind:
        # Mixed columns keep native numbers and dates; everything else is text.
        if is_number(value):
            return "number"
        if isinstance(value, (datetime, date)):
            return "date"
        if isinstance(value, (bool, np.bool_)):
            return "boolean"
        return "text"

    def _parse_row(
        self,
        row_number: int,
        row: Sequence[Any],
        columns: Sequence[ColumnInfo],
        kinds: Dict[int, Optional[AnswerKind]],
        header_row: int,
    ) -> Tuple[Response, List[DefaultedCell]]:
        answers: Dict[str, Any] = {}
        unmapped: Dict[str, Any] = {}
        defaulted: List[DefaultedCell] = []
        is_empty = True

        for column in columns:
            value = row[column.index] if column.index < len(row) else None
            if is_blank(value):
                continue
            is_empty = False

            kind = kinds[column.index] or self._mixed_kind(value)
            result = normalize(value, kind, self.vocabulary)
            if result.defaulted:
                defaulted.append(DefaultedCell(row=row_number, column=column.header, raw_value=stringify(value)))
            if result.value is None:
                continue

            target = answers if column.question_id else unmapped
            target[column.answer_key] = result.value

        errors: List[str] = []
        if not is_empty:
            for question_id, header in self.vocabulary.required_fields:
                if is_blank(answers.get(question_id)) and is_blank(unmapped.get(header)):
                    errors.append(f"Required field '{header}' is missing.")

        timestamp = answers.get("timestamp")
        response = Response(
            row_number=row_number,
            response_id=f"response_{row_number - header_row - 1}",
            timestamp=timestamp if isinstance(timestamp, str) else None,
            answers=answers,
            unmapped=unmapped,
            metadata=ResponseMetadata(
                is_empty=is_empty,
                has_errors=bool(errors),
                error_messages=errors,
            ),
        )
        return response, defaulted
