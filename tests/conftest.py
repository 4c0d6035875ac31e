from io import BytesIO
from typing import Any, Dict, List, Optional, Sequence

import pytest

from survey_engine.ingest.models import Response, ResponseMetadata
from survey_engine.ingest.vocabulary import CURRENT_SCHEMA, LEGACY_SCHEMA


CURRENT_HEADERS = [h for h, _ in CURRENT_SCHEMA.columns]
LEGACY_HEADERS = [h for h, _ in LEGACY_SCHEMA.columns]


def workbook_bytes(rows: Sequence[Sequence[Any]], title: str = "回答", extra_sheets: Optional[Dict[str, list]] = None) -> bytes:
    from openpyxl import Workbook

    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append(list(row))
    for name, sheet_rows in (extra_sheets or {}).items():
        extra = wb.create_sheet(name)
        for row in sheet_rows:
            extra.append(list(row))

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def make_response(row_number: int = 2, is_empty: bool = False, has_errors: bool = False, **answers: Any) -> Response:
    return Response(
        row_number=row_number,
        response_id=f"response_{row_number - 1}",
        answers=dict(answers),
        metadata=ResponseMetadata(
            is_empty=is_empty,
            has_errors=has_errors,
            error_messages=["Required field '会社名' is missing."] if has_errors else [],
        ),
    )


def current_row(**by_header: Any) -> List[Any]:
    return [by_header.get(h) for h in CURRENT_HEADERS]


@pytest.fixture
def build_workbook():
    return workbook_bytes


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def current_survey_bytes() -> bytes:
    rows = [
        CURRENT_HEADERS,
        current_row(**{
            "タイムスタンプ": "2024/04/01 09:30:00",
            "会社名": "ダイセー物流",
            "職種": "ドライバー",
            "性別": "男性",
            "年齢": "40代",
            "勤続年数": "5年以上",
            "業務に集中できる職場環境がある": "満足",
            "仕事内容に達成感があり満足を感じられる": 5,
            "ダイセーグループの他の会社のCrew（従業員）と交流がありますか？": "はい",
            "入社のきっかけを教えてください（複数回答可）": "給与, 勤務地",
            "困っていることがあれば教えてください（自由回答）": "残業時間が多い",
        }),
        current_row(**{
            "タイムスタンプ": "2024/04/02 10:00:00",
            "会社名": "ダイセー倉庫",
            "職種": "事務",
            "性別": "女性",
            "年齢": "30代",
            "勤続年数": "1年未満",
            "業務に集中できる職場環境がある": 2,
            "仕事内容に達成感があり満足を感じられる": "よくわからない",
            "ダイセーグループの他の会社のCrew（従業員）と交流がありますか？": "いいえ",
            "入社のきっかけを教えてください（複数回答可）": "勤務地",
            "困っていることがあれば教えてください（自由回答）": "給与が低い",
        }),
        [None] * len(CURRENT_HEADERS),
        current_row(**{
            "会社名": None,
            "職種": "ドライバー",
            "業務に集中できる職場環境がある": 4,
        }),
    ]
    return workbook_bytes(rows)
