# survey_engine/ingest/vocabulary.py
from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterator, Optional, Tuple


class QuestionId(str, Enum):
    # Profile
    TIMESTAMP = "timestamp"
    COMPANY_NAME = "company_name"
    POSITION = "position"
    JOB_TYPE = "job_type"
    GENDER = "gender"
    AGE = "age"
    TENURE = "tenure"

    # Ordinal questions, current questionnaire
    SALARY_SATISFACTION = "salary_satisfaction"
    JOB_SATISFACTION = "job_satisfaction"
    OPINION_EXPRESSION = "opinion_expression"
    SUPPORTIVE_CULTURE = "supportive_culture"
    JUNIOR_EDUCATION = "junior_education"
    LONG_TERM_EDUCATION = "long_term_education"
    COMPLIANCE_MANAGEMENT = "compliance_management"
    FAIR_EVALUATION = "fair_evaluation"
    WORK_ENVIRONMENT = "work_environment"
    EQUIPMENT_SUPPORT = "equipment_support"
    COMMUNICATION = "communication"
    SUPERVISION_QUALITY = "supervision_quality"
    COMPENSATION_FAIRNESS = "compensation_fairness"
    OVERTIME_BALANCE = "overtime_balance"
    ENVIRONMENT_IMPROVEMENT = "environment_improvement"
    WORKLOAD_DISTRIBUTION = "workload_distribution"
    VACATION_FLEXIBILITY = "vacation_flexibility"
    PHYSICAL_HEALTH = "physical_health"
    MENTAL_HEALTH = "mental_health"
    HARASSMENT_PREVENTION = "harassment_prevention"
    COMPANY_GROWTH = "company_growth"
    EMPLOYEE_FOCUSED_MANAGEMENT = "employee_focused_management"
    GOAL_ACHIEVEMENT = "goal_achievement"
    CAREER_SATISFACTION = "career_satisfaction"
    COMPANY_PRIDE = "company_pride"
    FIVE_YEAR_COMMITMENT = "five_year_commitment"

    # Ordinal questions, legacy questionnaire
    WORK_LIFE_BALANCE = "work_life_balance"
    WORKPLACE_RELATIONSHIPS = "workplace_relationships"
    EQUIPMENT_FACILITIES = "equipment_facilities"
    SKILL_UTILIZATION = "skill_utilization"
    WORKLOAD = "workload"
    AUTONOMY = "autonomy"
    GROWTH_OPPORTUNITIES = "growth_opportunities"
    CAREER_DEVELOPMENT = "career_development"
    TRAINING_PROGRAMS = "training_programs"
    PROMOTION_FAIRNESS = "promotion_fairness"
    COMPENSATION = "compensation"
    BENEFITS = "benefits"
    EVALUATION_SYSTEM = "evaluation_system"
    JOB_SECURITY = "job_security"
    MANAGEMENT_TRUST = "management_trust"
    COMPANY_DIRECTION = "company_direction"
    ORGANIZATIONAL_CULTURE = "organizational_culture"
    OVERALL_SATISFACTION = "overall_satisfaction"
    RECOMMENDATION = "recommendation"

    # Group awareness
    GROUP_COMPANIES_KNOWN = "group_companies_known"
    GROUP_EMPLOYEE_INTERACTION = "group_employee_interaction"
    HOLDINGS_AWARENESS = "holdings_awareness"

    # Multi-select
    HIRING_REASONS = "hiring_reasons"
    MAGAZINE_FEEDBACK = "magazine_feedback"

    # Free text
    CONCERNS = "concerns"
    HARASSMENT_WITNESS = "harassment_witness"
    HARASSMENT_DETAILS = "harassment_details"
    WORKPLACE_POSITIVES = "workplace_positives"
    IMPROVEMENT_SUGGESTIONS = "improvement_suggestions"
    DX_OPPORTUNITIES = "dx_opportunities"


KNOWN_QUESTION_IDS: FrozenSet[str] = frozenset(q.value for q in QuestionId)


def _ids(*questions: QuestionId) -> Tuple[str, ...]:
    return tuple(q.value for q in questions)


@dataclass(frozen=True)
class SchemaVocabulary:
    """
    Header vocabulary of one questionnaire version.

    columns: ordered (header, question_id) pairs used for header resolution.
    detection_headers: headers scored by the format detector; defaults to every
    header in `columns` when left empty.
    """

    name: str
    columns: Tuple[Tuple[str, str], ...]
    detection_headers: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.detection_headers:
            object.__setattr__(self, "detection_headers", tuple(h for h, _ in self.columns))

    def header_map(self) -> Dict[str, str]:
        return dict(self.columns)


CURRENT_SCHEMA = SchemaVocabulary(
    name="current",
    columns=(
        ("タイムスタンプ", QuestionId.TIMESTAMP.value),
        ("会社名", QuestionId.COMPANY_NAME.value),
        ("役職", QuestionId.POSITION.value),
        ("職種", QuestionId.JOB_TYPE.value),
        ("性別", QuestionId.GENDER.value),
        ("年齢", QuestionId.AGE.value),
        ("勤続年数", QuestionId.TENURE.value),
        ("給与や労働時間に満足している", QuestionId.SALARY_SATISFACTION.value),
        ("仕事内容に達成感があり満足を感じられる", QuestionId.JOB_SATISFACTION.value),
        ("自分の意見を率直に言いやすい組織だ", QuestionId.OPINION_EXPRESSION.value),
        ("社員を尊重し仕事を任せ、周囲がそれを支援する組織風土がある", QuestionId.SUPPORTIVE_CULTURE.value),
        ("若手の社員教育を十分におこなっていると思う", QuestionId.JUNIOR_EDUCATION.value),
        ("適切な社員教育が実施されており、長く勤められる組織だと思う", QuestionId.LONG_TERM_EDUCATION.value),
        ("法令を遵守するための管理や教育を徹底していると思う", QuestionId.COMPLIANCE_MANAGEMENT.value),
        ("公平で納得性の高い人事評価を受けていると感じる", QuestionId.FAIR_EVALUATION.value),
        ("業務に集中できる職場環境がある", QuestionId.WORK_ENVIRONMENT.value),
        (
            "仕事で使う車両や機材、備品等に不具合がある場合は、直ちに対応してもらえる安心感がある",
            QuestionId.EQUIPMENT_SUPPORT.value,
        ),
        ("上司や同僚と業務に必要な連携やコミュニケーションができている", QuestionId.COMMUNICATION.value),
        ("上司の指示や指導は適切であると感じられる", QuestionId.SUPERVISION_QUALITY.value),
        ("給与は業務内容や質に相応しいと感じる", QuestionId.COMPENSATION_FAIRNESS.value),
        ("残業時間は負担にならない範囲に収まっている", QuestionId.OVERTIME_BALANCE.value),
        ("会社は労働環境の整備や改善に取り組んでいると思う", QuestionId.ENVIRONMENT_IMPROVEMENT.value),
        ("業務分担が適切にされていると感じる", QuestionId.WORKLOAD_DISTRIBUTION.value),
        ("希望の日程や日数で休暇が取れている", QuestionId.VACATION_FLEXIBILITY.value),
        ("現在の業務は身体的な健康に悪影響を与えない", QuestionId.PHYSICAL_HEALTH.value),
        ("健康面で特に心配なことや自覚症状はない", QuestionId.MENTAL_HEALTH.value),
        ("ハラスメント対策が行われており、健全な組織運営ができていると思う", QuestionId.HARASSMENT_PREVENTION.value),
        ("これからも成長していく会社だと思う", QuestionId.COMPANY_GROWTH.value),
        ("Crew（従業員）のことを考えた経営が行われていると思う", QuestionId.EMPLOYEE_FOCUSED_MANAGEMENT.value),
        ("目標の実現に対して、前向きに行動できている", QuestionId.GOAL_ACHIEVEMENT.value),
        ("今の職業が気に入っており、今後も同じ職種で働き続けたい", QuestionId.CAREER_SATISFACTION.value),
        ("この会社で働いていることを家族や友人に自信をもって話せる", QuestionId.COMPANY_PRIDE.value),
        ("5年後もこの会社で働いていると思う", QuestionId.FIVE_YEAR_COMMITMENT.value),
        ("ダイセーグループの他の会社を何社ご存じですか？", QuestionId.GROUP_COMPANIES_KNOWN.value),
        ("ダイセーグループの他の会社のCrew（従業員）と交流がありますか？", QuestionId.GROUP_EMPLOYEE_INTERACTION.value),
        (
            "ダイセーグループの方針などを作る「ダイセーホールディングス」という会社があることをご存じですか？",
            QuestionId.HOLDINGS_AWARENESS.value,
        ),
        ("入社のきっかけを教えてください（複数回答可）", QuestionId.HIRING_REASONS.value),
        ("グループマガジンについてお答えください（複数回答可）", QuestionId.MAGAZINE_FEEDBACK.value),
        ("困っていることがあれば教えてください（自由回答）", QuestionId.CONCERNS.value),
        ("職場でハラスメントを受けた、または受けている人を見たことはありますか？", QuestionId.HARASSMENT_WITNESS.value),
        ("差し支えない範囲で、内容を教えてください（自由回答）", QuestionId.HARASSMENT_DETAILS.value),
        (
            "職場の良いところ、自社の取り組みでもっと広まって欲しいことを教えてください（自由回答）",
            QuestionId.WORKPLACE_POSITIVES.value,
        ),
        (
            "どうすればより良い職場になると思いますか？改善したいところを教えてください（自由回答）",
            QuestionId.IMPROVEMENT_SUGGESTIONS.value,
        ),
        (
            "デジタル技術を活用して業務の効率を上げることをDXと言いますが、"
            "DXで時間短縮や省人化ができると思う作業があれば教えてください（自由回答）",
            QuestionId.DX_OPPORTUNITIES.value,
        ),
    ),
)

LEGACY_SCHEMA = SchemaVocabulary(
    name="legacy",
    columns=(
        ("タイムスタンプ", QuestionId.TIMESTAMP.value),
        ("会社名", QuestionId.COMPANY_NAME.value),
        ("職種", QuestionId.JOB_TYPE.value),
        ("性別", QuestionId.GENDER.value),
        ("年代", QuestionId.AGE.value),
        ("勤続年数", QuestionId.TENURE.value),
        ("職場環境への満足度", QuestionId.WORK_ENVIRONMENT.value),
        ("ワークライフバランス", QuestionId.WORK_LIFE_BALANCE.value),
        ("職場の人間関係", QuestionId.WORKPLACE_RELATIONSHIPS.value),
        ("設備・施設の充実度", QuestionId.EQUIPMENT_FACILITIES.value),
        ("仕事内容への満足度", QuestionId.JOB_SATISFACTION.value),
        ("スキル活用度", QuestionId.SKILL_UTILIZATION.value),
        ("業務負荷の適正性", QuestionId.WORKLOAD.value),
        ("業務の自主性", QuestionId.AUTONOMY.value),
        ("成長機会の提供", QuestionId.GROWTH_OPPORTUNITIES.value),
        ("キャリア開発支援", QuestionId.CAREER_DEVELOPMENT.value),
        ("研修・教育制度", QuestionId.TRAINING_PROGRAMS.value),
        ("昇進・昇格の公平性", QuestionId.PROMOTION_FAIRNESS.value),
        ("給与・賞与への満足度", QuestionId.COMPENSATION.value),
        ("福利厚生の充実度", QuestionId.BENEFITS.value),
        ("人事評価制度", QuestionId.EVALUATION_SYSTEM.value),
        ("雇用の安定性", QuestionId.JOB_SECURITY.value),
        ("経営陣への信頼", QuestionId.MANAGEMENT_TRUST.value),
        ("社内コミュニケーション", QuestionId.COMMUNICATION.value),
        ("会社の方向性への共感", QuestionId.COMPANY_DIRECTION.value),
        ("組織文化・風土", QuestionId.ORGANIZATIONAL_CULTURE.value),
        ("総合満足度", QuestionId.OVERALL_SATISFACTION.value),
        ("他者への推奨度", QuestionId.RECOMMENDATION.value),
        ("改善提案・要望", QuestionId.IMPROVEMENT_SUGGESTIONS.value),
        ("不安・懸念事項", QuestionId.CONCERNS.value),
    ),
    detection_headers=(
        "タイムスタンプ", "会社名", "職種", "性別", "年代", "勤続年数",
        "職場環境への満足度", "ワークライフバランス", "改善提案・要望",
    ),
)


@dataclass(frozen=True)
class SurveyVocabulary:
    current: SchemaVocabulary = CURRENT_SCHEMA
    legacy: SchemaVocabulary = LEGACY_SCHEMA

    # Label -> score for ordinal answers (5-level satisfaction + 4-level agreement).
    ordinal_labels: Tuple[Tuple[str, int], ...] = (
        ("非常に満足", 5),
        ("満足", 4),
        ("どちらでもない", 3),
        ("不満", 2),
        ("非常に不満", 1),
        ("強くそう思う", 5),
        ("そう思う", 4),
        ("そう思わない", 2),
        ("全くそう思わない", 1),
    )
    ordinal_midpoint: int = 3

    # Compared case-insensitively.
    boolean_tokens: Tuple[Tuple[str, bool], ...] = (
        ("はい", True),
        ("yes", True),
        ("true", True),
        ("いいえ", False),
        ("no", False),
        ("false", False),
    )
    multi_select_delimiter: str = ", "

    ordinal_questions: Tuple[str, ...] = _ids(
        QuestionId.SALARY_SATISFACTION, QuestionId.JOB_SATISFACTION, QuestionId.OPINION_EXPRESSION,
        QuestionId.SUPPORTIVE_CULTURE, QuestionId.JUNIOR_EDUCATION, QuestionId.LONG_TERM_EDUCATION,
        QuestionId.COMPLIANCE_MANAGEMENT, QuestionId.FAIR_EVALUATION, QuestionId.WORK_ENVIRONMENT,
        QuestionId.EQUIPMENT_SUPPORT, QuestionId.COMMUNICATION, QuestionId.SUPERVISION_QUALITY,
        QuestionId.COMPENSATION_FAIRNESS, QuestionId.OVERTIME_BALANCE, QuestionId.ENVIRONMENT_IMPROVEMENT,
        QuestionId.WORKLOAD_DISTRIBUTION, QuestionId.VACATION_FLEXIBILITY, QuestionId.PHYSICAL_HEALTH,
        QuestionId.MENTAL_HEALTH, QuestionId.HARASSMENT_PREVENTION, QuestionId.COMPANY_GROWTH,
        QuestionId.EMPLOYEE_FOCUSED_MANAGEMENT, QuestionId.GOAL_ACHIEVEMENT, QuestionId.CAREER_SATISFACTION,
        QuestionId.COMPANY_PRIDE, QuestionId.FIVE_YEAR_COMMITMENT,
        QuestionId.WORK_LIFE_BALANCE, QuestionId.WORKPLACE_RELATIONSHIPS, QuestionId.EQUIPMENT_FACILITIES,
        QuestionId.SKILL_UTILIZATION, QuestionId.WORKLOAD, QuestionId.AUTONOMY,
        QuestionId.GROWTH_OPPORTUNITIES, QuestionId.CAREER_DEVELOPMENT, QuestionId.TRAINING_PROGRAMS,
        QuestionId.PROMOTION_FAIRNESS, QuestionId.COMPENSATION, QuestionId.BENEFITS,
        QuestionId.EVALUATION_SYSTEM, QuestionId.JOB_SECURITY, QuestionId.MANAGEMENT_TRUST,
        QuestionId.COMPANY_DIRECTION, QuestionId.ORGANIZATIONAL_CULTURE, QuestionId.OVERALL_SATISFACTION,
        QuestionId.RECOMMENDATION,
    )
    boolean_questions: Tuple[str, ...] = _ids(
        QuestionId.GROUP_EMPLOYEE_INTERACTION, QuestionId.HOLDINGS_AWARENESS,
    )
    multi_select_questions: Tuple[str, ...] = _ids(
        QuestionId.HIRING_REASONS, QuestionId.MAGAZINE_FEEDBACK,
    )
    categorical_questions: Tuple[str, ...] = _ids(
        QuestionId.COMPANY_NAME, QuestionId.POSITION, QuestionId.JOB_TYPE, QuestionId.GENDER,
        QuestionId.AGE, QuestionId.TENURE, QuestionId.GROUP_COMPANIES_KNOWN,
        QuestionId.GROUP_EMPLOYEE_INTERACTION, QuestionId.HOLDINGS_AWARENESS,
        QuestionId.HARASSMENT_WITNESS, QuestionId.HIRING_REASONS, QuestionId.MAGAZINE_FEEDBACK,
    )
    text_questions: Tuple[str, ...] = _ids(
        QuestionId.CONCERNS, QuestionId.IMPROVEMENT_SUGGESTIONS, QuestionId.WORKPLACE_POSITIVES,
        QuestionId.HARASSMENT_DETAILS, QuestionId.DX_OPPORTUNITIES,
    )
    summary_questions: Tuple[str, ...] = _ids(
        QuestionId.WORK_ENVIRONMENT, QuestionId.WORK_LIFE_BALANCE, QuestionId.JOB_SATISFACTION,
        QuestionId.OVERALL_SATISFACTION, QuestionId.COMPENSATION, QuestionId.MANAGEMENT_TRUST,
    )

    # (question_id, raw header fallback)
    required_fields: Tuple[Tuple[str, str], ...] = ((QuestionId.COMPANY_NAME.value, "会社名"),)

    # First matching category wins; unmatched texts fall into `fallback_category`.
    text_categories: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
        ("労働環境・職場", ("職場", "環境", "設備", "施設", "残業", "労働時間", "ワークライフ", "休暇", "有給")),
        ("待遇・給与", ("給与", "賞与", "昇給", "昇進", "評価", "待遇", "福利厚生", "手当")),
        ("人間関係・コミュニケーション", ("人間関係", "コミュニケーション", "上司", "同僚", "部下", "チーム")),
        ("業務内容・スキル", ("業務", "仕事", "スキル", "成長", "研修", "教育", "キャリア", "専門")),
        ("経営・組織", ("経営", "組織", "会社", "方針", "戦略", "ビジョン", "将来", "安定")),
    )
    fallback_category: str = "その他"

    # A text counts once under every harassment type whose keywords it mentions.
    harassment_types: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
        ("パワーハラスメント", ("パワハラ", "威圧", "暴言", "叱責", "理不尽", "圧力")),
        ("セクシャルハラスメント", ("セクハラ", "性的", "身体接触", "不適切")),
        ("その他のハラスメント", ("いじめ", "無視", "嫌がらせ", "差別", "排除")),
    )

    # Same multi-label rule; texts matching nothing go to `dx_fallback_category`.
    dx_categories: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
        ("事務作業自動化", ("書類", "資料作成", "Excel", "入力", "計算", "集計", "帳票")),
        ("コミュニケーション効率化", ("会議", "連絡", "情報共有", "メール", "チャット", "報告")),
        ("スケジュール・管理", ("スケジュール", "予定", "管理", "進捗", "タスク", "計画")),
        ("データ分析・活用", ("データ", "分析", "集計", "グラフ", "可視化", "統計")),
        ("その他・システム化", ("システム", "アプリ", "ツール", "ソフト", "デジタル", "IT")),
    )
    dx_fallback_category: str = "その他・システム化"

    # Level 1..5, red -> green.
    level_labels: Tuple[str, ...] = ("非常に不満", "不満", "どちらでもない", "満足", "非常に満足")
    level_colors: Tuple[str, ...] = ("#ef4444", "#f97316", "#eab308", "#84cc16", "#22c55e")
    choice_colors: Tuple[str, ...] = (
        "#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#06b6d4", "#84cc16",
    )
    text_colors: Tuple[str, ...] = ("#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6")

    def ordinal_label_map(self) -> Dict[str, int]:
        return dict(self.ordinal_labels)

    def boolean_token_map(self) -> Dict[str, bool]:
        return {token.casefold(): value for token, value in self.boolean_tokens}

    def schema(self, name: str) -> Optional[SchemaVocabulary]:
        if name == self.current.name:
            return self.current
        if name == self.legacy.name:
            return self.legacy
        return None

    def header_columns(self, schema_name: str) -> Iterator[Tuple[str, str]]:
        """
        Header -> question_id pairs used for resolution under a detected schema.
        Unknown files get both vocabularies, current first.
        """
        schema = self.schema(schema_name)
        if schema is not None:
            yield from schema.columns
            return
        seen = set()
        for vocab in (self.current, self.legacy):
            for header, qid in vocab.columns:
                if header in seen:
                    continue
                seen.add(header)
                yield header, qid


DEFAULT_VOCABULARY = SurveyVocabulary()


def _freeze(value: Any) -> Any:
    # JSON lists -> tuples, recursively, so overrides stay hashable/immutable.
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, dict):
        return tuple((k, _freeze(v)) for k, v in value.items())
    return value


def load_vocabulary(path: Optional[str] = None, base: SurveyVocabulary = DEFAULT_VOCABULARY) -> SurveyVocabulary:
    """
    Returns `base` with fields overridden from a JSON file.

    Keys must be SurveyVocabulary field names other than the schema vocabularies.
    Mapping-shaped tables (ordinal_labels, boolean_tokens, text_categories) may be
    given as JSON objects.
    """
    if not path:
        return base

    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Vocabulary override must be a JSON object: {path}")

    allowed = {f.name for f in fields(SurveyVocabulary)} - {"current", "legacy"}
    unknown = set(raw) - allowed
    if unknown:
        raise ValueError(f"Unknown vocabulary keys: {sorted(unknown)}")

    return replace(base, **{k: _freeze(v) for k, v in raw.items()})
