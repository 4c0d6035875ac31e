# survey_engine/analysis/analyzer.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

from survey_engine.app.logging import get_logger
from survey_engine.ingest.models import Response
from survey_engine.ingest.normalizer import is_blank, is_number, round_half_up, stringify
from survey_engine.ingest.vocabulary import DEFAULT_VOCABULARY, QuestionId, SurveyVocabulary

from .models import (
    AnalysisMetadata,
    AnalysisResult,
    BasicStats,
    ChartSlice,
    Demographics,
    DXAnalysis,
    DXOpportunity,
    DistributionData,
    HarassmentAnalysis,
    HarassmentType,
    MultipleChoiceData,
    RepresentativeAnswer,
    TextAnalysisData,
)

logger = get_logger(__name__)

TOP_CATEGORIES = 5
DX_EXAMPLES = 3
EXCERPT_LENGTH = 100


def _is_level(value: Any) -> bool:
    if not is_number(value):
        return False
    x = float(value)
    return x.is_integer() and 1 <= x <= 5


def _percent(part: int, whole: int) -> int:
    return int(round_half_up(part / whole * 100)) if whole else 0


def _excerpt(text: str) -> str:
    return text[:EXCERPT_LENGTH] + ("..." if len(text) > EXCERPT_LENGTH else "")


class SurveyAnalyzer:
    """
    Aggregate analyses over one response set.

    Empty and error-flagged responses are dropped on construction; every
    method is a pure read over the remaining set and returns a well-formed
    (possibly all-zero) result for missing or malformed answers.
    """

    def __init__(self, responses: Sequence[Response], vocabulary: SurveyVocabulary = DEFAULT_VOCABULARY):
        self.vocabulary = vocabulary
        self._received = list(responses)
        self.responses: List[Response] = [
            r for r in self._received if not r.metadata.is_empty and not r.metadata.has_errors
        ]

    # -------------------------
    # Per-question analyses
    # -------------------------

    def analyze_distribution(self, question_id: str) -> DistributionData:
        values = [int(v) for v in (r.get(question_id) for r in self.responses) if _is_level(v)]
        counts = [values.count(level) for level in range(1, 6)]

        distribution = [
            ChartSlice(name=label, value=count, color=color)
            for label, count, color in zip(self.vocabulary.level_labels, counts, self.vocabulary.level_colors)
        ]

        total = len(values)
        if total == 0:
            return DistributionData(distribution=distribution, total_responses=0)

        satisfied = counts[3] + counts[4]
        return DistributionData(
            distribution=distribution,
            total_responses=total,
            average_score=round_half_up(sum(values) / total, 1),
            satisfaction_rate=int(round_half_up(satisfied / total * 100)),
        )

    def analyze_multiple_choice(self, question_id: str) -> MultipleChoiceData:
        # Multi-select answers contribute one count per selected option.
        counts: Dict[str, int] = {}
        for r in self.responses:
            value = r.get(question_id)
            if is_blank(value):
                continue
            for item in value if isinstance(value, list) else [value]:
                if is_blank(item):
                    continue
                key = stringify(item)
                counts[key] = counts.get(key, 0) + 1

        palette = self.vocabulary.choice_colors
        ordered = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
        return MultipleChoiceData(
            multiple_choice_data=[
                ChartSlice(name=name, value=count, color=palette[i % len(palette)])
                for i, (name, count) in enumerate(ordered)
            ],
            total_responses=sum(counts.values()),
        )

    def analyze_text(self, question_id: str) -> TextAnalysisData:
        texts = self._texts(question_id)
        if not texts:
            return TextAnalysisData(category_data=[], representative_answers=[], total_responses=0)

        buckets = self.categorize_texts(texts)
        ranked = sorted(buckets.items(), key=lambda kv: len(kv[1]), reverse=True)

        palette = self.vocabulary.text_colors
        return TextAnalysisData(
            category_data=[
                ChartSlice(name=category, value=len(items), color=palette[i % len(palette)])
                for i, (category, items) in enumerate(ranked)
            ],
            representative_answers=[
                RepresentativeAnswer(category=category, count=len(items), example=items[0])
                for category, items in ranked[:TOP_CATEGORIES]
            ],
            total_responses=len(texts),
        )

    def categorize_texts(self, texts: Sequence[str]) -> Dict[str, List[str]]:
        """
        Buckets each text under the first category with a keyword it contains.
        Categories without any text are left out.
        """
        buckets: Dict[str, List[str]] = {name: [] for name, _ in self.vocabulary.text_categories}
        buckets[self.vocabulary.fallback_category] = []

        for text in texts:
            category = self.vocabulary.fallback_category
            for name, keywords in self.vocabulary.text_categories:
                if any(k in text for k in keywords):
                    category = name
                    break
            buckets[category].append(text)

        return {name: items for name, items in buckets.items() if items}

    def analyze_harassment(
        self,
        details_id: str = QuestionId.HARASSMENT_DETAILS.value,
        witness_id: str = QuestionId.HARASSMENT_WITNESS.value,
    ) -> HarassmentAnalysis:
        tokens = self.vocabulary.boolean_token_map()
        answered = [r for r in self.responses if not is_blank(r.get(witness_id))]
        witnesses = [r for r in answered if tokens.get(stringify(r.get(witness_id)).casefold()) is True]
        reported = [r for r in witnesses if not is_blank(r.get(details_id))]

        details = self._texts(details_id)
        categories = [
            HarassmentType(type=name, count=sum(1 for t in details if any(k in t for k in keywords)))
            for name, keywords in self.vocabulary.harassment_types
        ]

        return HarassmentAnalysis(
            witness_rate=_percent(len(witnesses), len(answered)),
            reporting_rate=_percent(len(reported), len(witnesses)),
            categories=[c for c in categories if c.count > 0],
            total_responses=len(answered),
        )

    def analyze_dx_opportunities(self, question_id: str = QuestionId.DX_OPPORTUNITIES.value) -> DXAnalysis:
        texts = self._texts(question_id)
        fallback = self.vocabulary.dx_fallback_category
        buckets: Dict[str, List[str]] = {name: [] for name, _ in self.vocabulary.dx_categories}
        buckets.setdefault(fallback, [])

        # Multi-label: a text counts once under every category it mentions.
        for text in texts:
            matched = [name for name, keywords in self.vocabulary.dx_categories if any(k in text for k in keywords)]
            for name in matched or [fallback]:
                buckets[name].append(text)

        opportunities = [
            DXOpportunity(category=name, count=len(items), examples=[_excerpt(t) for t in items[:DX_EXAMPLES]])
            for name, items in buckets.items()
            if items
        ]
        opportunities.sort(key=lambda o: o.count, reverse=True)

        return DXAnalysis(
            opportunity_categories=opportunities,
            response_rate=_percent(len(texts), len(self.responses)),
            total_responses=len(texts),
        )

    # -------------------------
    # Segmented distributions
    # -------------------------

    def analyze_by_segment(self, segment_id: str, question_id: str) -> Dict[str, DistributionData]:
        out: Dict[str, DistributionData] = {}
        for segment in self._unique_values(segment_id):
            subset = [
                r for r in self.responses
                if not is_blank(r.get(segment_id)) and stringify(r.get(segment_id)) == segment
            ]
            out[segment] = SurveyAnalyzer(subset, self.vocabulary).analyze_distribution(question_id)
        return out

    def analyze_by_job_type(self, question_id: str) -> Dict[str, DistributionData]:
        return self.analyze_by_segment(QuestionId.JOB_TYPE.value, question_id)

    def analyze_by_age(self, question_id: str) -> Dict[str, DistributionData]:
        return self.analyze_by_segment(QuestionId.AGE.value, question_id)

    # -------------------------
    # Corpus-level
    # -------------------------

    def get_basic_stats(self) -> BasicStats:
        total = len(self._received)
        valid = len(self.responses)
        return BasicStats(
            total_responses=total,
            valid_responses=valid,
            completion_rate=_percent(valid, total),
            company_counts=self._count_values(QuestionId.COMPANY_NAME.value),
            job_type_counts=self._count_values(QuestionId.JOB_TYPE.value),
            demographics=Demographics(
                gender=self._count_values(QuestionId.GENDER.value),
                age=self._count_values(QuestionId.AGE.value),
                tenure=self._count_values(QuestionId.TENURE.value),
            ),
        )

    def generate_all_analysis(self) -> List[AnalysisResult]:
        processed_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        results: List[AnalysisResult] = []

        plan = (
            ("distribution", self.vocabulary.ordinal_questions, self.analyze_distribution),
            ("multiple_choice", self.vocabulary.categorical_questions, self.analyze_multiple_choice),
            ("text_analysis", self.vocabulary.text_questions, self.analyze_text),
        )
        for analysis_type, question_ids, run in plan:
            for question_id in question_ids:
                if not self.has_answers(question_id):
                    continue
                data = run(question_id)
                results.append(
                    AnalysisResult(
                        question_id=question_id,
                        analysis_type=analysis_type,
                        data=data,
                        metadata=AnalysisMetadata(
                            total_responses=len(self.responses),
                            valid_responses=data.total_responses,
                            processed_at=processed_at,
                        ),
                    )
                )

        logger.info("Generated analyses", extra={"analyses": len(results), "responses": len(self.responses)})
        return results

    def has_answers(self, question_id: str) -> bool:
        return any(not is_blank(r.get(question_id)) for r in self.responses)

    # -------------------------
    # Helpers
    # -------------------------

    def _texts(self, question_id: str) -> List[str]:
        texts = [stringify(v) for v in (r.get(question_id) for r in self.responses) if not is_blank(v)]
        return [t for t in texts if t]

    def _unique_values(self, question_id: str) -> List[str]:
        values = {stringify(r.get(question_id)) for r in self.responses if not is_blank(r.get(question_id))}
        return sorted(values)

    def _count_values(self, question_id: str) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for r in self.responses:
            value = r.get(question_id)
            if is_blank(value):
                continue
            key = stringify(value)
            counts[key] = counts.get(key, 0) + 1
        return counts
