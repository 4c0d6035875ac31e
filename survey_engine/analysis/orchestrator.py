# survey_engine/analysis/orchestrator.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from survey_engine.app.config import Settings
from survey_engine.app.errors import AnalyzerNotReady, UnsupportedAnalysisType, UploadTooLarge
from survey_engine.app.logging import clear_run_id, current_run_id, get_logger, set_run_id
from survey_engine.ingest.models import ParseMetadata, ParseOptions, ParseResult, Response, ValidationResult
from survey_engine.ingest.parser import SurveySheetParser
from survey_engine.ingest.validator import validate
from survey_engine.ingest.vocabulary import QuestionId, SurveyVocabulary, load_vocabulary

from .analyzer import SurveyAnalyzer
from .models import (
    AnalysisPayload,
    AnalysisResult,
    BasicStats,
    DataQuality,
    DXAnalysis,
    HarassmentAnalysis,
    SatisfactionScore,
    Summary,
    SummaryHighlights,
    SummaryOverview,
)

logger = get_logger(__name__)

TOP_TEXT_CATEGORIES = 3


@dataclass(frozen=True)
class ProcessResult:
    success: bool
    parse_result: Optional[ParseResult] = None
    validation: Optional[ValidationResult] = None
    analysis_data: List[AnalysisResult] = field(default_factory=list)
    basic_stats: Optional[BasicStats] = None
    error: Optional[str] = None
    # Log correlation id of the processing call that produced this result.
    run_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "parse_result": self.parse_result.to_dict() if self.parse_result is not None else None,
            "validation": self.validation.to_dict() if self.validation is not None else None,
            "analysis_data": [a.to_dict() for a in self.analysis_data],
            "basic_stats": self.basic_stats.to_dict() if self.basic_stats is not None else None,
            "error": self.error,
            "run_id": self.run_id,
        }


def grade_data_quality(response_count: int) -> DataQuality:
    if response_count >= 100:
        return "excellent"
    if response_count >= 50:
        return "good"
    if response_count >= 20:
        return "fair"
    return "poor"


class AnalysisOrchestrator:
    """
    Runs parse -> validate -> analyze for one uploaded survey file.

    Each process_file call builds its own parser and analyzer; the last
    successful run is kept on the instance for follow-up queries. Use one
    orchestrator per upload when calls may overlap.
    """

    def __init__(self, vocabulary: Optional[SurveyVocabulary] = None, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.vocabulary = vocabulary or load_vocabulary(self.settings.vocabulary_path)

        self._analyzer: Optional[SurveyAnalyzer] = None
        self._parse_result: Optional[ParseResult] = None
        self._validation: Optional[ValidationResult] = None

    def process_file(
        self,
        buffer: bytes,
        options: Optional[ParseOptions] = None,
        file_name: Optional[str] = None,
    ) -> ProcessResult:
        self._analyzer = None
        self._parse_result = None
        self._validation = None

        set_run_id(uuid4().hex)
        try:
            parse_result = SurveySheetParser(self.vocabulary).parse_file(buffer, options, file_name)
            if not parse_result.success:
                return ProcessResult(
                    success=False,
                    parse_result=parse_result,
                    error="; ".join(parse_result.errors) or "The survey file could not be parsed.",
                    run_id=current_run_id(),
                )

            responses = parse_result.data or []
            validation = validate(
                responses,
                parse_result.metadata.columns if parse_result.metadata else [],
                detection=parse_result.detection,
                defaulted_cells=parse_result.defaulted_cells,
                min_responses=self.settings.min_responses,
                vocabulary=self.vocabulary,
            )
            parse_result = replace(
                parse_result,
                errors=[e.message for e in validation.errors],
                warnings=[*parse_result.warnings, *(w.message for w in validation.warnings)],
            )

            analyzer = SurveyAnalyzer(responses, self.vocabulary)
            analysis_data = analyzer.generate_all_analysis()
            basic_stats = analyzer.get_basic_stats()

            self._analyzer = analyzer
            self._parse_result = parse_result
            self._validation = validation

            logger.info(
                "Survey file processed",
                extra={
                    "responses": len(responses),
                    "valid_responses": basic_stats.valid_responses,
                    "analyses": len(analysis_data),
                    "is_valid": validation.is_valid,
                },
            )
            return ProcessResult(
                success=True,
                parse_result=parse_result,
                validation=validation,
                analysis_data=analysis_data,
                basic_stats=basic_stats,
                run_id=current_run_id(),
            )
        finally:
            clear_run_id()

    # -------------------------
    # Queries over the last processed file
    # -------------------------

    @property
    def responses(self) -> List[Response]:
        return list(self._parse_result.data or []) if self._parse_result else []

    @property
    def metadata(self) -> Optional[ParseMetadata]:
        return self._parse_result.metadata if self._parse_result else None

    @property
    def validation(self) -> Optional[ValidationResult]:
        return self._validation

    def _require_analyzer(self) -> SurveyAnalyzer:
        if self._analyzer is None:
            raise AnalyzerNotReady("No survey file has been processed successfully.")
        return self._analyzer

    def get_question_analysis(
        self, question_id: str, analysis_type: str
    ) -> Union[AnalysisPayload, HarassmentAnalysis, DXAnalysis]:
        analyzer = self._require_analyzer()
        if analysis_type == "distribution":
            return analyzer.analyze_distribution(question_id)
        if analysis_type == "multiple_choice":
            return analyzer.analyze_multiple_choice(question_id)
        if analysis_type == "text_analysis":
            return analyzer.analyze_text(question_id)
        if analysis_type == "job_type":
            return analyzer.analyze_by_job_type(question_id)
        if analysis_type == "demographic":
            return analyzer.analyze_by_age(question_id)
        if analysis_type == "harassment":
            return analyzer.analyze_harassment(question_id)
        if analysis_type == "dx_opportunity":
            return analyzer.analyze_dx_opportunities(question_id)
        raise UnsupportedAnalysisType(analysis_type)

    def get_basic_stats(self) -> BasicStats:
        return self._require_analyzer().get_basic_stats()

    def generate_summary(self) -> Summary:
        analyzer = self._require_analyzer()
        stats = analyzer.get_basic_stats()

        scores: List[SatisfactionScore] = []
        for question_id in self.vocabulary.summary_questions:
            average = analyzer.analyze_distribution(question_id).average_score
            if average > 0:
                scores.append(SatisfactionScore(question=question_id, score=average))
        scores.sort(key=lambda s: s.score, reverse=True)

        return Summary(
            overview=SummaryOverview(
                total_responses=stats.total_responses,
                valid_responses=stats.valid_responses,
                completion_rate=stats.completion_rate,
                data_quality=grade_data_quality(stats.valid_responses),
            ),
            highlights=SummaryHighlights(
                highest_satisfaction=scores[0] if scores else None,
                lowest_satisfaction=scores[-1] if scores else None,
                top_concerns=self._top_categories(analyzer, QuestionId.CONCERNS.value),
                top_suggestions=self._top_categories(analyzer, QuestionId.IMPROVEMENT_SUGGESTIONS.value),
            ),
            demographics=stats.demographics,
        )

    def _top_categories(self, analyzer: SurveyAnalyzer, question_id: str) -> List[str]:
        answers = analyzer.analyze_text(question_id).representative_answers
        named = [a.category for a in answers if a.category != self.vocabulary.fallback_category]
        return named[:TOP_TEXT_CATEGORIES]


def check_upload_size(buffer: bytes, settings: Settings) -> None:
    if len(buffer) > settings.max_upload_bytes:
        raise UploadTooLarge(
            f"The uploaded file is {len(buffer)} bytes; the limit is {settings.max_upload_bytes} bytes."
        )


def analyze_survey_file(
    buffer: bytes,
    options: Optional[ParseOptions] = None,
    file_name: Optional[str] = None,
    settings: Optional[Settings] = None,
    vocabulary: Optional[SurveyVocabulary] = None,
) -> Dict[str, Any]:
    """
    One-call helper for API handlers: size check, full processing, summary.

    Returns plain JSON-serializable data:
      {"success": True, "data": {parse_result, validation, analysis_data, basic_stats, summary}}
      {"success": False, "error": "..."}
    """
    settings = settings or Settings()
    try:
        check_upload_size(buffer, settings)
    except UploadTooLarge as e:
        logger.warning("Upload rejected", extra={"bytes": len(buffer), "error": str(e)})
        return {"success": False, "error": str(e)}

    orchestrator = AnalysisOrchestrator(vocabulary=vocabulary, settings=settings)
    result = orchestrator.process_file(buffer, options, file_name)
    if not result.success:
        return {"success": False, "error": result.error, "run_id": result.run_id}

    payload = result.to_dict()
    return {
        "success": True,
        "data": {
            "parse_result": payload["parse_result"],
            "validation": payload["validation"],
            "analysis_data": payload["analysis_data"],
            "basic_stats": payload["basic_stats"],
            "summary": orchestrator.generate_summary().to_dict(),
        },
        "error": None,
        "run_id": payload["run_id"],
    }
