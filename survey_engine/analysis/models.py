# survey_engine/analysis/models.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union


AnalysisType = Literal[
    "distribution", "multiple_choice", "text_analysis", "job_type", "demographic", "harassment", "dx_opportunity"
]
DataQuality = Literal["excellent", "good", "fair", "poor"]


@dataclass(frozen=True)
class ChartSlice:
    name: str
    value: int
    color: str


@dataclass(frozen=True)
class DistributionData:
    distribution: List[ChartSlice]
    total_responses: int
    average_score: float = 0.0
    satisfaction_rate: int = 0


@dataclass(frozen=True)
class MultipleChoiceData:
    multiple_choice_data: List[ChartSlice]
    total_responses: int


@dataclass(frozen=True)
class RepresentativeAnswer:
    category: str
    count: int
    example: str


@dataclass(frozen=True)
class TextAnalysisData:
    category_data: List[ChartSlice]
    representative_answers: List[RepresentativeAnswer]
    total_responses: int


@dataclass(frozen=True)
class HarassmentType:
    type: str
    count: int


@dataclass(frozen=True)
class HarassmentAnalysis:
    # witness_rate: affirmative answers among witness answers, in percent.
    # reporting_rate: affirmative witnesses who also described what happened, in percent.
    witness_rate: int
    reporting_rate: int
    categories: List[HarassmentType]
    total_responses: int


@dataclass(frozen=True)
class DXOpportunity:
    category: str
    count: int
    examples: List[str]


@dataclass(frozen=True)
class DXAnalysis:
    opportunity_categories: List[DXOpportunity]
    response_rate: int
    total_responses: int


AnalysisPayload = Union[DistributionData, MultipleChoiceData, TextAnalysisData, Dict[str, DistributionData]]


@dataclass(frozen=True)
class AnalysisMetadata:
    total_responses: int
    valid_responses: int
    processed_at: str


@dataclass(frozen=True)
class AnalysisResult:
    question_id: str
    analysis_type: AnalysisType
    data: AnalysisPayload
    metadata: AnalysisMetadata

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Demographics:
    gender: Dict[str, int] = field(default_factory=dict)
    age: Dict[str, int] = field(default_factory=dict)
    tenure: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class BasicStats:
    # total_responses counts every row handed to the analyzer, before filtering.
    total_responses: int
    valid_responses: int
    completion_rate: int
    company_counts: Dict[str, int] = field(default_factory=dict)
    job_type_counts: Dict[str, int] = field(default_factory=dict)
    demographics: Demographics = field(default_factory=Demographics)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SatisfactionScore:
    question: str
    score: float


@dataclass(frozen=True)
class SummaryOverview:
    total_responses: int
    valid_responses: int
    completion_rate: int
    data_quality: DataQuality


@dataclass(frozen=True)
class SummaryHighlights:
    highest_satisfaction: Optional[SatisfactionScore] = None
    lowest_satisfaction: Optional[SatisfactionScore] = None
    top_concerns: List[str] = field(default_factory=list)
    top_suggestions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Summary:
    overview: SummaryOverview
    highlights: SummaryHighlights
    demographics: Demographics

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
