import pytest

from survey_engine.analysis.analyzer import SurveyAnalyzer
from survey_engine.ingest.vocabulary import DEFAULT_VOCABULARY


def _scores(factory, question_id, values):
    return [factory(i + 2, company_name="A社", **{question_id: v}) for i, v in enumerate(values)]


class TestDistribution:
    def test_average_and_rate(self, response_factory):
        analyzer = SurveyAnalyzer(_scores(response_factory, "work_environment", [2, 3, 4, 4, 5]))
        out = analyzer.analyze_distribution("work_environment")
        assert out.total_responses == 5
        assert out.average_score == 3.6
        assert out.satisfaction_rate == 60
        assert [s.value for s in out.distribution] == [0, 1, 1, 2, 1]

    def test_labels_and_colors_are_fixed(self, response_factory):
        out = SurveyAnalyzer(_scores(response_factory, "work_environment", [1])).analyze_distribution("work_environment")
        assert [s.name for s in out.distribution] == list(DEFAULT_VOCABULARY.level_labels)
        assert [s.color for s in out.distribution] == list(DEFAULT_VOCABULARY.level_colors)

    def test_empty_is_all_zero(self, response_factory):
        out = SurveyAnalyzer([]).analyze_distribution("work_environment")
        assert out.total_responses == 0
        assert out.average_score == 0
        assert out.satisfaction_rate == 0
        assert [s.value for s in out.distribution] == [0, 0, 0, 0, 0]

    def test_ignores_values_outside_scale(self, response_factory):
        responses = _scores(response_factory, "work_environment", [0, 6, 3.5, "4", None, 4])
        out = SurveyAnalyzer(responses).analyze_distribution("work_environment")
        assert out.total_responses == 1
        assert out.average_score == 4.0

    @pytest.mark.parametrize(
        "values",
        [[1, 2, 3, 4, 5], [5, 5, 5], [1, 1, 2], [3], [4, 2, 5, 1, 3, 3, 4]],
    )
    def test_counts_sum_to_total(self, response_factory, values):
        out = SurveyAnalyzer(_scores(response_factory, "q", values)).analyze_distribution("q")
        counts = [s.value for s in out.distribution]
        assert sum(counts) == out.total_responses == len(values)
        assert out.average_score == round(sum(values) / len(values) + 1e-9, 1)
        assert out.satisfaction_rate == int(100 * (counts[3] + counts[4]) / len(values) + 0.5)

    def test_rounds_half_up(self, response_factory):
        # mean 3.25 -> 3.3
        out = SurveyAnalyzer(_scores(response_factory, "q", [3, 3, 3, 4])).analyze_distribution("q")
        assert out.average_score == 3.3
        assert out.satisfaction_rate == 25


class TestCorpusFiltering:
    def test_empty_rows_are_counted_but_not_analyzed(self, response_factory):
        responses = [
            response_factory(2, company_name="A社", work_environment=4),
            response_factory(3, is_empty=True),
        ]
        analyzer = SurveyAnalyzer(responses)
        assert analyzer.analyze_distribution("work_environment").total_responses == 1

        stats = analyzer.get_basic_stats()
        assert stats.total_responses == 2
        assert stats.valid_responses == 1
        assert stats.completion_rate == 50

    def test_error_rows_are_excluded(self, response_factory):
        responses = [
            response_factory(2, company_name="A社", work_environment=5),
            response_factory(3, has_errors=True, work_environment=1),
        ]
        out = SurveyAnalyzer(responses).analyze_distribution("work_environment")
        assert out.total_responses == 1
        assert out.average_score == 5.0

    def test_basic_stats_tallies(self, response_factory):
        responses = [
            response_factory(2, company_name="A社", job_type="ドライバー", gender="男性", age="40代", tenure="5年以上"),
            response_factory(3, company_name="A社", job_type="事務", gender="女性", age="30代"),
            response_factory(4, company_name="B社", job_type="ドライバー", gender="男性", age="40代"),
        ]
        stats = SurveyAnalyzer(responses).get_basic_stats()
        assert stats.completion_rate == 100
        assert stats.company_counts == {"A社": 2, "B社": 1}
        assert stats.job_type_counts == {"ドライバー": 2, "事務": 1}
        assert stats.demographics.gender == {"男性": 2, "女性": 1}
        assert stats.demographics.age == {"40代": 2, "30代": 1}
        assert stats.demographics.tenure == {"5年以上": 1}

    def test_basic_stats_of_nothing(self):
        stats = SurveyAnalyzer([]).get_basic_stats()
        assert stats.total_responses == 0
        assert stats.completion_rate == 0


class TestMultipleChoice:
    def test_sorted_by_count_with_stable_ties(self, response_factory):
        responses = _scores(response_factory, "job_type", ["事務", "ドライバー", "ドライバー", "事務", "整備", None])
        out = SurveyAnalyzer(responses).analyze_multiple_choice("job_type")
        assert [(s.name, s.value) for s in out.multiple_choice_data] == [("事務", 2), ("ドライバー", 2), ("整備", 1)]
        assert out.total_responses == 5
        assert sum(s.value for s in out.multiple_choice_data) == out.total_responses

    def test_palette_cycles(self, response_factory):
        responses = _scores(response_factory, "position", [f"役職{i}" for i in range(8)])
        out = SurveyAnalyzer(responses).analyze_multiple_choice("position")
        palette = DEFAULT_VOCABULARY.choice_colors
        assert [s.color for s in out.multiple_choice_data] == [palette[i % len(palette)] for i in range(8)]

    def test_multi_select_lists_count_each_option(self, response_factory):
        responses = _scores(response_factory, "hiring_reasons", [["給与", "勤務地"], ["勤務地"], []])
        out = SurveyAnalyzer(responses).analyze_multiple_choice("hiring_reasons")
        assert [(s.name, s.value) for s in out.multiple_choice_data] == [("勤務地", 2), ("給与", 1)]

    def test_values_are_stringified(self, response_factory):
        responses = _scores(response_factory, "holdings_awareness", [True, False, True])
        out = SurveyAnalyzer(responses).analyze_multiple_choice("holdings_awareness")
        assert [(s.name, s.value) for s in out.multiple_choice_data] == [("true", 2), ("false", 1)]


class TestTextAnalysis:
    def test_keyword_buckets(self):
        buckets = SurveyAnalyzer([]).categorize_texts(["残業時間が多い", "給与が低い", "特になし"])
        assert buckets == {
            "労働環境・職場": ["残業時間が多い"],
            "待遇・給与": ["給与が低い"],
            "その他": ["特になし"],
        }

    def test_first_matching_category_wins(self):
        # Mentions both the workplace and salary keywords.
        buckets = SurveyAnalyzer([]).categorize_texts(["職場の給与体系"])
        assert list(buckets) == ["労働環境・職場"]

    def test_counts_and_representatives(self, response_factory):
        texts = ["給与が低い", "賞与を増やしてほしい", "残業が多い", "特になし", "   "]
        out = SurveyAnalyzer(_scores(response_factory, "concerns", texts)).analyze_text("concerns")
        assert out.total_responses == 4
        assert [(s.name, s.value) for s in out.category_data] == [("待遇・給与", 2), ("労働環境・職場", 1), ("その他", 1)]
        first = out.representative_answers[0]
        assert (first.category, first.count, first.example) == ("待遇・給与", 2, "給与が低い")

    def test_no_answers(self):
        out = SurveyAnalyzer([]).analyze_text("concerns")
        assert out.category_data == []
        assert out.representative_answers == []
        assert out.total_responses == 0


class TestHarassment:
    def test_rates_and_types(self, response_factory):
        responses = [
            response_factory(2, company_name="A社", harassment_witness="はい", harassment_details="上司からの暴言といじめ"),
            response_factory(3, company_name="A社", harassment_witness="はい"),
            response_factory(4, company_name="A社", harassment_witness="いいえ"),
            response_factory(5, company_name="A社", harassment_witness=True, harassment_details="不適切な発言"),
            response_factory(6, company_name="A社"),
        ]
        out = SurveyAnalyzer(responses).analyze_harassment()
        assert out.total_responses == 4
        assert out.witness_rate == 75
        assert out.reporting_rate == 67
        # One text can land under several types.
        assert [(c.type, c.count) for c in out.categories] == [
            ("パワーハラスメント", 1),
            ("セクシャルハラスメント", 1),
            ("その他のハラスメント", 1),
        ]

    def test_no_witnesses(self, response_factory):
        responses = [response_factory(2, company_name="A社", harassment_witness="いいえ")]
        out = SurveyAnalyzer(responses).analyze_harassment()
        assert (out.witness_rate, out.reporting_rate, out.total_responses) == (0, 0, 1)
        assert out.categories == []

    def test_nothing_answered(self):
        out = SurveyAnalyzer([]).analyze_harassment()
        assert (out.witness_rate, out.reporting_rate, out.total_responses) == (0, 0, 0)


class TestDXOpportunities:
    def test_categories_examples_and_rate(self, response_factory):
        long_text = "書類" * 60
        texts = [
            "Excelへの入力作業を減らしたい",
            "会議の資料作成とデータ集計",
            "進捗管理をアプリで",
            "特になし",
            long_text,
            "帳票の計算",
        ]
        responses = _scores(response_factory, "dx_opportunities", texts)
        responses.append(response_factory(9, company_name="A社"))
        responses.append(response_factory(10, is_empty=True))

        out = SurveyAnalyzer(responses).analyze_dx_opportunities()
        assert out.total_responses == 6
        assert out.response_rate == 86
        assert [(o.category, o.count) for o in out.opportunity_categories] == [
            ("事務作業自動化", 4),
            ("その他・システム化", 2),
            ("コミュニケーション効率化", 1),
            ("スケジュール・管理", 1),
            ("データ分析・活用", 1),
        ]

        office = out.opportunity_categories[0]
        assert office.examples == [texts[0], texts[1], "書類" * 50 + "..."]
        # Unmatched text falls back to the catch-all bucket.
        assert out.opportunity_categories[1].examples == ["進捗管理をアプリで", "特になし"]

    def test_nothing_answered(self):
        out = SurveyAnalyzer([]).analyze_dx_opportunities()
        assert out.opportunity_categories == []
        assert (out.response_rate, out.total_responses) == (0, 0)


class TestSegments:
    def test_by_job_type(self, response_factory):
        responses = [
            response_factory(2, company_name="A社", job_type="ドライバー", work_environment=5),
            response_factory(3, company_name="A社", job_type="ドライバー", work_environment=3),
            response_factory(4, company_name="A社", job_type="事務", work_environment=2),
            response_factory(5, company_name="A社", work_environment=1),
        ]
        out = SurveyAnalyzer(responses).analyze_by_job_type("work_environment")
        assert set(out) == {"ドライバー", "事務"}
        assert out["ドライバー"].total_responses == 2
        assert out["ドライバー"].average_score == 4.0
        assert out["事務"].satisfaction_rate == 0

    def test_by_age(self, response_factory):
        responses = [
            response_factory(2, company_name="A社", age="20代", work_environment=4),
            response_factory(3, company_name="A社", age="30代"),
        ]
        out = SurveyAnalyzer(responses).analyze_by_age("work_environment")
        assert out["20代"].total_responses == 1
        assert out["30代"].total_responses == 0


class TestGenerateAll:
    def test_only_answered_questions(self, response_factory):
        responses = [
            response_factory(2, company_name="A社", work_environment=4, concerns="残業が多い"),
            response_factory(3, company_name="B社", work_environment=2),
            response_factory(4, is_empty=True),
        ]
        results = SurveyAnalyzer(responses).generate_all_analysis()
        keys = [(r.question_id, r.analysis_type) for r in results]
        assert keys == [
            ("work_environment", "distribution"),
            ("company_name", "multiple_choice"),
            ("concerns", "text_analysis"),
        ]

        distribution = results[0]
        assert distribution.metadata.total_responses == 2
        assert distribution.metadata.valid_responses == 2
        assert results[2].metadata.valid_responses == 1
        assert len({r.metadata.processed_at for r in results}) == 1

    def test_nothing_answered(self):
        assert SurveyAnalyzer([]).generate_all_analysis() == []
