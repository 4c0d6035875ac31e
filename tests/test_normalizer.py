import math
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from survey_engine.ingest.normalizer import (
    Normalized,
    is_blank,
    normalize,
    normalize_boolean,
    normalize_date,
    normalize_multi_select,
    normalize_number,
    normalize_ordinal,
    round_half_up,
    stringify,
)
from survey_engine.ingest.vocabulary import DEFAULT_VOCABULARY


class TestOrdinal:
    @pytest.mark.parametrize(
        "raw",
        [1, 2, 3, 4, 5, 0, 7, -3, 2.4, 4.5, "満足", "非常に不満", "そう思う", " 2 ", "4.6", "???", None, math.nan],
    )
    def test_always_within_scale(self, raw):
        out = normalize_ordinal(raw)
        assert isinstance(out.value, int)
        assert 1 <= out.value <= 5

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("非常に満足", 5),
            ("満足", 4),
            ("どちらでもない", 3),
            ("不満", 2),
            ("非常に不満", 1),
            ("強くそう思う", 5),
            ("そう思わない", 2),
            ("全くそう思わない", 1),
        ],
    )
    def test_labels(self, raw, expected):
        assert normalize_ordinal(raw) == Normalized(expected, defaulted=False)

    def test_numbers_round_half_up_and_clamp(self):
        assert normalize_ordinal(4.5).value == 5
        assert normalize_ordinal(2.4).value == 2
        assert normalize_ordinal(9).value == 5
        assert normalize_ordinal(0).value == 1
        assert normalize_ordinal(" 3 ").value == 3
        # Clamped values are still taken from the input.
        assert normalize_ordinal(9).defaulted is False

    @pytest.mark.parametrize("raw", ["よくわからない", "abc", "", None, [], math.nan])
    def test_unrecognized_defaults_to_midpoint(self, raw):
        out = normalize_ordinal(raw)
        assert out.value == 3
        assert out.defaulted is True

    def test_substituted_vocabulary(self):
        vocab = replace(
            DEFAULT_VOCABULARY,
            ordinal_labels=DEFAULT_VOCABULARY.ordinal_labels + (("とても良い", 5),),
        )
        assert normalize_ordinal("とても良い", vocab) == Normalized(5, defaulted=False)
        assert normalize_ordinal("とても良い").defaulted is True


class TestBoolean:
    @pytest.mark.parametrize(
        "raw,expected",
        [("はい", True), ("YES", True), ("true", True), ("いいえ", False), ("No", False), (True, True), (False, False)],
    )
    def test_known_tokens(self, raw, expected):
        assert normalize_boolean(raw) == Normalized(expected, defaulted=False)

    @pytest.mark.parametrize("raw", ["たぶん", "1", 0, None])
    def test_unknown_defaults_to_false(self, raw):
        assert normalize_boolean(raw) == Normalized(False, defaulted=True)


class TestMultiSelect:
    def test_splits_on_comma_space(self):
        out = normalize_multi_select("給与, 勤務地 , 福利厚生")
        assert out.value == ["給与", "勤務地", "福利厚生"]
        assert out.defaulted is False

    def test_bare_comma_is_not_a_delimiter(self):
        assert normalize_multi_select("給与,勤務地").value == ["給与,勤務地"]

    def test_list_passthrough_drops_blanks(self):
        assert normalize_multi_select(["A", " ", None, "B"]).value == ["A", "B"]

    def test_blank_is_empty_list(self):
        assert normalize_multi_select(None) == Normalized([], defaulted=False)


class TestDate:
    def test_native_datetime(self):
        assert normalize_date(datetime(2024, 4, 1, 9, 30)).value == "2024-04-01T09:30:00.000Z"

    def test_aware_datetime_is_converted_to_utc(self):
        jst = timezone(timedelta(hours=9))
        assert normalize_date(datetime(2024, 4, 1, 9, 0, tzinfo=jst)).value == "2024-04-01T00:00:00.000Z"

    def test_plain_date(self):
        assert normalize_date(date(2024, 4, 1)).value == "2024-04-01T00:00:00.000Z"

    def test_string(self):
        out = normalize_date("2024/04/01 09:30:00")
        assert out == Normalized("2024-04-01T09:30:00.000Z", defaulted=False)

    def test_unparseable_string_is_defaulted(self):
        assert normalize_date("来週") == Normalized(None, defaulted=True)

    @pytest.mark.parametrize("raw", ["now", "today", " Today ", "NOW"])
    def test_relative_keywords_are_not_dates(self, raw):
        assert normalize_date(raw) == Normalized(None, defaulted=True)

    def test_early_years_are_zero_padded(self):
        assert normalize_date(datetime(999, 1, 2, 3, 4, 5)).value == "0999-01-02T03:04:05.000Z"
        assert normalize_date(date(1, 1, 1)).value == "0001-01-01T00:00:00.000Z"


class TestNumber:
    def test_integral_values_become_int(self):
        assert normalize_number(5.0).value == 5
        assert isinstance(normalize_number(5.0).value, int)
        assert normalize_number("12").value == 12

    def test_fraction(self):
        assert normalize_number("3.5").value == 3.5

    def test_ordinal_label(self):
        assert normalize_number("満足").value == 4

    def test_other_text_is_kept(self):
        assert normalize_number(" 40代 ") == Normalized("40代", defaulted=False)


class TestDispatch:
    def test_text_is_trimmed(self):
        assert normalize("  残業が多い  ", "text").value == "残業が多い"

    def test_routes_by_kind(self):
        assert normalize("満足", "ordinal").value == 4
        assert normalize("はい", "boolean").value is True
        assert normalize("A, B", "multi_select").value == ["A", "B"]


class TestHelpers:
    def test_is_blank(self):
        assert is_blank(None)
        assert is_blank("   ")
        assert is_blank(math.nan)
        assert not is_blank(0)
        assert not is_blank(False)
        assert not is_blank([])

    def test_round_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(1.25, 1) == 1.3
        assert round_half_up(3.6, 1) == 3.6

    def test_stringify(self):
        assert stringify(True) == "true"
        assert stringify(3.0) == "3"
        assert stringify(2.5) == "2.5"
        assert stringify(["a", "b"]) == "a, b"
        assert stringify("  x ") == "x"
