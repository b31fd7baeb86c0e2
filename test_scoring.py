"""Tests for the aggregation engine (stats, scoring, aggregate).

Run:  pytest test_scoring.py -v

Covers:
  - Rounding and population std-dev primitives
  - Per-question stats, driver scores, extreme drivers
  - Respondent summaries and inclusive outlier threshold
  - Respondent exclusion and degenerate (empty) inputs
  - Worked examples: [5, 3], [1, 3, 5] and a row with an unmatched label
  - Idempotence of the full dataset
"""
from __future__ import annotations

import json
import logging
import math

import pytest

from engine.aggregate import analyze_responses, build_respondents, calculate_all
from engine.scoring import (
    OUTLIER_THRESHOLD,
    compute_driver_scores,
    compute_question_stats,
    compute_respondent_summaries,
    exclude_empty_respondents,
    find_extreme_drivers,
    is_outlier,
)
from engine.stats import distribution, mean, population_std_dev, round2, valid_scores
from question_packs.loader import SurveyConfig
from schemas.domain import (
    DriverExtreme,
    QuestionStats,
    RawResponseRow,
    Respondent,
    ResponseAlignmentError,
)


# ── Fixtures ──────────────────────────────────────────────────────

def _q(driver: str, n: int) -> dict:
    return {"driver": driver, "skill": f"{driver} skill", "text": f"{driver} question {n}"}


@pytest.fixture
def one_question():
    return SurveyConfig.build([_q("Purpose", 1)])


@pytest.fixture
def five_driver_config():
    """Two questions per driver, ten in total."""
    return SurveyConfig.build(
        [_q(d, n) for d in ("Purpose", "People", "Plan", "Product", "Profit") for n in (1, 2)]
    )


def _rows(*answer_lists, names=None):
    names = names or [f"R{i}" for i in range(1, len(answer_lists) + 1)]
    return [RawResponseRow(name=n, cells=tuple(a)) for n, a in zip(names, answer_lists)]


# ── Numeric primitives ────────────────────────────────────────────

class TestStats:
    @pytest.mark.parametrize("value, expected", [
        (2.675, 2.68),
        (2.665, 2.67),
        (1.005, 1.01),
        (-1.005, -1.01),
        (3.333333, 3.33),
        (4.0, 4.0),
    ])
    def test_round_half_up(self, value, expected):
        assert round2(value) == expected

    def test_valid_scores_drops_missing_and_nan(self):
        assert valid_scores([1, None, float("nan"), 5]) == [1, 5]

    def test_empty_mean_and_std_dev_are_zero(self):
        assert mean([]) == 0.0
        assert population_std_dev([None, None]) == 0.0

    def test_std_dev_uses_population_divisor(self):
        assert population_std_dev([5, 3]) == 1.0
        assert population_std_dev([1, 3, 5]) == 1.63

    def test_std_dev_measured_from_rounded_mean(self):
        # mean 10/3 rounds to 3.33; deviations measured from 3.33
        expected = round2(math.sqrt(((3 - 3.33) ** 2 * 2 + (4 - 3.33) ** 2) / 3))
        assert population_std_dev([3, 3, 4]) == expected

    def test_distribution_index_maps_to_score(self):
        assert distribution([5, None, 2]) == (0, 1, 0, 0, 1)
        assert distribution([1, 1, 3]) == (2, 0, 1, 0, 0)

    @pytest.mark.parametrize("values", [[1], [5], [1, 5], [1, 5, 5, 1], [2, 3, 4, 5, 1, 1]])
    def test_bounds(self, values):
        assert 0 <= mean(values) <= 5
        assert 0 <= population_std_dev(values) <= 2.5


# ── Worked examples ───────────────────────────────────────────────

class TestWorkedExamples:
    def test_two_respondents_five_and_three(self, one_question):
        ds = analyze_responses(one_question, _rows(["Strongly Agree"], ["Neutral"]))
        q = ds.questions[0]
        assert q.average == 4.0
        assert q.std_dev == 1.0
        assert q.distribution == (0, 0, 1, 0, 1)
        assert dict(ds.driver_scores) == {"Purpose": 4.0}
        assert [r.overall_average for r in ds.respondents] == [5.0, 3.0]
        assert all(r.outlier_questions == () for r in ds.respondents)

    def test_three_respondents_one_three_five(self, one_question):
        ds = analyze_responses(
            one_question,
            _rows(["Strongly Disagree"], ["Neutral"], ["Strongly Agree"]),
        )
        q = ds.questions[0]
        assert q.average == 3.0
        assert q.std_dev == 1.63
        flagged = [len(r.outlier_questions) for r in ds.respondents]
        assert flagged == [1, 0, 1]
        low = ds.respondents[0].outlier_questions[0]
        assert low.respondent_score == 1
        assert low.team_average == 3.0
        assert low.difference == -2.0

    def test_unmatched_label_is_missing_not_excluded(self):
        config = SurveyConfig.build([_q("Purpose", 1), _q("People", 1)])
        rows = _rows(
            ["Strongly Agree", "Agree"],
            ["banana", "Agree"],
            ["Disagree", "Agree"],
        )
        ds = analyze_responses(config, rows)
        q = ds.questions[0]
        assert q.average == 3.5
        assert q.distribution == (0, 1, 0, 0, 1)
        assert q.response_count == 2
        assert ds.respondent_count == 3
        assert ds.excluded_respondents == ()
        assert ds.respondents[1].scores == (None, 4)


# ── Question and driver stats ─────────────────────────────────────

class TestQuestionAndDriverStats:
    def test_distribution_sums_to_non_missing(self, five_driver_config):
        respondents = [
            Respondent("a", (5, 4, 3, 2, 1, None, 5, 4, 3, 2)),
            Respondent("b", (1, 2, None, 4, 5, 1, 2, 3, None, 5)),
            Respondent("c", (3,) * 10),
        ]
        stats = compute_question_stats(five_driver_config.questions, respondents)
        for position, q in enumerate(stats):
            answered = sum(1 for r in respondents if r.scores[position] is not None)
            assert sum(q.distribution) == answered == q.response_count
            assert sum(q.distribution) <= len(respondents)

    def test_all_missing_question_is_zero(self, one_question):
        stats = compute_question_stats(one_question.questions, [Respondent("a", (None,))])
        assert stats[0].average == 0.0
        assert stats[0].std_dev == 0.0
        assert stats[0].distribution == (0, 0, 0, 0, 0)

    def test_driver_score_is_mean_of_rounded_question_means(self):
        stats = [
            QuestionStats(0, "Plan", "s", "a", 3.33, 0.0, (0, 0, 0, 0, 0)),
            QuestionStats(1, "Plan", "s", "b", 4.67, 0.0, (0, 0, 0, 0, 0)),
            QuestionStats(2, "People", "s", "c", 2.0, 0.0, (0, 0, 0, 0, 0)),
        ]
        assert compute_driver_scores(stats) == {"Plan": 4.0, "People": 2.0}

    def test_driver_grouping_is_a_partition(self, five_driver_config):
        stats = compute_question_stats(
            five_driver_config.questions, [Respondent("a", (4,) * 10)]
        )
        scores = compute_driver_scores(stats)
        assert set(scores) == {q.driver for q in five_driver_config.questions}
        assert list(scores) == five_driver_config.drivers

    def test_driver_with_no_answers_is_kept(self):
        config = SurveyConfig.build([_q("Purpose", 1), _q("Profit", 1)])
        ds = calculate_all(config, [Respondent("a", (5, None))])
        assert dict(ds.driver_scores) == {"Purpose": 5.0, "Profit": 0.0}


class TestExtremeDrivers:
    def test_first_seen_wins_ties(self):
        strongest, weakest = find_extreme_drivers(
            {"Purpose": 4.0, "People": 4.0, "Plan": 2.0, "Product": 2.0}
        )
        assert strongest == DriverExtreme("Purpose", 4.0)
        assert weakest == DriverExtreme("Plan", 2.0)

    def test_single_driver_is_both(self):
        strongest, weakest = find_extreme_drivers({"Profit": 3.1})
        assert strongest == weakest == DriverExtreme("Profit", 3.1)

    def test_empty_is_none(self):
        assert find_extreme_drivers({}) == (None, None)


# ── Respondents ───────────────────────────────────────────────────

class TestRespondents:
    def test_outlier_boundary_is_inclusive(self):
        assert OUTLIER_THRESHOLD == 1.5
        assert is_outlier(5, 3.5)
        assert is_outlier(2, 3.5)
        assert not is_outlier(5, 3.5001)
        assert not is_outlier(4.9999, 3.5)

    def test_respondent_driver_scores_cover_answered_drivers(self):
        config = SurveyConfig.build([_q("Purpose", 1), _q("People", 1), _q("Plan", 1)])
        respondents = [Respondent("a", (5, None, 1)), Respondent("b", (3, 4, 3))]
        stats = compute_question_stats(config.questions, respondents)
        summaries = compute_respondent_summaries(
            respondents, stats, compute_driver_scores(stats)
        )
        a = summaries[0]
        assert dict(a.driver_scores) == {"Purpose": 5.0, "Plan": 1.0}
        assert a.highest_driver == DriverExtreme("Purpose", 5.0)
        assert a.lowest_driver == DriverExtreme("Plan", 1.0)
        assert a.overall_average == 3.0

    def test_respondent_ties_keep_first_driver(self):
        config = SurveyConfig.build([_q("Purpose", 1), _q("People", 1)])
        ds = calculate_all(config, [Respondent("a", (4, 4))])
        r = ds.respondents[0]
        assert r.highest_driver.name == r.lowest_driver.name == "Purpose"

    def test_empty_respondents_excluded_and_logged(self, one_question, caplog):
        respondents = [Respondent("keep", (4,)), Respondent("drop", (None,))]
        with caplog.at_level(logging.WARNING, logger="engine.scoring"):
            kept, excluded = exclude_empty_respondents(respondents)
        assert [r.name for r in kept] == ["keep"]
        assert excluded == ["drop"]
        assert "drop" in caplog.text

        ds = calculate_all(one_question, respondents)
        assert [r.name for r in ds.respondents] == ["keep"]
        assert ds.excluded_respondents == ("drop",)

    def test_unnamed_rows_get_ordinal_names(self, one_question):
        respondents = build_respondents(
            one_question, [RawResponseRow(None, ("Agree",)), RawResponseRow("  ", ("Agree",))]
        )
        assert [r.name for r in respondents] == ["Respondent 1", "Respondent 2"]

    def test_misaligned_row_raises(self, one_question):
        with pytest.raises(ResponseAlignmentError):
            calculate_all(one_question, [Respondent("a", (4, 5))])


# ── Whole dataset ─────────────────────────────────────────────────

class TestDataset:
    def test_no_respondents_is_structurally_complete(self, five_driver_config):
        ds = calculate_all(five_driver_config, [])
        assert ds.respondent_count == 0
        assert len(ds.questions) == 10
        assert all(q.average == 0.0 and q.std_dev == 0.0 for q in ds.questions)
        assert set(ds.driver_scores) == set(five_driver_config.drivers)
        assert ds.strongest_driver == DriverExtreme("Purpose", 0.0)
        assert len(ds.sorted_by_alignment) == 8
        payload = ds.to_dict()
        assert payload["respondents"] == []
        assert payload["excludedRespondents"] == []

    def test_no_questions_yields_nulls(self):
        config = SurveyConfig(questions=())
        ds = calculate_all(config, [Respondent("a", ())])
        assert ds.strongest_driver is None and ds.weakest_driver is None
        assert ds.highest_question is None and ds.most_disagreed is None
        assert ds.sorted_by_highest_score == ()

    def test_dataset_is_frozen(self, one_question):
        ds = calculate_all(one_question, [Respondent("a", (4,))])
        with pytest.raises(AttributeError):
            ds.respondents = ()  # type: ignore[misc]
        with pytest.raises(TypeError):
            ds.driver_scores["Purpose"] = 1.0  # type: ignore[index]

    def test_idempotent(self, five_driver_config):
        rows = _rows(
            ["Agree", "Neutral", "banana", "Strongly Agree", "Disagree"] * 2,
            ["Strongly Disagree"] * 10,
            ["Agree"] * 10,
        )
        first = json.dumps(analyze_responses(five_driver_config, rows).to_dict(), sort_keys=True)
        second = json.dumps(analyze_responses(five_driver_config, rows).to_dict(), sort_keys=True)
        assert first == second

    def test_to_dict_uses_camel_case(self, one_question):
        payload = calculate_all(one_question, [Respondent("a", (4,))]).to_dict()
        assert payload["questions"][0]["stdDev"] == 0.0
        assert payload["strongestDriver"] == {"name": "Purpose", "score": 4.0}
        assert payload["respondents"][0]["overallAverage"] == 4.0
        assert payload["allQuestionsInOrder"] == payload["questions"]
