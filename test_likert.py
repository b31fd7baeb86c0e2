"""Tests for Likert label normalization.

Run:  pytest test_likert.py -v
"""
from __future__ import annotations

import logging

import pytest

from engine.likert import normalize_response, score_row, text_to_score
from schemas.taxonomy import DEFAULT_LIKERT_SCALE


class TestNormalizeResponse:
    def test_trims_and_lowercases(self):
        assert normalize_response("  Strongly AGREE \t") == "strongly agree"

    def test_none_is_empty(self):
        assert normalize_response(None) == ""

    def test_non_string_cell_is_stringified(self):
        assert normalize_response(4) == "4"


class TestTextToScore:
    @pytest.mark.parametrize("label, expected", [
        ("Strongly Agree", 5),
        ("agree", 4),
        ("NEUTRAL", 3),
        (" Disagree ", 2),
        ("strongly disagree", 1),
    ])
    def test_known_labels(self, label, expected):
        assert text_to_score(label) == expected

    @pytest.mark.parametrize("raw", ["", None, "banana", "Agreee", "strongly  agree", "5", 5])
    def test_unmatched_is_missing(self, raw):
        assert text_to_score(raw) is None

    def test_custom_scale(self):
        scale = {"yes": 5, "no": 1}
        assert text_to_score("YES", scale) == 5
        assert text_to_score("agree", scale) is None

    def test_default_scale_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_LIKERT_SCALE["agree"] = 3  # type: ignore[index]


class TestScoreRow:
    def test_mixed_row(self):
        assert score_row(["Strongly Agree", "banana", "Disagree"]) == (5, None, 2)

    def test_unmatched_cell_logs_warning_with_position(self, caplog):
        with caplog.at_level(logging.WARNING, logger="engine.likert"):
            score_row(["Agree", "banana"], respondent_ordinal=3, name="Ana")
        assert len(caplog.records) == 1
        message = caplog.records[0].getMessage()
        assert "respondent 3" in message
        assert "Ana" in message
        assert "question 1" in message
        assert "'banana'" in message

    def test_all_valid_row_is_silent(self, caplog):
        with caplog.at_level(logging.WARNING, logger="engine.likert"):
            assert score_row(["agree", "neutral"]) == (4, 3)
        assert caplog.records == []

    def test_empty_row(self):
        assert score_row([]) == ()
