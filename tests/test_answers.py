"""
Tests for answer variants.

These tests verify:
    - Emptiness rules used by completeness checks
    - Conversion between variants and raw stored payloads
"""

import pytest
from surveycore.answers import (
    MultipleChoiceAnswer,
    RatingAnswer,
    SingleChoiceAnswer,
    TextAnswer,
    TrueFalseAnswer,
    answer_from_raw,
    answer_to_raw,
    is_empty_answer,
)


class TestIsEmptyAnswer:

    def test_none_is_empty(self):
        assert is_empty_answer(None)

    def test_blank_text_is_empty(self):
        assert is_empty_answer(TextAnswer(""))
        assert is_empty_answer(TextAnswer("   "))
        assert not is_empty_answer(TextAnswer("ok"))

    def test_blank_choice_is_empty(self):
        assert is_empty_answer(SingleChoiceAnswer(""))
        assert not is_empty_answer(TrueFalseAnswer("正确"))

    def test_empty_selection_is_empty(self):
        assert is_empty_answer(MultipleChoiceAnswer.of([]))
        assert not is_empty_answer(MultipleChoiceAnswer.of(["A"]))

    def test_zero_rating_is_an_answer(self):
        """A rating of 0 is a real answer, not a missing one."""
        assert not is_empty_answer(RatingAnswer(0))


class TestMultipleChoiceAnswer:

    def test_duplicates_collapse(self):
        answer = MultipleChoiceAnswer.of(["A", "B", "A"])
        assert answer.values == frozenset({"A", "B"})

    def test_unordered_equality(self):
        assert MultipleChoiceAnswer.of(["B", "A"]) == MultipleChoiceAnswer.of(["A", "B"])


class TestRawConversion:

    def test_to_raw(self):
        assert answer_to_raw(SingleChoiceAnswer("A")) == "A"
        assert answer_to_raw(MultipleChoiceAnswer.of(["C", "A"])) == ["A", "C"]
        assert answer_to_raw(RatingAnswer(7)) == 7
        assert answer_to_raw(TextAnswer("hi")) == "hi"

    def test_from_raw(self):
        assert answer_from_raw("true_false", "错误") == TrueFalseAnswer("错误")
        assert answer_from_raw("multiple_choice", ["A", "B"]) == MultipleChoiceAnswer.of(["A", "B"])
        assert answer_from_raw("rating", 3) == RatingAnswer(3)

    def test_from_raw_rejects_bad_shapes(self):
        with pytest.raises(TypeError):
            answer_from_raw("rating", "3")
        with pytest.raises(TypeError):
            answer_from_raw("rating", True)
        with pytest.raises(TypeError):
            answer_from_raw("multiple_choice", "A")
        with pytest.raises(TypeError):
            answer_from_raw("text", 5)

    def test_from_raw_rejects_unknown_kind(self):
        with pytest.raises(TypeError):
            answer_from_raw("matrix", "x")
