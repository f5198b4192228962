"""
Tests for the ResponseCollector.

These tests verify:
    - Completeness reports every missing question id, in declared order
    - Raw payloads are coerced by question type
    - Shape checks (options, rating range, variant type)
    - Batch submission is all-or-nothing and idempotent per key
"""

import pytest
from surveycore.answers import MultipleChoiceAnswer, RatingAnswer, SingleChoiceAnswer, TextAnswer
from surveycore.collector import ResponseCollector, coerce_answer, validate_completeness
from surveycore.errors import IncompleteSubmission, InvalidAnswer, PersistenceError, SubmissionConflict
from surveycore.model import Question, QuestionType, Survey
from surveycore.store import InMemorySurveyStore


def q(qid, qtype, options=None, order=0):
    return Question(id=qid, survey_id="s1", text=qid, type=qtype, options=options or [], display_order=order)


@pytest.fixture
def questions():
    return [
        q("color", QuestionType.SINGLE_CHOICE, ["Red", "Blue"], 0),
        q("pets", QuestionType.MULTIPLE_CHOICE, ["Cat", "Dog", "Fish"], 1),
        q("fact", QuestionType.TRUE_FALSE, ["正确", "错误"], 2),
        q("score", QuestionType.RATING, order=3),
        q("note", QuestionType.TEXT, order=4),
    ]


@pytest.fixture
def full_answers():
    return {
        "color": "Red",
        "pets": ["Cat", "Fish"],
        "fact": "正确",
        "score": 0,
        "note": "fine",
    }


@pytest.fixture
def store():
    store = InMemorySurveyStore()
    store.create_survey(Survey(id="s1", title="T", creator_id="owner"), [])
    return store


class TestValidateCompleteness:

    def test_reports_exactly_the_missing_ids_in_order(self):
        three = [
            q("a", QuestionType.TEXT, order=0),
            q("b", QuestionType.TEXT, order=1),
            q("c", QuestionType.TEXT, order=2),
        ]
        assert validate_completeness(three, {"b": "answered"}) == ["a", "c"]

    def test_order_follows_display_order_not_list_order(self):
        shuffled = [q("late", QuestionType.TEXT, order=5), q("early", QuestionType.TEXT, order=1)]
        assert validate_completeness(shuffled, {}) == ["early", "late"]

    def test_complete(self, questions, full_answers):
        assert validate_completeness(questions, full_answers) == []

    def test_empty_values_count_as_missing(self, questions, full_answers):
        full_answers.update({"color": "", "pets": [], "note": "   ", "score": None})
        assert validate_completeness(questions, full_answers) == ["color", "pets", "score", "note"]

    def test_rating_zero_is_answered(self, questions, full_answers):
        full_answers["score"] = 0
        assert "score" not in validate_completeness(questions, full_answers)


class TestCoerceAnswer:

    def test_raw_shapes(self, questions):
        color, pets, fact, score, note = questions
        assert coerce_answer(color, "Red") == SingleChoiceAnswer("Red")
        assert coerce_answer(pets, ["Dog", "Dog"]) == MultipleChoiceAnswer.of(["Dog"])
        assert coerce_answer(score, 7) == RatingAnswer(7)
        assert coerce_answer(score, 7.0) == RatingAnswer(7)
        assert coerce_answer(note, "") == TextAnswer("")

    def test_unusable_payloads_become_none(self, questions):
        color, pets, fact, score, note = questions
        assert coerce_answer(score, "7") is None
        assert coerce_answer(score, True) is None
        assert coerce_answer(score, 7.5) is None
        assert coerce_answer(pets, "Cat") is None
        assert coerce_answer(color, 3) is None

    def test_variants_pass_through(self, questions):
        answer = TextAnswer("as is")
        assert coerce_answer(questions[0], answer) is answer


class TestValidateAnswers:

    def test_unknown_option(self, store, questions, full_answers):
        full_answers["color"] = "Green"
        full_answers["pets"] = ["Cat", "Lizard"]
        with pytest.raises(InvalidAnswer) as exc:
            ResponseCollector(store).validate_answers(questions, full_answers)
        assert set(exc.value.problems) == {"color", "pets"}

    @pytest.mark.parametrize("value", [-1, 11, 100])
    def test_rating_out_of_range(self, store, questions, full_answers, value):
        full_answers["score"] = value
        with pytest.raises(InvalidAnswer) as exc:
            ResponseCollector(store).validate_answers(questions, full_answers)
        assert list(exc.value.problems) == ["score"]

    @pytest.mark.parametrize("value", [0, 10])
    def test_rating_bounds_inclusive(self, store, questions, full_answers, value):
        full_answers["score"] = value
        coerced = ResponseCollector(store).validate_answers(questions, full_answers)
        assert coerced["score"] == RatingAnswer(value)

    def test_wrong_variant(self, store, questions, full_answers):
        full_answers["note"] = RatingAnswer(3)
        with pytest.raises(InvalidAnswer) as exc:
            ResponseCollector(store).validate_answers(questions, full_answers)
        assert "note" in exc.value.problems

    def test_malformed_payloads_are_invalid_not_missing(self, store, questions, full_answers):
        full_answers.update({"score": 7.5, "color": 3, "pets": "Cat", "note": ["fine"]})
        assert validate_completeness(questions, full_answers) == []
        with pytest.raises(InvalidAnswer) as exc:
            ResponseCollector(store).validate_answers(questions, full_answers)
        assert list(exc.value.problems) == ["color", "pets", "score", "note"]

    @pytest.mark.parametrize("value", ["7", True])
    def test_rating_must_be_an_integer(self, store, questions, full_answers, value):
        full_answers["score"] = value
        with pytest.raises(InvalidAnswer) as exc:
            ResponseCollector(store).validate_answers(questions, full_answers)
        assert list(exc.value.problems) == ["score"]

    def test_incomplete_before_shape(self, store, questions):
        with pytest.raises(IncompleteSubmission) as exc:
            ResponseCollector(store).validate_answers(questions, {"color": "Green"})
        assert exc.value.missing_question_ids == ["pets", "fact", "score", "note"]


class TestSubmit:

    def test_one_row_per_question(self, store, questions, full_answers):
        receipt = ResponseCollector(store).submit("s1", "u1", questions, full_answers)
        rows = store.list_responses(survey_id="s1")
        assert receipt.response_count == 5
        assert not receipt.duplicate
        assert [r.question_id for r in rows] == ["color", "pets", "fact", "score", "note"]
        assert {r.submission_id for r in rows} == {receipt.submission_id}
        assert {r.created_at for r in rows} == {receipt.submitted_at}
        assert rows[1].answer == MultipleChoiceAnswer.of(["Cat", "Fish"])

    def test_incomplete_writes_nothing(self, store, questions, full_answers):
        del full_answers["note"]
        with pytest.raises(IncompleteSubmission):
            ResponseCollector(store).submit("s1", "u1", questions, full_answers)
        assert store.list_responses(survey_id="s1") == []

    def test_repeat_submissions_append(self, store, questions, full_answers):
        collector = ResponseCollector(store)
        first = collector.submit("s1", "u1", questions, full_answers)
        second = collector.submit("s1", "u1", questions, full_answers)
        assert first.submission_id != second.submission_id
        assert len(store.list_responses(survey_id="s1", user_id="u1")) == 10

    def test_retry_with_same_key_is_ignored(self, store, questions, full_answers):
        collector = ResponseCollector(store)
        first = collector.submit("s1", "u1", questions, full_answers, idempotency_key="attempt-1")
        retry = collector.submit("s1", "u1", questions, full_answers, idempotency_key="attempt-1")
        assert retry.duplicate
        assert retry.submission_id == "attempt-1"
        assert retry.submitted_at == first.submitted_at
        assert retry.response_count == first.response_count
        assert len(store.list_responses(survey_id="s1")) == 5

    def test_retry_returns_original_receipt_without_revalidating(self, store, questions, full_answers):
        collector = ResponseCollector(store)
        first = collector.submit("s1", "u1", questions, full_answers, idempotency_key="attempt-1")
        retry = collector.submit("s1", "u1", questions, {}, idempotency_key="attempt-1")
        assert retry.submitted_at == first.submitted_at
        assert retry.duplicate

    def test_key_reused_by_another_respondent_is_rejected(self, store, questions, full_answers):
        collector = ResponseCollector(store)
        collector.submit("s1", "alice", questions, full_answers, idempotency_key="k1")
        with pytest.raises(SubmissionConflict):
            collector.submit("s1", "bob", questions, full_answers, idempotency_key="k1")
        assert store.list_responses(user_id="bob") == []

    def test_lost_race_returns_the_winning_receipt(self, questions, full_answers):
        class RacingStore(InMemorySurveyStore):
            # the first lookup misses, as if the other call had not landed yet
            def get_submission(self, submission_id):
                if not getattr(self, "looked_up", False):
                    self.looked_up = True
                    return []
                return super().get_submission(submission_id)

        store = RacingStore()
        store.create_survey(Survey(id="s1", title="T", creator_id="owner"), [])
        collector = ResponseCollector(store)
        store.looked_up = True
        first = collector.submit("s1", "u1", questions, full_answers, idempotency_key="k")
        store.looked_up = False
        retry = collector.submit("s1", "u1", questions, full_answers, idempotency_key="k")
        assert retry.duplicate
        assert retry.submitted_at == first.submitted_at
        assert len(store.list_responses()) == 5

    def test_store_failure_propagates_and_nothing_is_visible(self, questions, full_answers):
        class FailingStore(InMemorySurveyStore):
            def append_responses(self, responses):
                raise PersistenceError("disk full")

        store = FailingStore()
        store.create_survey(Survey(id="s1", title="T", creator_id="owner"), [])
        with pytest.raises(PersistenceError, match="disk full"):
            ResponseCollector(store).submit("s1", "u1", questions, full_answers)
        assert store.list_responses() == []
