"""
Response Collector: validates one respondent's answer set and writes it
as a single batch.

Order of work on submit:
    1. Coerce raw payloads into answer variants (by question type)
    2. Completeness: every question answered, all gaps reported at once
    3. Shape: variant matches type, choices are declared options,
       ratings in [0, 10]
    4. Build one Response per question and append them atomically

Nothing is written unless steps 1-3 pass for every question.

Each successful submit is an independent attempt; a respondent may
submit the same survey again. Retries of the same attempt are made
harmless by the idempotency key, which becomes the batch's submission id.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from surveycore.answers import (
    Answer,
    MultipleChoiceAnswer,
    RatingAnswer,
    SingleChoiceAnswer,
    TextAnswer,
    TrueFalseAnswer,
    is_empty_answer,
)
from surveycore.errors import IncompleteSubmission, InvalidAnswer, SubmissionConflict
from surveycore.model import RATING_MAX, RATING_MIN, Question, QuestionType, Response
from surveycore.store import SurveyStore, new_id

logger = logging.getLogger(__name__)


VARIANT_FOR_TYPE = {
    QuestionType.SINGLE_CHOICE: SingleChoiceAnswer,
    QuestionType.MULTIPLE_CHOICE: MultipleChoiceAnswer,
    QuestionType.TRUE_FALSE: TrueFalseAnswer,
    QuestionType.RATING: RatingAnswer,
    QuestionType.TEXT: TextAnswer,
}


@dataclass(frozen=True)
class Submission:
    """
    Receipt for a submitted answer set.

    Properties:
        submission_id: Batch id (the idempotency key when one was given)
        survey_id / user_id: Who answered what
        response_count: Rows in the batch
        submitted_at: Timestamp stamped on every row
        duplicate: True when this key had already been stored and
            nothing new was written
    """

    submission_id: str
    survey_id: str
    user_id: str
    response_count: int
    submitted_at: datetime
    duplicate: bool = False


def coerce_answer(question: Question, raw: Any) -> Optional[Answer]:
    """
    Turn a raw payload into the variant for the question's type.

    Variants pass through untouched (shape is checked separately).
    None stays None. Payloads that cannot represent an answer for the
    type are also returned as None; validate_answers reports those as
    malformed, not as unanswered.

    Raw shapes:
        SingleChoice / TrueFalse / Text -> str
        MultipleChoice                  -> iterable of str
        Rating                          -> int
    """
    if raw is None or isinstance(raw, Answer):
        return raw

    qtype = question.type
    if qtype is QuestionType.MULTIPLE_CHOICE:
        if isinstance(raw, (list, tuple, set, frozenset)):
            return MultipleChoiceAnswer.of(raw)
        return None
    if qtype is QuestionType.RATING:
        if isinstance(raw, bool):
            return None
        if isinstance(raw, int):
            return RatingAnswer(raw)
        if isinstance(raw, float) and raw.is_integer():
            return RatingAnswer(int(raw))
        return None
    if isinstance(raw, str):
        return VARIANT_FOR_TYPE[qtype](raw)
    return None


def is_unanswered(question: Question, raw: Any) -> bool:
    """
    Whether a raw payload leaves the question unanswered.

    Unanswered means: no entry, a blank string, or a payload that coerces
    to an empty answer (blank text, blank choice, empty selection, no
    rating). A rating of 0 is an answer. A payload of the wrong shape is
    an answer, just a malformed one.
    """
    if raw is None:
        return True
    if isinstance(raw, str) and not raw.strip():
        return True
    answer = coerce_answer(question, raw)
    return answer is not None and is_empty_answer(answer)


def validate_completeness(questions: List[Question], answers: Mapping[str, Any]) -> List[str]:
    """Return the ids of every unanswered question, in declared order."""
    ordered = sorted(questions, key=lambda q: q.display_order)
    return [q.id for q in ordered if is_unanswered(q, answers.get(q.id))]


def answer_problem(question: Question, answer: Answer) -> Optional[str]:
    """Describe why an answer does not fit its question, or None if it does."""
    expected = VARIANT_FOR_TYPE[question.type]
    if not isinstance(answer, expected):
        return f"expected a {question.type.value} answer, got {type(answer).__name__}"

    if isinstance(answer, MultipleChoiceAnswer):
        unknown = sorted(str(v) for v in answer.values if v not in question.options)
        if unknown:
            return f"unknown option(s): {', '.join(unknown)}"
    elif isinstance(answer, (SingleChoiceAnswer, TrueFalseAnswer)):
        if answer.value not in question.options:
            return f"unknown option: {answer.value}"
    elif isinstance(answer, RatingAnswer):
        if isinstance(answer.value, bool) or not isinstance(answer.value, int):
            return "rating must be an integer"
        if not RATING_MIN <= answer.value <= RATING_MAX:
            return f"rating must be between {RATING_MIN} and {RATING_MAX}"
    elif isinstance(answer, TextAnswer):
        if not isinstance(answer.value, str):
            return "text answer must be a string"
    return None


class ResponseCollector:
    """Validates and persists answer sets through a SurveyStore."""

    def __init__(self, store: SurveyStore):
        self.store = store

    def validate_completeness(self, questions: List[Question], answers: Mapping[str, Any]) -> List[str]:
        return validate_completeness(questions, answers)

    def validate_answers(self, questions: List[Question], answers: Mapping[str, Any]) -> Dict[str, Answer]:
        """
        Coerce and check every answer.

        Returns:
            Mapping of question id -> answer variant, for every question

        Raises:
            IncompleteSubmission: Listing all unanswered question ids
            InvalidAnswer: Listing every question whose answer does not fit
        """
        missing = validate_completeness(questions, answers)
        if missing:
            raise IncompleteSubmission(missing)

        coerced = {}
        problems = {}
        for question in sorted(questions, key=lambda q: q.display_order):
            raw = answers.get(question.id)
            answer = coerce_answer(question, raw)
            if answer is None:
                problem = f"cannot read {type(raw).__name__} as a {question.type.value} answer"
            else:
                problem = answer_problem(question, answer)
            if problem:
                problems[question.id] = problem
            else:
                coerced[question.id] = answer
        if problems:
            raise InvalidAnswer(problems)
        return coerced

    def submit(
        self,
        survey_id: str,
        user_id: str,
        questions: List[Question],
        answers: Mapping[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> Submission:
        """
        Validate an answer set and persist it as one batch.

        A call whose idempotency key was already stored returns the
        original receipt without validating or writing anything.

        Raises:
            IncompleteSubmission / InvalidAnswer: Before any write
            SubmissionConflict: The key belongs to another respondent or
                survey
            PersistenceError: If the store fails; nothing of the batch
                becomes visible
        """
        if idempotency_key:
            stored = self.store.get_submission(idempotency_key)
            if stored:
                return _stored_receipt(stored, survey_id, user_id)

        coerced = self.validate_answers(questions, answers)

        submission_id = idempotency_key or new_id()
        submitted_at = datetime.now(timezone.utc)
        batch = [
            Response(
                id=new_id(),
                survey_id=survey_id,
                question_id=question.id,
                user_id=user_id,
                answer=coerced[question.id],
                created_at=submitted_at,
                submission_id=submission_id,
            )
            for question in sorted(questions, key=lambda q: q.display_order)
        ]

        if not self.store.append_responses(batch):
            # another call with the same key won the race
            return _stored_receipt(self.store.get_submission(submission_id), survey_id, user_id)

        logger.info(
            "Stored submission %s: %d response(s) for survey %s by %s",
            submission_id, len(batch), survey_id, user_id,
        )
        return Submission(
            submission_id=submission_id,
            survey_id=survey_id,
            user_id=user_id,
            response_count=len(batch),
            submitted_at=submitted_at,
        )


def _stored_receipt(rows: List[Response], survey_id: str, user_id: str) -> Submission:
    """Rebuild the receipt of an already stored batch."""
    first = rows[0]
    if first.survey_id != survey_id or first.user_id != user_id:
        raise SubmissionConflict(first.submission_id, survey_id, user_id)
    logger.info("Submission %s already stored; returning its receipt", first.submission_id)
    return Submission(
        submission_id=first.submission_id,
        survey_id=first.survey_id,
        user_id=first.user_id,
        response_count=len(rows),
        submitted_at=first.created_at,
        duplicate=True,
    )
