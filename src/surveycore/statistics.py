"""
Statistics Engine: per-question summaries of stored responses.

This module turns a question plus the responses addressed to it into a
read-only summary:
    - Choice family (single, true/false, multiple): count and percentage
      per declared option
    - Rating: histogram over 0..10 and a one-decimal average
    - Text: list of answers with the respondent's display name

and, per survey, the number of distinct respondents.

IMPORTANT: This is an analysis layer. It does NOT modify questions or
responses and holds no state between calls (StatisticsCache is an
explicit, opt-in memo). Identical inputs always produce identical
summaries:
    - options keep their authored order, never sorted by frequency
    - rounding is half-up, never float-dependent

Answers that do not fit the question (wrong variant, option no longer
declared, rating out of range) are dropped from counts and histograms.
They still count in total_responses, which is always the number of
response rows for the question.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from surveycore.answers import (
    MultipleChoiceAnswer,
    RatingAnswer,
    SingleChoiceAnswer,
    TextAnswer,
    TrueFalseAnswer,
)
from surveycore.config import Config
from surveycore.model import RATING_MAX, RATING_MIN, Profile, Question, QuestionType, Response, Survey

logger = logging.getLogger(__name__)

RATING_BUCKETS = tuple(range(RATING_MIN, RATING_MAX + 1))


def percentage(count: int, total: int) -> int:
    """count / total as a whole percentage, rounded half-up; 0 when total is 0."""
    if total <= 0:
        return 0
    value = Decimal(count) * 100 / Decimal(total)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_average(total_value: int, total: int) -> str:
    """total_value / total rounded half-up to one decimal, e.g. "5.0"."""
    if total <= 0:
        return "0.0"
    value = Decimal(total_value) / Decimal(total)
    return str(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


# =============================================================================
# Summary objects
# =============================================================================


@dataclass
class OptionCount:
    """One row of a choice summary."""
    option: str
    count: int
    percentage: int


@dataclass
class ChoiceSummary:
    """
    Counts for a SingleChoice, TrueFalse or MultipleChoice question.

    For MultipleChoice one response may increment several options, so
    counts need not sum to total_responses.
    """

    question_id: str
    question_text: str
    question_type: QuestionType
    total_responses: int = 0
    counts: Dict[str, int] = field(default_factory=dict)
    dropped_answers: int = 0

    @property
    def percentages(self) -> Dict[str, int]:
        return {option: percentage(count, self.total_responses) for option, count in self.counts.items()}

    def rows(self) -> List[OptionCount]:
        return [
            OptionCount(option=option, count=count, percentage=percentage(count, self.total_responses))
            for option, count in self.counts.items()
        ]


@dataclass
class RatingSummary:
    """
    Histogram and average for a Rating question.

    average divides by total_responses (every row), while only in-range
    integer answers add to histogram and sum.
    """

    question_id: str
    question_text: str
    question_type: QuestionType = QuestionType.RATING
    total_responses: int = 0
    histogram: Dict[int, int] = field(default_factory=lambda: {b: 0 for b in RATING_BUCKETS})
    sum: int = 0
    dropped_answers: int = 0

    @property
    def average(self) -> str:
        return format_average(self.sum, self.total_responses)


@dataclass
class TextEntry:
    """One text answer as shown to the survey's creator."""
    user_id: str
    respondent_display_name: str
    answer_text: str
    submitted_at: datetime


@dataclass
class TextPreview:
    """The first entries of a text summary, for "show all" style display."""
    entries: List[TextEntry]
    total: int

    @property
    def has_more(self) -> bool:
        return self.total > len(self.entries)

    @property
    def hidden_count(self) -> int:
        return self.total - len(self.entries)


@dataclass
class TextSummary:
    """Answers to a Text question, in the order the responses were given."""

    question_id: str
    question_text: str
    question_type: QuestionType = QuestionType.TEXT
    total_responses: int = 0
    entries: List[TextEntry] = field(default_factory=list)
    dropped_answers: int = 0

    def preview(self, limit: Optional[int] = None) -> TextPreview:
        if limit is None:
            limit = Config.TEXT_PREVIEW_LIMIT
        return TextPreview(entries=self.entries[:max(0, limit)], total=len(self.entries))


QuestionSummary = Union[ChoiceSummary, RatingSummary, TextSummary]


@dataclass
class SurveyStatistics:
    """
    Statistics for a whole survey, as shown to its creator.

    Properties:
        survey_id / survey_title: Identity of the survey
        distinct_respondents: Number of different users who responded
        total_submissions: Number of submission batches
        questions: One summary per live question, in display order
        orphaned_responses: Responses whose question no longer exists
        warnings: Data-quality notes (dropped answers, orphans)
    """

    survey_id: str
    survey_title: str = ""
    distinct_respondents: int = 0
    total_submissions: int = 0
    questions: List[QuestionSummary] = field(default_factory=list)
    orphaned_responses: int = 0
    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        if msg not in self.warnings:
            self.warnings.append(msg)

    def get(self, question_id: str) -> Optional[QuestionSummary]:
        for summary in self.questions:
            if summary.question_id == question_id:
                return summary
        return None


# =============================================================================
# Per-type aggregation
# =============================================================================


def _summarize_choice(question: Question, responses: List[Response]) -> ChoiceSummary:
    summary = ChoiceSummary(
        question_id=question.id,
        question_text=question.text,
        question_type=question.type,
        total_responses=len(responses),
        counts={option: 0 for option in question.options},
    )
    counts = summary.counts

    for response in responses:
        answer = response.answer
        if question.type is QuestionType.MULTIPLE_CHOICE:
            if not isinstance(answer, MultipleChoiceAnswer):
                summary.dropped_answers += 1
                continue
            matched = [v for v in answer.values if v in counts]
            for value in matched:
                counts[value] += 1
            if len(matched) != len(answer.values):
                summary.dropped_answers += 1
        else:
            expected = SingleChoiceAnswer if question.type is QuestionType.SINGLE_CHOICE else TrueFalseAnswer
            if isinstance(answer, expected) and answer.value in counts:
                counts[answer.value] += 1
            else:
                summary.dropped_answers += 1

    return summary


def _summarize_rating(question: Question, responses: List[Response]) -> RatingSummary:
    summary = RatingSummary(
        question_id=question.id,
        question_text=question.text,
        total_responses=len(responses),
    )
    for response in responses:
        answer = response.answer
        value = answer.value if isinstance(answer, RatingAnswer) else None
        if isinstance(value, bool) or not isinstance(value, int) or value not in summary.histogram:
            summary.dropped_answers += 1
            continue
        summary.histogram[value] += 1
        summary.sum += value
    return summary


def _summarize_text(
    question: Question,
    responses: List[Response],
    display_names: Mapping[str, str],
    unknown_user: str,
) -> TextSummary:
    summary = TextSummary(
        question_id=question.id,
        question_text=question.text,
        total_responses=len(responses),
    )
    for response in responses:
        if not isinstance(response.answer, TextAnswer):
            summary.dropped_answers += 1
            continue
        summary.entries.append(TextEntry(
            user_id=response.user_id,
            respondent_display_name=display_names.get(response.user_id) or unknown_user,
            answer_text=response.answer.value or "",
            submitted_at=response.created_at,
        ))
    return summary


# =============================================================================
# Public API
# =============================================================================


def display_names(profiles: Union[Mapping[str, Profile], Iterable[Profile], None]) -> Dict[str, str]:
    """Build a user id -> display name map from profiles."""
    if profiles is None:
        return {}
    values = profiles.values() if isinstance(profiles, Mapping) else profiles
    return {p.user_id: p.display_name for p in values}


def summarize_question(
    question: Question,
    responses: Iterable[Response],
    names: Optional[Mapping[str, str]] = None,
    unknown_user: Optional[str] = None,
) -> QuestionSummary:
    """
    Summarize one question.

    Args:
        question: The question to summarize
        responses: Responses; those addressed to other questions are ignored
        names: user id -> display name (Text questions only)
        unknown_user: Placeholder for users without a profile

    Returns:
        ChoiceSummary, RatingSummary or TextSummary depending on type
    """
    own = [r for r in responses if r.question_id == question.id]
    qtype = question.type

    if qtype in (QuestionType.SINGLE_CHOICE, QuestionType.TRUE_FALSE, QuestionType.MULTIPLE_CHOICE):
        summary = _summarize_choice(question, own)
    elif qtype is QuestionType.RATING:
        summary = _summarize_rating(question, own)
    elif qtype is QuestionType.TEXT:
        summary = _summarize_text(
            question, own, names or {}, unknown_user if unknown_user is not None else Config.UNKNOWN_USER
        )
    else:
        raise TypeError(f"Unsupported question type: {qtype}")

    if summary.dropped_answers:
        logger.debug(
            "Question %s: dropped %d answer(s) that no longer fit", question.id, summary.dropped_answers
        )
    return summary


def count_distinct_respondents(responses: Iterable[Response]) -> int:
    """Number of different users among the responses."""
    return len({r.user_id for r in responses})


def summarize_survey(
    survey: Survey,
    questions: List[Question],
    responses: List[Response],
    names: Optional[Mapping[str, str]] = None,
    unknown_user: Optional[str] = None,
) -> SurveyStatistics:
    """
    Summarize every question of a survey.

    Args:
        survey: The survey being reported on
        questions: Its live questions (any order; output is display order)
        responses: All responses stored for the survey
        names: user id -> display name for text answers

    Returns:
        SurveyStatistics with per-question summaries and warnings
    """
    own = [r for r in responses if r.survey_id == survey.id]
    report = SurveyStatistics(survey_id=survey.id, survey_title=survey.title)
    report.distinct_respondents = count_distinct_respondents(own)
    report.total_submissions = len({r.submission_id or r.id for r in own})

    by_question: Dict[str, List[Response]] = {}
    for response in own:
        by_question.setdefault(response.question_id, []).append(response)

    ordered = sorted(questions, key=lambda q: q.display_order)
    for question in ordered:
        summary = summarize_question(question, by_question.get(question.id, []), names, unknown_user)
        report.questions.append(summary)
        if summary.dropped_answers:
            report.add_warning(
                f"Question {summary.question_id}: {summary.dropped_answers} answer(s) ignored"
            )

    live_ids = {q.id for q in questions}
    report.orphaned_responses = sum(1 for r in own if r.question_id not in live_ids)
    if report.orphaned_responses:
        report.add_warning(
            f"{report.orphaned_responses} response(s) belong to questions no longer in the survey"
        )
    return report


class StatisticsCache:
    """
    Memo of survey statistics keyed by (survey id, survey version,
    response version, profile version).

    A new save, a new submission or a renamed respondent changes the key,
    so stale entries are never served; they are evicted the next time the
    survey is computed.

    Every caller gets its own copy of the report, so mutating one never
    touches the cached entry.
    """

    def __init__(self):
        self._entries: Dict[str, Tuple[Tuple[int, int, int], SurveyStatistics]] = {}
        self.hits = 0
        self.misses = 0

    def get_or_compute(
        self, survey: Survey, response_version: int, compute, profile_version: int = 0
    ) -> SurveyStatistics:
        key = (survey.version, response_version, profile_version)
        cached = self._entries.get(survey.id)
        if cached is not None and cached[0] == key:
            self.hits += 1
            return copy.deepcopy(cached[1])
        self.misses += 1
        report = compute()
        self._entries[survey.id] = (key, copy.deepcopy(report))
        return report

    def invalidate(self, survey_id: str) -> None:
        self._entries.pop(survey_id, None)
