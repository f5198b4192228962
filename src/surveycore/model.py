"""
Core Survey Model Objects

Defines the persisted entities of the survey core:
    - Survey (root container, owned by its creator)
    - Question (one item, owned by its survey)
    - Response (one respondent's answer to one question)
    - Profile (collaborator entity, looked up for display names)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about storage backends or rendering
        - Carry structure, not behavior
        - Are fully serializable (see surveycore.serialization)

Editing happens in surveycore.draft, never on these objects directly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from surveycore.answers import Answer


class QuestionType(Enum):
    """
    Question types supported by the authoring model.

    The value is the stored/serialized name.
    """

    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    RATING = "rating"
    TEXT = "text"

    @property
    def is_choice(self) -> bool:
        """True for types whose answers are drawn from declared options."""
        return self in CHOICE_TYPES

    @property
    def accepts_new_options(self) -> bool:
        return self in (QuestionType.SINGLE_CHOICE, QuestionType.MULTIPLE_CHOICE)


CHOICE_TYPES = frozenset({
    QuestionType.SINGLE_CHOICE,
    QuestionType.MULTIPLE_CHOICE,
    QuestionType.TRUE_FALSE,
})

OPTION_PREFIX = "Option "
TRUE_FALSE_OPTIONS = ("正确", "错误")
MIN_CHOICE_OPTIONS = 2
RATING_MIN = 0
RATING_MAX = 10


def option_label(position: int) -> str:
    """
    Return the sequential label for the option at a zero-based position.

    A..Z, then AA, AB, ... (spreadsheet column style) so labels never run
    past 'Z' into punctuation.

    Examples:
        option_label(0)  -> "A"
        option_label(25) -> "Z"
        option_label(26) -> "AA"
    """
    if position < 0:
        raise ValueError(f"Option position must be non-negative: {position}")
    label = ""
    n = position + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        label = chr(ord("A") + rem) + label
    return label


def default_options(question_type: QuestionType) -> List[str]:
    """
    Return a fresh copy of the default option list for a question type.

    SingleChoice/MultipleChoice -> ["Option A", "Option B"]
    TrueFalse                   -> ["正确", "错误"]
    Rating/Text                 -> []
    """
    if question_type.accepts_new_options:
        return [OPTION_PREFIX + option_label(i) for i in range(MIN_CHOICE_OPTIONS)]
    if question_type is QuestionType.TRUE_FALSE:
        return list(TRUE_FALSE_OPTIONS)
    return []


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Survey:
    """
    Root container for a published survey.

    Properties:
        id:
            Durable identifier, minted by the store on create

        title / description:
            Author-facing text

        creator_id:
            Identity of the author; only the creator may edit, delete
            or view statistics

        is_private:
            When True, respondents must supply the access password

        password_hash:
            Salted hash of the access password (never cleartext).
            Present iff is_private.

        created_at:
            Creation timestamp (UTC)

        version:
            Incremented on every save. Used as an optimistic
            concurrency token when the question list is replaced.

    INVARIANTS:
        - is_private == True  => password_hash is non-empty
        - is_private == False => password_hash is None
    """

    id: str
    title: str
    creator_id: str
    description: str = ""
    is_private: bool = False
    password_hash: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    version: int = 1


@dataclass
class Question:
    """
    Represents one persisted question of a survey.

    Properties:
        id: Unique identifier (stable while the question is unchanged)
        survey_id: Owning survey
        text: Question text shown to respondents
        type: QuestionType
        options: Ordered option labels (order is significant)
        display_order: Zero-based position in the survey
    """

    id: str
    survey_id: str
    text: str
    type: QuestionType
    options: List[str] = field(default_factory=list)
    display_order: int = 0


@dataclass(frozen=True)
class Response:
    """
    One respondent's answer to one question.

    Responses are written once, as part of a submission batch, and never
    mutated afterwards.

    Properties:
        id: Row identifier
        survey_id / question_id / user_id: Foreign references
        answer: Tagged answer variant (see surveycore.answers)
        created_at: Submission timestamp (UTC)
        submission_id: Groups all rows written by one submission
    """

    id: str
    survey_id: str
    question_id: str
    user_id: str
    answer: Answer
    created_at: datetime = field(default_factory=_utcnow)
    submission_id: Optional[str] = None


@dataclass
class Profile:
    """Display information for a user. Looked up, never written, by statistics."""

    user_id: str
    display_name: str


def get_question(questions: List[Question], question_id: str) -> Optional[Question]:
    """
    Retrieve a question by ID.

    Returns:
        Question object or None if not found
    """
    for question in questions:
        if question.id == question_id:
            return question
    return None
