"""
Survey Draft: the author's in-memory editing model.

A SurveyDraft is one authoring session's working copy of a survey:
    - an ordered list of DraftQuestion objects
    - the currently selected question
    - publish settings (title, description, privacy, password)

Every operation is a pure state transition on the draft. Nothing here
touches storage; SurveyService.save_draft is the explicit save step.

INVARIANTS kept on every edit:
    - The draft holds at least one question
    - Choice questions hold at least two options
    - TrueFalse options are exactly ["正确", "错误"] and cannot be edited
    - Rating and Text questions hold no options

Completeness (non-empty text, title, password) is only checked by
validate_for_save(), so half-typed drafts are always representable.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from surveycore.errors import (
    DraftValidationError,
    MinimumOptionCountViolation,
    MinimumQuestionCountViolation,
    MissingRequiredField,
    OptionsLocked,
    PasswordRequired,
)
from surveycore.model import (
    MIN_CHOICE_OPTIONS,
    OPTION_PREFIX,
    TRUE_FALSE_OPTIONS,
    Question,
    QuestionType,
    Survey,
    default_options,
    option_label,
)

logger = logging.getLogger(__name__)


@dataclass
class DraftQuestion:
    """
    A question being edited.

    Properties:
        text: Question text (may be empty while editing)
        type: QuestionType
        options: Ordered option labels
        question_id:
            Persisted id when the question was loaded from a saved survey,
            None for questions created in this session
    """

    text: str = ""
    type: QuestionType = QuestionType.SINGLE_CHOICE
    options: List[str] = field(default_factory=lambda: default_options(QuestionType.SINGLE_CHOICE))
    question_id: Optional[str] = None


@dataclass
class SurveyDraft:
    """
    Editing aggregate owned by one authoring session.

    Properties:
        questions: Ordered draft questions (never empty)
        current_index: Selected question
        title / description: Publish info
        is_private / password: Access settings; password is cleartext
            only while it lives in the draft
        survey_id: Set when editing an existing survey
        base_version: Survey version the draft was loaded from
        keeps_stored_password: True when an existing private survey is
            edited and no new password has been typed
    """

    questions: List[DraftQuestion] = field(default_factory=lambda: [DraftQuestion()])
    current_index: int = 0
    title: str = ""
    description: str = ""
    is_private: bool = False
    password: str = ""
    survey_id: Optional[str] = None
    base_version: Optional[int] = None
    keeps_stored_password: bool = False

    # =========================================================================
    # Selection
    # =========================================================================

    @property
    def current(self) -> DraftQuestion:
        return self.questions[self.current_index]

    def select(self, index: int) -> DraftQuestion:
        self._check_index(index)
        self.current_index = index
        return self.questions[index]

    # =========================================================================
    # Question list
    # =========================================================================

    def add_question(self) -> DraftQuestion:
        """Append a default SingleChoice question and select it."""
        question = DraftQuestion()
        self.questions.append(question)
        self.current_index = len(self.questions) - 1
        return question

    def remove_question(self, index: int) -> None:
        """
        Remove a question and select the one before it.

        Raises:
            MinimumQuestionCountViolation: If it is the only question
        """
        self._check_index(index)
        if len(self.questions) == 1:
            raise MinimumQuestionCountViolation()
        del self.questions[index]
        self.current_index = max(0, index - 1)

    def set_question_text(self, index: int, text: str) -> None:
        self._check_index(index)
        self.questions[index].text = text

    def change_type(self, index: int, new_type: QuestionType) -> None:
        """
        Switch a question's type, resetting its options to the type default.

        Prior option edits are always discarded, even when the type is
        unchanged.
        """
        self._check_index(index)
        question = self.questions[index]
        question.type = new_type
        question.options = default_options(new_type)

    # =========================================================================
    # Options
    # =========================================================================

    def add_option(self, index: int) -> str:
        """
        Append the next sequentially labelled option to a choice question.

        Returns:
            The new option text

        Raises:
            OptionsLocked: For TrueFalse, Rating and Text questions
        """
        self._check_index(index)
        question = self.questions[index]
        if not question.type.accepts_new_options:
            raise OptionsLocked(f"{question.type.value} questions do not take new options")
        text = OPTION_PREFIX + option_label(len(question.options))
        question.options.append(text)
        return text

    def remove_option(self, index: int, option_index: int) -> None:
        """
        Raises:
            MinimumOptionCountViolation: If fewer than two options would remain
        """
        question = self._question_with_option(index, option_index)
        if len(question.options) - 1 < MIN_CHOICE_OPTIONS:
            raise MinimumOptionCountViolation()
        del question.options[option_index]

    def set_option_text(self, index: int, option_index: int, text: str) -> None:
        question = self._question_with_option(index, option_index)
        if question.type is QuestionType.TRUE_FALSE:
            raise OptionsLocked("true_false options cannot be edited")
        question.options[option_index] = text

    # =========================================================================
    # Publish settings
    # =========================================================================

    def set_public(self) -> None:
        self.is_private = False
        self.password = ""
        self.keeps_stored_password = False

    def set_private(self, password: str) -> None:
        self.is_private = True
        self.password = password
        if password:
            self.keeps_stored_password = False

    # =========================================================================
    # Save-time validation
    # =========================================================================

    def validate_for_save(self) -> None:
        """
        Check that the draft can be persisted.

        Raises:
            MissingRequiredField: Title is blank (and nothing else is wrong)
            PasswordRequired: Private without a password (and nothing else)
            DraftValidationError: Otherwise lists every violation found
        """
        violations = []
        single_error = None

        if not self.title.strip():
            violations.append("title is required")
            single_error = MissingRequiredField("title")

        if self.is_private and not self.password and not self.keeps_stored_password:
            violations.append("private survey requires a password")
            single_error = PasswordRequired()

        if not self.questions:
            violations.append("survey needs at least one question")

        for position, question in enumerate(self.questions, start=1):
            violations.extend(_question_violations(position, question))

        if not violations:
            return
        if len(violations) == 1 and single_error is not None:
            raise single_error
        logger.debug("Draft rejected with %d violation(s)", len(violations))
        raise DraftValidationError(violations)

    def to_questions(self, survey_id: str) -> List[Question]:
        """
        Materialize the draft questions for a survey.

        Questions without a persisted id get an empty id; the store
        assigns one on save.
        """
        return [
            Question(
                id=q.question_id or "",
                survey_id=survey_id,
                text=q.text,
                type=q.type,
                options=list(q.options),
                display_order=position,
            )
            for position, q in enumerate(self.questions)
        ]

    @classmethod
    def from_survey(cls, survey: Survey, questions: List[Question]) -> "SurveyDraft":
        """
        Load an existing survey for editing.

        The stored password is a hash and is never loaded back; a private
        survey keeps its stored password until a new one is typed.
        """
        ordered = sorted(questions, key=lambda q: q.display_order)
        drafts = [
            DraftQuestion(text=q.text, type=q.type, options=list(q.options), question_id=q.id)
            for q in ordered
        ]
        return cls(
            questions=drafts or [DraftQuestion()],
            title=survey.title,
            description=survey.description,
            is_private=survey.is_private,
            survey_id=survey.id,
            base_version=survey.version,
            keeps_stored_password=survey.is_private and bool(survey.password_hash),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.questions):
            raise IndexError(f"No question at index {index}")

    def _question_with_option(self, index: int, option_index: int) -> DraftQuestion:
        self._check_index(index)
        question = self.questions[index]
        if not 0 <= option_index < len(question.options):
            raise IndexError(f"Question {index} has no option at index {option_index}")
        return question


def _question_violations(position: int, question: DraftQuestion) -> List[str]:
    problems = []
    if not question.text.strip():
        problems.append(f"question {position} has no text")

    if question.type.accepts_new_options:
        if len(question.options) < MIN_CHOICE_OPTIONS:
            problems.append(f"question {position} needs at least {MIN_CHOICE_OPTIONS} options")
        if any(not option.strip() for option in question.options):
            problems.append(f"question {position} has an empty option")
        if len(set(question.options)) != len(question.options):
            problems.append(f"question {position} has duplicate options")
    elif question.type is QuestionType.TRUE_FALSE:
        if tuple(question.options) != TRUE_FALSE_OPTIONS:
            problems.append(f"question {position} must keep the true/false options")
    elif question.options:
        problems.append(f"question {position} ({question.type.value}) must not have options")

    return problems
