"""
Error taxonomy for the survey core.

    SurveyError
        ValidationError     - rejected locally, before any persistence call
        AccessError         - caller may not read/modify the survey
        PersistenceError    - backend failure, surfaced verbatim

Plural failures (missing answers, draft violations) carry the complete
list, never just the first one encountered.
"""

from typing import List, Optional


class SurveyError(Exception):
    """Base class for all survey core errors."""
    pass


# =============================================================================
# Validation
# =============================================================================


class ValidationError(SurveyError):
    """Raised when input fails local validation."""
    pass


class MinimumQuestionCountViolation(ValidationError):
    """Raised when removing the last remaining question of a draft."""

    def __init__(self, message: str = "A survey must keep at least one question"):
        super().__init__(message)


class MinimumOptionCountViolation(ValidationError):
    """Raised when removing an option would leave fewer than two."""

    def __init__(self, message: str = "A choice question must keep at least two options"):
        super().__init__(message)


class OptionsLocked(ValidationError):
    """Raised when editing the options of a type whose options are fixed."""
    pass


class MissingRequiredField(ValidationError):
    """Raised when a required field (e.g. title) is empty."""

    def __init__(self, field_name: str, message: Optional[str] = None):
        self.field_name = field_name
        super().__init__(message or f"Missing required field: {field_name}")


class PasswordRequired(ValidationError):
    """Raised when a private survey is saved without a password."""

    def __init__(self, message: str = "A private survey requires an access password"):
        super().__init__(message)


class DraftValidationError(ValidationError):
    """
    Raised when a draft cannot be saved.

    Properties:
        violations: Every problem found, in question order
    """

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__("Survey draft is not valid: " + "; ".join(self.violations))


class IncompleteSubmission(ValidationError):
    """
    Raised when a submission leaves questions unanswered.

    Properties:
        missing_question_ids: All unanswered ids, in declared question order
    """

    def __init__(self, missing_question_ids: List[str]):
        self.missing_question_ids = list(missing_question_ids)
        super().__init__(f"{len(self.missing_question_ids)} question(s) not answered")


class InvalidAnswer(ValidationError):
    """
    Raised when answers do not fit their questions.

    Properties:
        problems: Mapping of question id -> description
    """

    def __init__(self, problems: dict):
        self.problems = dict(problems)
        detail = "; ".join(f"{qid}: {msg}" for qid, msg in self.problems.items())
        super().__init__(f"Invalid answers: {detail}")


# =============================================================================
# Access
# =============================================================================


class AccessError(SurveyError):
    """Raised when the caller may not access a survey."""
    pass


class WrongPassword(AccessError):
    def __init__(self, survey_id: str):
        self.survey_id = survey_id
        super().__init__(f"Wrong password for survey {survey_id}")


class Forbidden(AccessError):
    def __init__(self, action: str, survey_id: str):
        self.action = action
        self.survey_id = survey_id
        super().__init__(f"Only the creator may {action} survey {survey_id}")


class NotAuthenticated(AccessError):
    def __init__(self, message: str = "No signed-in user"):
        super().__init__(message)


class SurveyNotFound(AccessError):
    def __init__(self, survey_id: str):
        self.survey_id = survey_id
        super().__init__(f"Survey not found: {survey_id}")


# =============================================================================
# Persistence
# =============================================================================


class PersistenceError(SurveyError):
    """Raised when the storage backend fails. Never retried by the core."""
    pass


class VersionConflict(PersistenceError):
    """Raised when a save is based on a stale survey version."""

    def __init__(self, survey_id: str, expected: int, actual: int):
        self.survey_id = survey_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Survey {survey_id} was modified concurrently (expected version {expected}, found {actual})"
        )


class SubmissionConflict(PersistenceError):
    """Raised when a submission id is reused by another respondent or survey."""

    def __init__(self, submission_id: str, survey_id: str, user_id: str):
        self.submission_id = submission_id
        self.survey_id = survey_id
        self.user_id = user_id
        super().__init__(
            f"Submission {submission_id} already belongs to another respondent or survey"
        )
