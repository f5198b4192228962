"""
Persistence contract for the survey core, plus an in-memory reference store.

SurveyStore is the only surface through which the core touches durable
state. Backends must provide:
    - atomic create / update of a survey together with its question list
      (update replaces the whole list)
    - an optimistic version check on update
    - all-or-nothing append of a response batch, skipped when the batch's
      submission id was already written
    - a per-survey response version that changes whenever responses do,
      and a profile version that changes whenever any profile does

Backend failures are raised as PersistenceError and never retried here.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from surveycore.errors import PersistenceError, SubmissionConflict, SurveyNotFound, VersionConflict
from surveycore.model import Profile, Question, Response, Survey

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


class SurveyStore(ABC):
    """Abstract persistence layer consumed by the survey core."""

    # Surveys ----------------------------------------------------------------

    @abstractmethod
    def create_survey(self, survey: Survey, questions: List[Question]) -> Survey:
        """Persist a new survey and its questions; returns the stored survey."""

    @abstractmethod
    def get_survey(self, survey_id: str) -> Optional[Survey]:
        ...

    @abstractmethod
    def update_survey(self, survey: Survey, questions: List[Question], expected_version: int) -> Survey:
        """
        Replace a survey's fields and its entire question list.

        Raises:
            VersionConflict: If the stored version differs from expected_version
        """

    @abstractmethod
    def delete_survey(self, survey_id: str) -> None:
        """Delete a survey with its questions and responses."""

    @abstractmethod
    def list_surveys(self, creator_id: Optional[str] = None) -> List[Survey]:
        """Surveys, newest first, optionally restricted to one creator."""

    # Questions --------------------------------------------------------------

    @abstractmethod
    def list_questions(self, survey_id: str) -> List[Question]:
        """Questions of a survey ordered by display_order."""

    # Responses --------------------------------------------------------------

    @abstractmethod
    def append_responses(self, responses: List[Response]) -> bool:
        """
        Write a submission batch atomically.

        Every row of a batch shares one survey, one respondent and one
        submission id.

        Returns:
            False if the batch's submission id was already written (nothing
            is written again), True otherwise

        Raises:
            SubmissionConflict: If the submission id was written for
                another respondent or survey
        """

    @abstractmethod
    def get_submission(self, submission_id: str) -> List[Response]:
        """Rows written under submission_id, in batch order; empty if none."""

    @abstractmethod
    def list_responses(
        self,
        survey_id: Optional[str] = None,
        question_id: Optional[str] = None,
        user_id: Optional[str] = None,
        newest_first: bool = False,
    ) -> List[Response]:
        ...

    @abstractmethod
    def response_version(self, survey_id: str) -> int:
        """Counter bumped every time a survey's responses change."""

    # Profiles ---------------------------------------------------------------

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[Profile]:
        ...

    @abstractmethod
    def upsert_profile(self, profile: Profile) -> Profile:
        ...

    @abstractmethod
    def profile_version(self) -> int:
        """Counter bumped every time any profile changes."""

    def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
        """Profiles keyed by user id; users without a profile are omitted."""
        profiles = {}
        for user_id in user_ids:
            profile = self.get_profile(user_id)
            if profile is not None:
                profiles[user_id] = profile
        return profiles


class InMemorySurveyStore(SurveyStore):
    """
    Thread-safe dict-backed store.

    Every write stages its full result first and swaps it in under one
    lock, so readers never observe a half-applied update.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._surveys: Dict[str, Survey] = {}
        self._questions: Dict[str, List[Question]] = {}
        self._responses: List[Response] = []
        self._submissions: Dict[str, List[Response]] = {}
        self._response_versions: Dict[str, int] = {}
        self._profiles: Dict[str, Profile] = {}
        self._profile_version = 0

    # Surveys ----------------------------------------------------------------

    def create_survey(self, survey: Survey, questions: List[Question]) -> Survey:
        survey_id = survey.id or new_id()
        stored = replace(survey, id=survey_id, version=1)
        staged = _assign_question_ids(survey_id, questions)
        with self._lock:
            if survey_id in self._surveys:
                raise PersistenceError(f"Survey already exists: {survey_id}")
            self._surveys[survey_id] = stored
            self._questions[survey_id] = staged
        logger.info("Created survey %s with %d question(s)", survey_id, len(staged))
        return stored

    def get_survey(self, survey_id: str) -> Optional[Survey]:
        with self._lock:
            return self._surveys.get(survey_id)

    def update_survey(self, survey: Survey, questions: List[Question], expected_version: int) -> Survey:
        staged = _assign_question_ids(survey.id, questions)
        with self._lock:
            current = self._surveys.get(survey.id)
            if current is None:
                raise SurveyNotFound(survey.id)
            if current.version != expected_version:
                raise VersionConflict(survey.id, expected_version, current.version)
            stored = replace(
                survey,
                creator_id=current.creator_id,
                created_at=current.created_at,
                version=current.version + 1,
            )
            self._surveys[survey.id] = stored
            self._questions[survey.id] = staged
        logger.info("Updated survey %s to version %d", survey.id, stored.version)
        return stored

    def delete_survey(self, survey_id: str) -> None:
        with self._lock:
            if survey_id not in self._surveys:
                raise SurveyNotFound(survey_id)
            del self._surveys[survey_id]
            self._questions.pop(survey_id, None)
            self._responses = [r for r in self._responses if r.survey_id != survey_id]
            self._submissions = {
                key: rows for key, rows in self._submissions.items() if rows[0].survey_id != survey_id
            }
            self._response_versions[survey_id] = self._response_versions.get(survey_id, 0) + 1
        logger.info("Deleted survey %s", survey_id)

    def list_surveys(self, creator_id: Optional[str] = None) -> List[Survey]:
        with self._lock:
            surveys = list(self._surveys.values())
        if creator_id is not None:
            surveys = [s for s in surveys if s.creator_id == creator_id]
        return sorted(surveys, key=lambda s: s.created_at, reverse=True)

    # Questions --------------------------------------------------------------

    def list_questions(self, survey_id: str) -> List[Question]:
        with self._lock:
            questions = list(self._questions.get(survey_id, []))
        return sorted(questions, key=lambda q: q.display_order)

    # Responses --------------------------------------------------------------

    def append_responses(self, responses: List[Response]) -> bool:
        if not responses:
            return True
        submission_ids = {r.submission_id for r in responses}
        survey_ids = {r.survey_id for r in responses}
        user_ids = {r.user_id for r in responses}
        if len(submission_ids) != 1 or len(survey_ids) != 1 or len(user_ids) != 1:
            raise PersistenceError(
                "A response batch must belong to one submission of one respondent to one survey"
            )
        submission_id = submission_ids.pop()
        survey_id = survey_ids.pop()
        user_id = user_ids.pop()
        staged = list(responses)

        with self._lock:
            if survey_id not in self._surveys:
                raise SurveyNotFound(survey_id)
            existing = self._submissions.get(submission_id) if submission_id is not None else None
            if existing:
                owner = existing[0]
                if owner.survey_id != survey_id or owner.user_id != user_id:
                    raise SubmissionConflict(submission_id, survey_id, user_id)
                logger.info("Submission %s already stored; skipping", submission_id)
                return False
            self._responses.extend(staged)
            if submission_id is not None:
                self._submissions[submission_id] = staged
            self._response_versions[survey_id] = self._response_versions.get(survey_id, 0) + 1
        return True

    def get_submission(self, submission_id: str) -> List[Response]:
        with self._lock:
            return list(self._submissions.get(submission_id, []))

    def list_responses(
        self,
        survey_id: Optional[str] = None,
        question_id: Optional[str] = None,
        user_id: Optional[str] = None,
        newest_first: bool = False,
    ) -> List[Response]:
        with self._lock:
            responses = list(self._responses)
        selected = [
            r for r in responses
            if (survey_id is None or r.survey_id == survey_id)
            and (question_id is None or r.question_id == question_id)
            and (user_id is None or r.user_id == user_id)
        ]
        # sorted() is stable, so rows of one batch keep their question order
        return sorted(selected, key=lambda r: r.created_at, reverse=newest_first)

    def response_version(self, survey_id: str) -> int:
        with self._lock:
            return self._response_versions.get(survey_id, 0)

    # Profiles ---------------------------------------------------------------

    def get_profile(self, user_id: str) -> Optional[Profile]:
        with self._lock:
            return self._profiles.get(user_id)

    def upsert_profile(self, profile: Profile) -> Profile:
        with self._lock:
            self._profiles[profile.user_id] = profile
            self._profile_version += 1
        return profile

    def profile_version(self) -> int:
        with self._lock:
            return self._profile_version


def _assign_question_ids(survey_id: str, questions: List[Question]) -> List[Question]:
    staged = []
    for position, question in enumerate(questions):
        staged.append(replace(
            question,
            id=question.id or new_id(),
            survey_id=survey_id,
            options=list(question.options),
            display_order=position,
        ))
    return staged
