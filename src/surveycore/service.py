"""
Survey Service: entry points invoked from UI event handlers.

Wires the draft model, access policy, collector and statistics engine to
a SurveyStore and an IdentityProvider:

    author:      new_draft / edit_draft -> save_draft, delete_survey,
                 my_surveys, statistics
    respondent:  open_survey -> submit, completed_surveys, my_answers
    anyone:      search_surveys, set_display_name

Every method validates locally before it calls the store. Store errors
propagate unchanged.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from surveycore.access import SurveyAccessPolicy, hash_password
from surveycore.answers import Answer
from surveycore.collector import ResponseCollector, Submission
from surveycore.config import Config
from surveycore.draft import SurveyDraft
from surveycore.errors import SurveyNotFound
from surveycore.identity import IdentityProvider
from surveycore.model import Profile, Question, Survey
from surveycore.statistics import StatisticsCache, SurveyStatistics, display_names, summarize_survey
from surveycore.store import SurveyStore

logger = logging.getLogger(__name__)


@dataclass
class SurveyView:
    """A survey opened for answering."""
    survey: Survey
    questions: List[Question]


@dataclass
class OwnedSurvey:
    """A row of the creator's dashboard."""
    survey: Survey
    response_count: int


@dataclass
class CompletedSurvey:
    """A survey the current user has answered."""
    survey: Survey
    completed_at: datetime
    creator_name: str


class SurveyService:

    def __init__(
        self,
        store: SurveyStore,
        identity: IdentityProvider,
        policy: Optional[SurveyAccessPolicy] = None,
        cache: Optional[StatisticsCache] = None,
    ):
        self.store = store
        self.identity = identity
        self.policy = policy or SurveyAccessPolicy()
        self.collector = ResponseCollector(store)
        self.cache = cache if cache is not None else StatisticsCache()

    # =========================================================================
    # Authoring
    # =========================================================================

    def new_draft(self) -> SurveyDraft:
        return SurveyDraft()

    def edit_draft(self, survey_id: str) -> SurveyDraft:
        """
        Load a saved survey into a draft. Creator only.

        Raises:
            SurveyNotFound, Forbidden
        """
        survey = self._get_survey(survey_id)
        self.policy.require_creator(survey, self.identity.get_current_user(), "edit")
        return SurveyDraft.from_survey(survey, self.store.list_questions(survey_id))

    def save_draft(self, draft: SurveyDraft) -> Survey:
        """
        Persist a draft as a new survey, or replace the survey it was
        loaded from.

        Questions loaded from the saved survey keep their id (and thus
        their responses) when their type and options are unchanged; all
        other questions get fresh ids.

        Raises:
            ValidationError: Draft incomplete; nothing is written
            Forbidden: Editing someone else's survey
            VersionConflict: The survey was saved elsewhere since the
                draft was loaded
        """
        draft.validate_for_save()
        user_id = self.identity.require_user()

        if draft.survey_id is None:
            survey = Survey(
                id="",
                title=draft.title.strip(),
                description=draft.description,
                creator_id=user_id,
                is_private=draft.is_private,
                password_hash=hash_password(draft.password) if draft.is_private else None,
            )
            stored = self.store.create_survey(survey, draft.to_questions(""))
        else:
            current = self._get_survey(draft.survey_id)
            self.policy.require_creator(current, user_id, "edit")
            if not draft.is_private:
                password_hash = None
            elif draft.password:
                password_hash = hash_password(draft.password)
            else:
                password_hash = current.password_hash
            survey = replace(
                current,
                title=draft.title.strip(),
                description=draft.description,
                is_private=draft.is_private,
                password_hash=password_hash,
            )
            questions = _carry_question_ids(
                self.store.list_questions(current.id), draft.to_questions(current.id)
            )
            expected = draft.base_version if draft.base_version is not None else current.version
            stored = self.store.update_survey(survey, questions, expected)
            self.cache.invalidate(stored.id)

        draft.survey_id = stored.id
        draft.base_version = stored.version
        draft.password = ""
        draft.keeps_stored_password = stored.is_private
        return stored

    def delete_survey(self, survey_id: str) -> None:
        """Delete a survey with all its questions and responses. Creator only."""
        survey = self._get_survey(survey_id)
        self.policy.require_creator(survey, self.identity.get_current_user(), "delete")
        self.store.delete_survey(survey_id)
        self.cache.invalidate(survey_id)

    def my_surveys(self) -> List[OwnedSurvey]:
        """The current user's surveys, newest first, with respondent counts."""
        user_id = self.identity.require_user()
        rows = []
        for survey in self.store.list_surveys(creator_id=user_id):
            respondents = {r.user_id for r in self.store.list_responses(survey_id=survey.id)}
            rows.append(OwnedSurvey(survey=survey, response_count=len(respondents)))
        return rows

    def statistics(self, survey_id: str) -> SurveyStatistics:
        """
        Per-question statistics for the survey's creator.

        Text answers are listed newest first.

        Raises:
            SurveyNotFound, Forbidden
        """
        survey = self._get_survey(survey_id)
        self.policy.require_creator(survey, self.identity.get_current_user(), "view statistics of")

        def compute() -> SurveyStatistics:
            questions = self.store.list_questions(survey_id)
            responses = self.store.list_responses(survey_id=survey_id, newest_first=True)
            profiles = self.store.get_profiles(sorted({r.user_id for r in responses}))
            return summarize_survey(
                survey, questions, responses, display_names(profiles), Config.UNKNOWN_USER
            )

        return self.cache.get_or_compute(
            survey,
            self.store.response_version(survey_id),
            compute,
            profile_version=self.store.profile_version(),
        )

    # =========================================================================
    # Answering
    # =========================================================================

    def open_survey(self, survey_id: str, password: Optional[str] = None) -> SurveyView:
        """
        Raises:
            SurveyNotFound
            WrongPassword: Private survey and the password does not match
        """
        survey = self._get_survey(survey_id)
        self.policy.require_access(survey, password)
        return SurveyView(survey=survey, questions=self.store.list_questions(survey_id))

    def submit(
        self,
        survey_id: str,
        answers: Mapping[str, Any],
        password: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Submission:
        """
        Submit the current user's answers to every question of a survey.

        Raises:
            NotAuthenticated, SurveyNotFound, WrongPassword
            IncompleteSubmission / InvalidAnswer: Nothing is written
            PersistenceError: From the store
        """
        user_id = self.identity.require_user()
        view = self.open_survey(survey_id, password)
        return self.collector.submit(survey_id, user_id, view.questions, answers, idempotency_key)

    def completed_surveys(self) -> List[CompletedSurvey]:
        """Surveys the current user answered, most recently completed first."""
        user_id = self.identity.require_user()
        # survey id -> (completion time, position); later rows win ties
        latest: Dict[str, Tuple[datetime, int]] = {}
        for position, response in enumerate(self.store.list_responses(user_id=user_id)):
            latest[response.survey_id] = (response.created_at, position)

        surveys = [s for s in (self.store.get_survey(sid) for sid in latest) if s is not None]
        names = display_names(self.store.get_profiles({s.creator_id for s in surveys}))
        surveys.sort(key=lambda s: latest[s.id], reverse=True)
        return [
            CompletedSurvey(
                survey=survey,
                completed_at=latest[survey.id][0],
                creator_name=names.get(survey.creator_id) or Config.UNKNOWN_USER,
            )
            for survey in surveys
        ]

    def my_answers(self, survey_id: str) -> Dict[str, Answer]:
        """The current user's answers from their latest submission, by question id."""
        user_id = self.identity.require_user()
        self._get_survey(survey_id)
        responses = self.store.list_responses(survey_id=survey_id, user_id=user_id)
        if not responses:
            return {}
        latest = responses[-1].submission_id
        return {r.question_id: r.answer for r in responses if r.submission_id == latest}

    # =========================================================================
    # Discovery and profiles
    # =========================================================================

    def search_surveys(self, query: str) -> List[Survey]:
        """Surveys whose title or description contains query (case-insensitive)."""
        needle = query.strip().lower()
        surveys = self.store.list_surveys()
        if not needle:
            return surveys
        return [
            s for s in surveys
            if needle in s.title.lower() or needle in (s.description or "").lower()
        ]

    def set_display_name(self, display_name: str) -> Profile:
        user_id = self.identity.require_user()
        return self.store.upsert_profile(Profile(user_id=user_id, display_name=display_name.strip()))

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_survey(self, survey_id: str) -> Survey:
        survey = self.store.get_survey(survey_id)
        if survey is None:
            raise SurveyNotFound(survey_id)
        return survey


def _carry_question_ids(existing: List[Question], questions: List[Question]) -> List[Question]:
    """
    Keep the stored id of each question whose type and options did not
    change; blank the id of every other question so the store mints one.
    """
    stored = {q.id: q for q in existing}
    carried = []
    seen = set()
    for question in questions:
        old = stored.get(question.id)
        unchanged = (
            old is not None
            and question.id not in seen
            and old.type is question.type
            and old.options == question.options
        )
        if unchanged:
            seen.add(question.id)
            carried.append(question)
        else:
            if question.id:
                logger.debug("Question %s changed shape; it will get a new id", question.id)
            carried.append(replace(question, id=""))
    return carried
