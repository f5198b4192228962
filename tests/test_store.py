"""
Tests for the in-memory SurveyStore.

These tests verify:
    - Surveys and questions are created and replaced as a unit
    - Updates require the current version
    - Response batches are atomic, filterable and de-duplicated by
      submission id
    - Deleting a survey cascades
"""

from datetime import datetime, timedelta, timezone

import pytest
from surveycore.answers import TextAnswer
from surveycore.errors import PersistenceError, SubmissionConflict, SurveyNotFound, VersionConflict
from surveycore.model import Profile, Question, QuestionType, Response, Survey
from surveycore.store import InMemorySurveyStore


def text_question(text, qid=""):
    return Question(id=qid, survey_id="", text=text, type=QuestionType.TEXT)


def row(survey_id, question_id, user_id, submission_id, minutes=0):
    return Response(
        id=f"{submission_id}-{question_id}",
        survey_id=survey_id,
        question_id=question_id,
        user_id=user_id,
        answer=TextAnswer("x"),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
        submission_id=submission_id,
    )


@pytest.fixture
def store():
    return InMemorySurveyStore()


@pytest.fixture
def survey(store):
    return store.create_survey(
        Survey(id="", title="T", creator_id="owner"),
        [text_question("one"), text_question("two")],
    )


class TestSurveys:

    def test_create_assigns_ids(self, store, survey):
        assert survey.id
        assert survey.version == 1
        questions = store.list_questions(survey.id)
        assert [q.text for q in questions] == ["one", "two"]
        assert all(q.id and q.survey_id == survey.id for q in questions)
        assert [q.display_order for q in questions] == [0, 1]

    def test_update_replaces_all_questions(self, store, survey):
        kept = store.list_questions(survey.id)[0]
        updated = store.update_survey(
            Survey(id=survey.id, title="New", creator_id="someone-else"),
            [text_question("three"), kept],
            expected_version=1,
        )
        assert updated.version == 2
        assert updated.title == "New"
        assert updated.creator_id == "owner"
        assert updated.created_at == survey.created_at
        questions = store.list_questions(survey.id)
        assert [q.text for q in questions] == ["three", "one"]
        assert questions[1].id == kept.id

    def test_stale_version_conflicts_and_writes_nothing(self, store, survey):
        store.update_survey(survey, [text_question("v2")], expected_version=1)
        with pytest.raises(VersionConflict) as exc:
            store.update_survey(survey, [text_question("stale")], expected_version=1)
        assert (exc.value.expected, exc.value.actual) == (1, 2)
        assert [q.text for q in store.list_questions(survey.id)] == ["v2"]

    def test_update_missing_survey(self, store):
        with pytest.raises(SurveyNotFound):
            store.update_survey(Survey(id="nope", title="T", creator_id="x"), [], expected_version=1)

    def test_list_surveys_newest_first(self, store):
        old = store.create_survey(Survey(id="", title="old", creator_id="a",
                                         created_at=datetime(2023, 1, 1, tzinfo=timezone.utc)), [])
        new = store.create_survey(Survey(id="", title="new", creator_id="b",
                                         created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)), [])
        assert [s.id for s in store.list_surveys()] == [new.id, old.id]
        assert [s.id for s in store.list_surveys(creator_id="a")] == [old.id]

    def test_duplicate_id_rejected(self, store, survey):
        with pytest.raises(PersistenceError):
            store.create_survey(Survey(id=survey.id, title="T", creator_id="x"), [])

    def test_delete_cascades(self, store, survey):
        store.append_responses([row(survey.id, "q", "u1", "sub1")])
        store.delete_survey(survey.id)
        assert store.get_survey(survey.id) is None
        assert store.list_questions(survey.id) == []
        assert store.list_responses(survey_id=survey.id) == []
        with pytest.raises(SurveyNotFound):
            store.delete_survey(survey.id)


class TestResponses:

    def test_filters(self, store, survey):
        store.append_responses([row(survey.id, "q1", "u1", "a"), row(survey.id, "q2", "u1", "a")])
        store.append_responses([row(survey.id, "q1", "u2", "b", minutes=5)])
        assert len(store.list_responses(survey_id=survey.id)) == 3
        assert len(store.list_responses(question_id="q1")) == 2
        assert len(store.list_responses(user_id="u2")) == 1
        assert [r.user_id for r in store.list_responses(question_id="q1", newest_first=True)] == ["u2", "u1"]

    def test_duplicate_submission_is_skipped(self, store, survey):
        assert store.append_responses([row(survey.id, "q1", "u1", "same")])
        version = store.response_version(survey.id)
        assert not store.append_responses([row(survey.id, "q1", "u1", "same")])
        assert len(store.list_responses()) == 1
        assert store.response_version(survey.id) == version

    def test_submission_id_reused_by_another_respondent(self, store, survey):
        store.append_responses([row(survey.id, "q1", "alice", "k1")])
        with pytest.raises(SubmissionConflict):
            store.append_responses([row(survey.id, "q1", "bob", "k1")])
        assert store.list_responses(user_id="bob") == []

    def test_submission_id_reused_on_another_survey(self, store, survey):
        other = store.create_survey(Survey(id="", title="Other", creator_id="owner"), [])
        store.append_responses([row(survey.id, "q1", "alice", "k1")])
        with pytest.raises(SubmissionConflict):
            store.append_responses([row(other.id, "q1", "alice", "k1")])
        assert store.list_responses(survey_id=other.id) == []

    def test_get_submission(self, store, survey):
        store.append_responses([row(survey.id, "q1", "u1", "a"), row(survey.id, "q2", "u1", "a")])
        assert [r.question_id for r in store.get_submission("a")] == ["q1", "q2"]
        assert store.get_submission("missing") == []
        store.delete_survey(survey.id)
        assert store.get_submission("a") == []

    def test_batch_from_two_respondents_rejected(self, store, survey):
        with pytest.raises(PersistenceError):
            store.append_responses([row(survey.id, "q1", "u1", "a"), row(survey.id, "q2", "u2", "a")])
        assert store.list_responses() == []

    def test_response_version_bumps(self, store, survey):
        assert store.response_version(survey.id) == 0
        store.append_responses([row(survey.id, "q1", "u1", "a")])
        assert store.response_version(survey.id) == 1

    def test_mixed_batch_rejected(self, store, survey):
        with pytest.raises(PersistenceError):
            store.append_responses([row(survey.id, "q1", "u1", "a"), row(survey.id, "q2", "u1", "b")])
        assert store.list_responses() == []

    def test_unknown_survey_rejected(self, store):
        with pytest.raises(SurveyNotFound):
            store.append_responses([row("ghost", "q1", "u1", "a")])


class TestProfiles:

    def test_upsert_and_lookup(self, store):
        store.upsert_profile(Profile("u1", "Ann"))
        store.upsert_profile(Profile("u1", "Annie"))
        assert store.get_profile("u1").display_name == "Annie"
        assert store.get_profile("u2") is None
        assert set(store.get_profiles(["u1", "u2"])) == {"u1"}

    def test_profile_version_bumps_on_upsert(self, store):
        assert store.profile_version() == 0
        store.upsert_profile(Profile("u1", "Ann"))
        store.upsert_profile(Profile("u2", "Bo"))
        assert store.profile_version() == 2
