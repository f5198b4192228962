"""
Test the example survey used by the demos.

Validates that the builder creates one question per type, valid answers
for every question, and a respondent without a profile.
"""

from surveycore.collector import answer_problem
from surveycore.examples import build_example_survey
from surveycore.model import QuestionType, get_question


def test_example_survey_structure():
    data = build_example_survey()

    assert [q.type for q in data.questions] == list(QuestionType)
    assert [q.display_order for q in data.questions] == [0, 1, 2, 3, 4]

    # 3 respondents * 5 questions
    assert len(data.responses) == 15
    assert {r.user_id for r in data.responses} == {"alice", "bob", "carol"}
    assert {p.user_id for p in data.profiles} == {"alice", "bob"}


def test_example_answers_fit_their_questions():
    data = build_example_survey()
    for response in data.responses:
        question = get_question(data.questions, response.question_id)
        assert answer_problem(question, response.answer) is None
