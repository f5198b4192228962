"""
Example survey builder used by the demos and tests.

Builds a five-question course feedback survey (one question per type)
with three respondents' submissions and their profiles.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List

from surveycore.answers import (
    MultipleChoiceAnswer,
    RatingAnswer,
    SingleChoiceAnswer,
    TextAnswer,
    TrueFalseAnswer,
)
from surveycore.model import Profile, Question, QuestionType, Response, Survey, default_options


@dataclass
class ExampleData:
    survey: Survey
    questions: List[Question] = field(default_factory=list)
    responses: List[Response] = field(default_factory=list)
    profiles: List[Profile] = field(default_factory=list)


def build_example_survey(survey_id: str = "course-feedback", creator_id: str = "author") -> ExampleData:
    base_time = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
    survey = Survey(
        id=survey_id,
        title="Course Feedback",
        description="End of term feedback",
        creator_id=creator_id,
        created_at=base_time,
    )

    questions = [
        Question(id="q-format", survey_id=survey_id, text="Preferred class format?",
                 type=QuestionType.SINGLE_CHOICE, options=["Lecture", "Workshop", "Online"], display_order=0),
        Question(id="q-topics", survey_id=survey_id, text="Which topics were useful?",
                 type=QuestionType.MULTIPLE_CHOICE, options=["Parsing", "Testing", "Packaging"], display_order=1),
        Question(id="q-pace", survey_id=survey_id, text="The pace was right.",
                 type=QuestionType.TRUE_FALSE, options=default_options(QuestionType.TRUE_FALSE), display_order=2),
        Question(id="q-score", survey_id=survey_id, text="Overall score?",
                 type=QuestionType.RATING, display_order=3),
        Question(id="q-comment", survey_id=survey_id, text="Anything else?",
                 type=QuestionType.TEXT, display_order=4),
    ]

    submissions = [
        ("alice", "Lecture", ["Parsing", "Testing"], "正确", 8, "More exercises please"),
        ("bob", "Lecture", ["Testing"], "错误", 6, "Too fast in week 3"),
        ("carol", "Workshop", ["Parsing", "Testing", "Packaging"], "正确", 10, "Great course"),
    ]

    responses = []
    for n, (user_id, fmt, topics, pace, score, comment) in enumerate(submissions):
        created_at = base_time + timedelta(days=n + 1)
        answers = [
            SingleChoiceAnswer(fmt),
            MultipleChoiceAnswer.of(topics),
            TrueFalseAnswer(pace),
            RatingAnswer(score),
            TextAnswer(comment),
        ]
        for question, answer in zip(questions, answers):
            responses.append(Response(
                id=f"{user_id}-{question.id}",
                survey_id=survey_id,
                question_id=question.id,
                user_id=user_id,
                answer=answer,
                created_at=created_at,
                submission_id=f"sub-{user_id}",
            ))

    # carol has no profile on purpose
    profiles = [Profile("alice", "Alice"), Profile("bob", "Bob")]

    return ExampleData(survey=survey, questions=questions, responses=responses, profiles=profiles)
