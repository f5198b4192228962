"""
Serialization helpers for survey core objects.

Provides explicit dict representations with JSON/YAML wrappers for:
    - survey definitions (survey + ordered questions)
    - responses (answers tagged by kind)
    - statistics reports

Ordered data (options, histogram buckets, text entries) is always emitted
as lists, so sort_keys never reorders it and output is byte-stable.
"""
from __future__ import annotations

import json
import warnings
from datetime import datetime
from typing import Any, Dict, List, Tuple

import yaml

from surveycore.answers import Answer, answer_from_raw, answer_to_raw
from surveycore.model import Question, QuestionType, Response, Survey
from surveycore.statistics import (
    ChoiceSummary,
    QuestionSummary,
    RatingSummary,
    SurveyStatistics,
    TextSummary,
)


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def answer_to_dict(answer: Answer) -> Dict[str, Any]:
    return {"kind": answer.KIND, "value": answer_to_raw(answer)}


def answer_from_dict(d: Dict[str, Any]) -> Answer:
    return answer_from_raw(d["kind"], d["value"])


def question_to_dict(q: Question) -> Dict[str, Any]:
    return {
        "id": q.id,
        "text": q.text,
        "type": q.type.value,
        "options": list(q.options),
        "display_order": q.display_order,
    }


def question_from_dict(d: Dict[str, Any], survey_id: str = "") -> Question:
    return Question(
        id=d.get("id", ""),
        survey_id=survey_id,
        text=d.get("text", ""),
        type=QuestionType(d["type"]),
        options=list(d.get("options") or []),
        display_order=d.get("display_order", 0),
    )


def survey_to_dict(s: Survey, questions: List[Question]) -> Dict[str, Any]:
    return {
        "id": s.id,
        "title": s.title,
        "description": s.description,
        "creator_id": s.creator_id,
        "is_private": s.is_private,
        "password_hash": s.password_hash,
        "created_at": _dt_to_str(s.created_at),
        "version": s.version,
        "questions": [question_to_dict(q) for q in sorted(questions, key=lambda q: q.display_order)],
    }


def survey_from_dict(d: Dict[str, Any]) -> Tuple[Survey, List[Question]]:
    survey = Survey(
        id=d.get("id", ""),
        title=d.get("title", ""),
        creator_id=d.get("creator_id", ""),
        description=d.get("description", ""),
        is_private=bool(d.get("is_private", False)),
        password_hash=d.get("password_hash"),
        version=d.get("version", 1),
    )
    created_at = _dt_from_str(d.get("created_at"))
    if created_at is not None:
        survey.created_at = created_at

    questions = []
    for qd in d.get("questions", []):
        try:
            questions.append(question_from_dict(qd, survey_id=survey.id))
        except (KeyError, ValueError) as e:
            warnings.warn(f"Skipping question {qd.get('id', '?')}: {str(e)}", UserWarning)
    return survey, questions


def response_to_dict(r: Response) -> Dict[str, Any]:
    return {
        "id": r.id,
        "survey_id": r.survey_id,
        "question_id": r.question_id,
        "user_id": r.user_id,
        "answer": answer_to_dict(r.answer),
        "created_at": _dt_to_str(r.created_at),
        "submission_id": r.submission_id,
    }


def response_from_dict(d: Dict[str, Any]) -> Response:
    return Response(
        id=d["id"],
        survey_id=d["survey_id"],
        question_id=d["question_id"],
        user_id=d["user_id"],
        answer=answer_from_dict(d["answer"]),
        created_at=_dt_from_str(d["created_at"]),
        submission_id=d.get("submission_id"),
    )


def summary_to_dict(summary: QuestionSummary) -> Dict[str, Any]:
    base = {
        "question_id": summary.question_id,
        "question_text": summary.question_text,
        "question_type": summary.question_type.value,
        "total_responses": summary.total_responses,
        "dropped_answers": summary.dropped_answers,
    }
    if isinstance(summary, ChoiceSummary):
        base["options"] = [
            {"option": row.option, "count": row.count, "percentage": row.percentage}
            for row in summary.rows()
        ]
    elif isinstance(summary, RatingSummary):
        base["histogram"] = [{"rating": k, "count": v} for k, v in summary.histogram.items()]
        base["sum"] = summary.sum
        base["average"] = summary.average
    elif isinstance(summary, TextSummary):
        base["entries"] = [
            {
                "user_id": e.user_id,
                "respondent_display_name": e.respondent_display_name,
                "answer_text": e.answer_text,
                "submitted_at": _dt_to_str(e.submitted_at),
            }
            for e in summary.entries
        ]
    else:
        raise TypeError(f"Unsupported summary type: {type(summary)}")
    return base


def statistics_to_dict(report: SurveyStatistics) -> Dict[str, Any]:
    return {
        "survey_id": report.survey_id,
        "survey_title": report.survey_title,
        "distinct_respondents": report.distinct_respondents,
        "total_submissions": report.total_submissions,
        "orphaned_responses": report.orphaned_responses,
        "questions": [summary_to_dict(s) for s in report.questions],
        "warnings": list(report.warnings),
    }


def survey_to_json(s: Survey, questions: List[Question]) -> str:
    return json.dumps(survey_to_dict(s, questions), sort_keys=True, ensure_ascii=False)


def survey_from_json(s: str) -> Tuple[Survey, List[Question]]:
    d = json.loads(s)
    return survey_from_dict(d)


def survey_to_yaml(s: Survey, questions: List[Question]) -> str:
    return yaml.safe_dump(survey_to_dict(s, questions), allow_unicode=True)


def survey_from_yaml(s: str) -> Tuple[Survey, List[Question]]:
    d = yaml.safe_load(s)
    return survey_from_dict(d)


def statistics_to_json(report: SurveyStatistics) -> str:
    return json.dumps(statistics_to_dict(report), sort_keys=True, ensure_ascii=False)


def statistics_to_yaml(report: SurveyStatistics) -> str:
    return yaml.safe_dump(statistics_to_dict(report), allow_unicode=True)
