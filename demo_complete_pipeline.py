#!/usr/bin/env python3
"""
Complete Pipeline Demo: Draft → Save → Answer → Statistics

Shows the full workflow against the in-memory store:
1. An author builds and saves a private survey
2. Respondents open it with the password and submit answers
3. The author views per-question statistics
4. The survey definition is exported to YAML
"""

from surveycore.config import configure_logging
from surveycore.errors import IncompleteSubmission, WrongPassword
from surveycore.identity import StaticIdentity
from surveycore.model import QuestionType
from surveycore.serialization import survey_to_yaml
from surveycore.service import SurveyService
from surveycore.store import InMemorySurveyStore

from demo_statistics import print_report


def main():
    configure_logging("INFO")
    identity = StaticIdentity("author")
    service = SurveyService(InMemorySurveyStore(), identity)
    service.set_display_name("Survey Author")

    print("=" * 80)
    print("COMPLETE PIPELINE DEMO: Draft → Save → Answer → Statistics")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Author a survey
    # =========================================================================
    print("\n1. AUTHORING...")
    draft = service.new_draft()
    draft.title = "Office Move"
    draft.description = "Help us plan the new office"
    draft.set_question_text(0, "Which floor do you prefer?")
    draft.set_option_text(0, 0, "Ground")
    draft.set_option_text(0, 1, "Top")

    draft.add_question()
    draft.set_question_text(1, "Which facilities matter?")
    draft.change_type(1, QuestionType.MULTIPLE_CHOICE)
    draft.set_option_text(1, 0, "Kitchen")
    draft.set_option_text(1, 1, "Showers")
    draft.add_option(1)
    draft.set_option_text(1, 2, "Bike storage")

    draft.add_question()
    draft.set_question_text(2, "How excited are you?")
    draft.change_type(2, QuestionType.RATING)

    draft.add_question()
    draft.set_question_text(3, "Comments")
    draft.change_type(3, QuestionType.TEXT)

    draft.set_private("move2025")
    survey = service.save_draft(draft)
    print(f"   ✓ Saved survey {survey.id} (version {survey.version})")

    # =========================================================================
    # STEP 2: Respondents answer
    # =========================================================================
    print("\n2. ANSWERING...")
    submissions = [
        ("dana", "Top", ["Kitchen", "Bike storage"], 9, "Finally!"),
        ("eli", "Ground", ["Kitchen"], 4, "Longer commute for me"),
        ("fay", "Top", ["Showers", "Bike storage"], 7, ""),
    ]
    for user_id, floor, facilities, excitement, comment in submissions:
        identity.sign_in(user_id)
        try:
            service.open_survey(survey.id, "guess")
        except WrongPassword:
            print(f"   ✗ {user_id}: wrong password")
        view = service.open_survey(survey.id, "move2025")
        floor_q, facility_q, rating_q, comment_q = view.questions
        answers = {
            floor_q.id: floor,
            facility_q.id: facilities,
            rating_q.id: excitement,
            comment_q.id: comment,
        }
        try:
            receipt = service.submit(survey.id, answers, password="move2025")
            print(f"   ✓ {user_id}: {receipt.response_count} answers stored")
        except IncompleteSubmission as e:
            print(f"   ✗ {user_id}: {len(e.missing_question_ids)} question(s) unanswered")
            answers[comment_q.id] = "(no comment)"
            service.submit(survey.id, answers, password="move2025")
            print(f"   ✓ {user_id}: resubmitted")

    # =========================================================================
    # STEP 3: Statistics
    # =========================================================================
    print("\n3. STATISTICS...")
    identity.sign_in("author")
    print_report(service.statistics(survey.id))

    # =========================================================================
    # STEP 4: Export
    # =========================================================================
    print("4. EXPORTING...")
    questions = service.store.list_questions(survey.id)
    with open("office_move_survey.yaml", "w", encoding="utf-8") as f:
        f.write(survey_to_yaml(survey, questions))
    print("   ✓ office_move_survey.yaml")


if __name__ == "__main__":
    main()
