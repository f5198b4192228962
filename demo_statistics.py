"""
Demo: Run the statistics engine on the example survey and print the report.
"""

from surveycore.examples import build_example_survey
from surveycore.statistics import (
    ChoiceSummary,
    RatingSummary,
    TextSummary,
    display_names,
    summarize_survey,
)
from surveycore.serialization import statistics_to_yaml


def print_summary(summary):
    """Pretty-print one question summary."""
    print(f"  {summary.question_text}  [{summary.question_type.value}]")
    print(f"    Responses: {summary.total_responses}")

    if isinstance(summary, ChoiceSummary):
        for row in summary.rows():
            bar = "#" * (row.percentage // 5)
            print(f"    {row.option:<12} {row.count:>3} ({row.percentage:>3}%) {bar}")
    elif isinstance(summary, RatingSummary):
        print(f"    Average: {summary.average}")
        for rating, count in summary.histogram.items():
            if count:
                print(f"    {rating:>2}: {count}")
    elif isinstance(summary, TextSummary):
        preview = summary.preview()
        for entry in preview.entries:
            print(f"    {entry.respondent_display_name}: {entry.answer_text}")
        if preview.has_more:
            print(f"    ... {preview.hidden_count} more")
    print()


def print_report(report):
    """Pretty-print a SurveyStatistics report."""
    print()
    print("=" * 70)
    print(f"SURVEY STATISTICS: {report.survey_title}")
    print("=" * 70)
    print()
    print(f"  Respondents:   {report.distinct_respondents}")
    print(f"  Submissions:   {report.total_submissions}")
    print()

    for summary in report.questions:
        print_summary(summary)

    if report.warnings:
        print("WARNINGS")
        for i, warning in enumerate(report.warnings, 1):
            print(f"  {i}. {warning}")
    print()


if __name__ == "__main__":
    data = build_example_survey()
    report = summarize_survey(data.survey, data.questions, data.responses, display_names(data.profiles))
    print_report(report)

    with open("example_statistics_output.yaml", "w", encoding="utf-8") as f:
        f.write(statistics_to_yaml(report))
    print("Statistics exported to example_statistics_output.yaml")
