import pytest

from data_models import AnalysisKind
from responder import (
    CLARIFICATION_REPLY,
    CONTRACT_REPLY,
    DOCUMENT_REPLY,
    EMPLOYMENT_REPLY,
    PROCEDURE_REPLY,
    analyze,
    compose_greeting,
    generate_reply,
    search_cases,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("What are the CONTRACT requirements?", CONTRACT_REPLY),
        # Contract rules outrank the employment rule.
        ("employment contract requirements", CONTRACT_REPLY),
        ("Draft an employment contract", EMPLOYMENT_REPLY),
        ("Generate a lease", DOCUMENT_REPLY),
        ("Is there a template for this?", DOCUMENT_REPLY),
        ("How do I go about filing?", PROCEDURE_REPLY),
        ("Hello", CLARIFICATION_REPLY),
        ("contract", CLARIFICATION_REPLY),
    ],
)
def test_generate_reply_rules(text, expected):
    assert generate_reply(text) == expected


@pytest.mark.parametrize(
    "hour,greeting",
    [(4, "Working late"), (5, "Good morning"), (11, "Good morning"), (12, "Good afternoon"), (17, "Good evening"), (22, "Working late")],
)
def test_greeting_follows_the_hour(hour, greeting):
    heading, subtext = compose_greeting(hour, "jane")

    assert heading == f"{greeting}, Jane"
    assert subtext


def test_error_analysis_lists_three_findings():
    result = analyze(AnalysisKind.ERRORS)

    assert result.title == "Errors Found (3)"
    assert [f.location for f in result.findings] == ["Line 15", "Line 23", "Line 31"]


def test_compliance_analysis_reports_percentage():
    assert analyze(AnalysisKind.COMPLIANCE).compliance_percent == 85


def test_search_results_ignore_the_query():
    assert search_cases("land") == search_cases("employment")
