"""
Scripted placeholder content for the assistant.

Nothing here talks to a model or a database: replies are chosen by keyword
rules, document analysis and case search return fixed results, and the
greeting depends only on the hour and the user's name. Every function is
pure so the orchestrator can schedule them freely.
"""
from data_models import AnalysisKind, AnalysisResult, Finding, SearchResult, SuggestionKind
from tracer import trace
from utils import capitalize_first

CONTRACT_REPLY = """Under Kenyan law, specifically the Law of Contract Act (Cap. 23), a valid contract requires the following essential elements:

1. Offer and Acceptance
2. Consideration
3. Intention to Create Legal Relations
4. Capacity to Contract
5. Legality of Object
6. Certainty of Terms

Would you like more detail?"""

EMPLOYMENT_REPLY = (
    "Regarding employment law in Kenya, the primary legislation is the Employment Act, 2007. "
    "Key provisions include employment contracts, notice periods, leave entitlements, "
    "and protections against unfair dismissal."
)

DOCUMENT_REPLY = (
    "I can help you generate a legal document. "
    "Provide type, parties, key terms, and any clauses you require."
)

PROCEDURE_REPLY = (
    "The procedure for filing a plaint in Kenya follows the Civil Procedure Act and Civil Procedure Rules. "
    "File at the registry, pay fees, serve the defendant, and comply with procedural rules."
)

CLARIFICATION_REPLY = "Please provide more details about your legal question so I can assist more accurately."

# Ordered (all-of keyword groups, reply). Each group matches when any of its
# alternatives occurs; a rule matches when every group matches. First match wins.
REPLY_RULES = [
    ((("contract",), ("requirement",)), CONTRACT_REPLY),
    ((("employment",),), EMPLOYMENT_REPLY),
    ((("generate", "template"),), DOCUMENT_REPLY),
    ((("plaint", "filing"),), PROCEDURE_REPLY),
]

SUGGESTION_PROMPTS = {
    SuggestionKind.CONTRACT_REQUIREMENTS: "What are the requirements for a valid contract under Kenyan law?",
    SuggestionKind.EMPLOYMENT_CASES: "Find recent cases on employment law in Kenya",
    SuggestionKind.GENERATE_DOCUMENT: "Generate a sale agreement template",
    SuggestionKind.COURT_PROCEDURES: "What is the procedure for filing a plaint in Kenya?",
}


@trace
def generate_reply(user_text: str) -> str:
    """
    Picks the scripted assistant reply for a user message.

    Matching is case-insensitive substring search over REPLY_RULES in order;
    text that matches no rule gets a request for clarification.
    """
    lowered = user_text.lower()
    for groups, reply in REPLY_RULES:
        if all(any(word in lowered for word in group) for group in groups):
            return reply
    return CLARIFICATION_REPLY


def file_acknowledgement(file_name: str) -> str:
    return f'Received the file "{file_name}". What would you like me to do with it?'


def analyze(kind: AnalysisKind) -> AnalysisResult:
    """Returns the canned analysis for the requested kind; the document itself is never read."""
    if kind == AnalysisKind.ERRORS:
        return AnalysisResult(
            kind=kind,
            title="Errors Found (3)",
            findings=[
                Finding(location="Line 15", description='Grammatical error - "recieve" should be "receive"'),
                Finding(location="Line 23", description='Legal terminology - "hereby" usage is redundant'),
                Finding(location="Line 31", description="Missing comma after introductory clause"),
            ],
        )
    if kind == AnalysisKind.COMPLIANCE:
        return AnalysisResult(kind=kind, title="Compliance Status", compliance_percent=85)
    return AnalysisResult(
        kind=AnalysisKind.SUMMARY,
        title="Contract Review Summary",
        summary="The document sets out the parties, the consideration and the key obligations of each party.",
    )


def search_cases(query: str) -> list[SearchResult]:
    # The query only decides whether a search runs; the hits are fixed.
    return [
        SearchResult(
            title="Sample Case A",
            court="High Court",
            date="2021-05-15",
            type="Case Law",
            excerpt="Excerpt for case A...",
        ),
        SearchResult(
            title="Employment Act, 2007 - Section 45",
            court="Statute",
            date="2007",
            type="Legislation",
            excerpt="Excerpt for statute...",
        ),
    ]


def compose_greeting(hour: int, name: str) -> tuple[str, str]:
    """
    Builds the welcome-screen heading and subtext for the given hour (0-23).

    Returns:
        A (greeting, subtext) tuple, e.g. ("Good morning, Jane", "Ready to tackle your legal research?").
    """
    if 5 <= hour < 12:
        greeting, subtext = "Good morning", "Ready to tackle your legal research?"
    elif 12 <= hour < 17:
        greeting, subtext = "Good afternoon", "Let's continue your legal work"
    elif 17 <= hour < 22:
        greeting, subtext = "Good evening", "Wrapping up your day with legal research?"
    else:
        greeting, subtext = "Working late", "Here to help with your legal queries"
    return f"{greeting}, {capitalize_first(name)}", subtext
