"""
Defines the core data structures for the application using Pydantic.

This module provides the validated vocabulary shared by the orchestrator,
the scripted responder, the renderer and the Socket.IO event layer: chat
messages, uploaded file descriptors, plans, views, dialogs and their
context payloads, canned analysis and search results, and the standard
TransitionResult envelope returned by every orchestrator request.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field


class View(str, Enum):
    """The top-level views of the application shell. Exactly one is active."""

    CHAT = "chat"
    TEMPLATES = "templates"
    CASE_SEARCH = "caseSearch"
    DOCUMENTS = "documents"


class DialogKind(str, Enum):
    """The overlay dialogs. At most one is open at a time."""

    TEMPLATE = "template"
    SETTINGS = "settings"
    PROFILE = "profile"
    PRICING = "pricing"
    STUDENT_VERIFICATION = "studentVerification"
    SIGN_UP = "signUp"


class Plan(str, Enum):
    """Subscription plans offered on the pricing dialog."""

    BASIC = "basic"
    PRO = "pro"
    STUDENT = "student"
    ENTERPRISE = "enterprise"

    @property
    def label(self) -> str:
        return f"{self.value.capitalize()} Plan"

    @classmethod
    def from_label(cls, label: Optional[str]) -> Optional["Plan"]:
        """Maps a stored label such as 'Pro Plan' back to its plan, if known."""
        if not label:
            return None
        for plan in cls:
            if plan.label == label:
                return plan
        return None


class TemplateKind(str, Enum):
    """Document templates that can be generated from the templates view."""

    SALE_AGREEMENT = "Sale Agreement"
    LEASE_AGREEMENT = "Lease Agreement"
    EMPLOYMENT_CONTRACT = "Employment Contract"
    NON_DISCLOSURE_AGREEMENT = "Non-Disclosure Agreement"
    POWER_OF_ATTORNEY = "Power of Attorney"
    AFFIDAVIT = "Affidavit"
    DEMAND_LETTER = "Demand Letter"
    PLAINT = "Plaint"


class SuggestionKind(str, Enum):
    """Suggestion cards shown on the chat welcome screen."""

    CONTRACT_REQUIREMENTS = "contract_requirements"
    EMPLOYMENT_CASES = "employment_cases"
    GENERATE_DOCUMENT = "generate_document"
    COURT_PROCEDURES = "court_procedures"


class AnalysisKind(str, Enum):
    SUMMARY = "summary"
    ERRORS = "error"
    COMPLIANCE = "compliance"


class ConfirmationKind(str, Enum):
    SIGN_OUT = "sign_out"
    PAYMENT = "payment"


class ErrorKind(str, Enum):
    """The categories of failure a transition can report back to the UI."""

    MISSING_FIELD = "missing_field"
    INVALID_CREDENTIALS = "invalid_credentials"
    PASSWORD_MISMATCH = "password_mismatch"
    INVALID_DOMAIN = "invalid_domain"
    UNSUPPORTED_TYPE = "unsupported_type"
    TOO_LARGE = "too_large"
    PRECONDITION = "precondition"


class ChatMessage(BaseModel):
    """A single entry of the chat transcript."""

    role: Literal["user", "assistant"]
    text: str
    # Set when a user-role entry represents an attached file rather than typed text.
    attachment: Optional["FileInfo"] = None


class FileInfo(BaseModel):
    """
    Describes a file chosen by the user, as supplied by the file input.
    Only the metadata is ever inspected; the content is never parsed.
    """

    name: str
    size_bytes: int = Field(..., ge=0)
    mime_type: str = ""

    @property
    def size_kb(self) -> str:
        return f"{self.size_bytes / 1024:.2f} KB"


class RecentChat(BaseModel):
    """A sidebar entry summarising a sent message."""

    id: int
    preview: str
    created_at: float


class Finding(BaseModel):
    location: str
    description: str


class AnalysisResult(BaseModel):
    """Canned output of the document analysis panel."""

    kind: AnalysisKind
    title: str
    findings: list[Finding] = Field(default_factory=list)
    compliance_percent: Optional[int] = None
    summary: Optional[str] = None


class SearchResult(BaseModel):
    """A single case-law or legislation hit shown by the case search view."""

    title: str
    court: str
    date: str
    type: str
    excerpt: str


class TemplateContext(BaseModel):
    kind: Literal[DialogKind.TEMPLATE] = DialogKind.TEMPLATE
    template: TemplateKind


class SettingsContext(BaseModel):
    """Prefill for the settings form, read from the store when the dialog opens."""

    kind: Literal[DialogKind.SETTINGS] = DialogKind.SETTINGS
    name: str = ""
    email: str = ""
    firm: str = ""
    practice: str = ""
    notifications: bool = True
    citations: bool = True
    auto_save: bool = True
    language: str = "en"
    date_format: str = "dd/mm/yyyy"


class ProfileContext(BaseModel):
    kind: Literal[DialogKind.PROFILE] = DialogKind.PROFILE
    name: str = "Lawyer Name"
    email: str = "lawyer@example.com"
    plan_label: str = "Basic Plan"


class PricingContext(BaseModel):
    kind: Literal[DialogKind.PRICING] = DialogKind.PRICING
    prices: dict[str, int] = Field(default_factory=dict)


class StudentVerificationContext(BaseModel):
    kind: Literal[DialogKind.STUDENT_VERIFICATION] = DialogKind.STUDENT_VERIFICATION
    email: str = ""
    student_id: str = ""
    institution: str = ""


class SignUpContext(BaseModel):
    kind: Literal[DialogKind.SIGN_UP] = DialogKind.SIGN_UP


DialogContext = Annotated[
    Union[
        TemplateContext,
        SettingsContext,
        ProfileContext,
        PricingContext,
        StudentVerificationContext,
        SignUpContext,
    ],
    Field(discriminator="kind"),
]


class PendingConfirmation(BaseModel):
    """A yes/no question awaiting the user's answer before a transition completes."""

    kind: ConfirmationKind
    prompt: str
    # For payment confirmations, the plan that will be activated on acceptance.
    plan: Optional[Plan] = None


class TransitionResult(BaseModel):
    """
    Represents the standardized outcome of an orchestrator request.

    'success' means the transition was applied, 'error' means it was rejected
    with a user-facing reason and no state changed, and 'ignored' means the
    request arrived in a state that does not allow it and was dropped silently.
    """

    status: Literal["success", "error", "ignored"] = Field(..., description="Whether the transition was applied.")
    message: str = Field(default="", description="A human-readable description of the outcome.")
    error: Optional[ErrorKind] = Field(default=None, description="The failure category for rejected transitions.")
    content: Optional[Any] = Field(default=None, description="Optional payload produced by the transition.")

    @property
    def ok(self) -> bool:
        return self.status == "success"


# Resolve the forward reference of 'FileInfo' within ChatMessage.
ChatMessage.model_rebuild()
