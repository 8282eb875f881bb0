"""
Defines the high-level data structures for a connected client's application state.

This module contains the Pydantic models that encapsulate the complete state
of a single browser profile's shell: who is signed in and on which plan,
the chat transcript and sidebar history, which view and dialog are showing,
and the user's saved preferences. The Orchestrator is the only writer of
these models; everything else receives JSON snapshots of them.
"""
from typing import Optional

from pydantic import BaseModel, Field

from config import DEFAULT_DATE_FORMAT, DEFAULT_LANGUAGE, DEFAULT_THEME
from data_models import (
    AnalysisResult,
    ChatMessage,
    DialogContext,
    DialogKind,
    FileInfo,
    PendingConfirmation,
    Plan,
    RecentChat,
    SearchResult,
    View,
)


class SessionState(BaseModel):
    """Authentication and subscription fields of the signed-in user."""

    signed_in: bool = False
    display_name: str = ""
    email: str = ""
    plan: Optional[Plan] = None
    remember_me: bool = False

    @property
    def plan_label(self) -> str:
        # Users who never bought a plan are shown as being on the basic tier.
        return self.plan.label if self.plan else Plan.BASIC.label


class Preferences(BaseModel):
    """Settings saved from the settings dialog, plus the colour theme."""

    firm: str = ""
    practice: str = ""
    notifications: bool = True
    citations: bool = True
    auto_save: bool = True
    language: str = DEFAULT_LANGUAGE
    date_format: str = DEFAULT_DATE_FORMAT
    theme: str = DEFAULT_THEME


class AnalysisState(BaseModel):
    in_progress: bool = False
    result: Optional[AnalysisResult] = None


class ConversationState(BaseModel):
    """
    The chat transcript and everything hanging off it.

    messages is append-only within a chat and emptied by a new chat;
    recent_chats is newest-first and capped, and survives new chats.
    """

    messages: list[ChatMessage] = Field(default_factory=list)
    recent_chats: list[RecentChat] = Field(default_factory=list)
    pending_upload: Optional[FileInfo] = None
    analysis: AnalysisState = Field(default_factory=AnalysisState)
    # Bumped by every new chat and regeneration; deferred replies scheduled
    # under an older value are discarded when they fire.
    reply_generation: int = 0


class SearchState(BaseModel):
    query: str = ""
    in_progress: bool = False
    results: list[SearchResult] = Field(default_factory=list)


class NavigationState(BaseModel):
    """Which view is showing, which single dialog is open, and UI-local flags."""

    active_view: View = View.CHAT
    active_dialog: Optional[DialogKind] = None
    dialog_context: Optional[DialogContext] = None
    sign_in_visible: bool = True
    pending_confirmation: Optional[PendingConfirmation] = None
    search: SearchState = Field(default_factory=SearchState)
    collapsed_categories: list[str] = Field(default_factory=list)
    sidebar_open: bool = False
    profile_dropdown_open: bool = False


class AppState(BaseModel):
    """
    The single owned aggregate of everything the shell knows.

    This model acts as the "context object" handed to the Orchestrator at
    construction time, so the orchestrator is its sole mutator and event
    handlers reach it only through the orchestrator.
    """

    session: SessionState = Field(default_factory=SessionState)
    conversation: ConversationState = Field(default_factory=ConversationState)
    navigation: NavigationState = Field(default_factory=NavigationState)
    preferences: Preferences = Field(default_factory=Preferences)
