"""
The state machine behind the legal assistant shell.

This module owns every transition of the application state: signing in and
out, buying plans, chatting with the scripted assistant, attaching and
analysing documents, and moving between views and dialogs. UI events arrive
as method calls; each call validates against the current AppState, mutates
it, persists the subset that must survive a reload, and asks the renderer to
show the new snapshot.

Simulated latency is the only suspension point. Deferred deliveries carry the
generation they were scheduled under and drop themselves if a new chat or a
regeneration has happened since.
"""
import logging
import time
from datetime import datetime
from typing import Any, Callable, Optional

from config import (
    ANALYSIS_DELAY_SECONDS,
    CHAT_ATTACHMENT_MIME_TYPES,
    DEFAULT_DATE_FORMAT,
    DEFAULT_LANGUAGE,
    DEFAULT_THEME,
    DOCUMENT_MIME_TYPES,
    EDU_DOMAINS,
    FILE_ACK_DELAY_SECONDS,
    MAX_UPLOAD_BYTES,
    PLAN_PRICES,
    RECENT_CHATS_LIMIT,
    REGENERATE_DELAY_SECONDS,
    REPLY_DELAY_SECONDS,
    SALES_EMAIL,
    SALES_PHONE,
    SEARCH_DELAY_SECONDS,
)
from data_models import (
    AnalysisKind,
    ChatMessage,
    ConfirmationKind,
    DialogKind,
    ErrorKind,
    FileInfo,
    PendingConfirmation,
    Plan,
    PricingContext,
    ProfileContext,
    RecentChat,
    SettingsContext,
    SignUpContext,
    StudentVerificationContext,
    SuggestionKind,
    TemplateContext,
    TemplateKind,
    TransitionResult,
    View,
)
from renderer import Renderer
from responder import (
    SUGGESTION_PROMPTS,
    analyze,
    compose_greeting,
    file_acknowledgement,
    generate_reply,
    search_cases,
)
from scheduler import Scheduler
from session_models import AnalysisState, AppState, Preferences, SearchState, SessionState
from store import (
    AUTO_SAVE,
    CITATIONS,
    DATE_FORMAT,
    IS_LOGGED_IN,
    LANGUAGE,
    NOTIFICATIONS,
    REMEMBER_ME,
    THEME,
    USER_EMAIL,
    USER_FIRM,
    USER_NAME,
    USER_PLAN,
    USER_PRACTICE,
    PersistenceUnavailable,
    PersistentStore,
    encode_flag,
    read_flag,
)
from tracer import log_event, trace
from utils import email_local_part, make_preview, next_id

PERSISTENCE_WARNING = "Your changes could not be saved and will only last until you close this page."


class Orchestrator:
    """
    The sole mutator of an AppState.

    One orchestrator serves one browser profile. It is constructed with its
    collaborators (store, renderer, scheduler), brought up with initialize(),
    and needs no teardown beyond dropping the reference.
    """

    @trace
    def __init__(
        self,
        store: PersistentStore,
        renderer: Renderer,
        scheduler: Scheduler,
        state: Optional[AppState] = None,
        clock: Callable[[], float] = time.time,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.renderer = renderer
        self.scheduler = scheduler
        self.state = state or AppState()
        self._clock = clock
        self._now = now
        # Outstanding reply deliveries by call id; each removes itself when it fires.
        self._pending_calls: dict[int, Any] = {}
        self._call_seq = 0
        self._analysis_call: Optional[Any] = None
        self._analysis_token = 0
        self._search_token = 0
        self._persistence_degraded = False

    # --- Outcomes ---

    def _accept(self, message: str = "", content: Any = None) -> TransitionResult:
        return TransitionResult(status="success", message=message, content=content)

    def _reject(self, error: ErrorKind, message: str) -> TransitionResult:
        logging.warning(f"Transition rejected ({error.value}): {message}")
        self.renderer.notify(message, "error")
        return TransitionResult(status="error", error=error, message=message)

    def _ignore(self, reason: str) -> TransitionResult:
        logging.info(f"Request ignored: {reason}")
        return TransitionResult(status="ignored", error=ErrorKind.PRECONDITION, message=reason)

    # --- Persistence ---

    def _warn_persistence(self, error: PersistenceUnavailable) -> None:
        logging.warning(f"Persistent store unavailable, continuing in memory: {error}")
        if not self._persistence_degraded:
            self._persistence_degraded = True
            self.renderer.notify(PERSISTENCE_WARNING, "warning")

    def _load(self, key: str) -> Optional[str]:
        try:
            return self.store.get(key)
        except PersistenceUnavailable as e:
            self._warn_persistence(e)
            return None

    def _persist(self, values: dict[str, str]) -> None:
        # Keys are written one at a time; a failure part-way leaves earlier keys written.
        for key, value in values.items():
            try:
                self.store.set(key, value)
            except PersistenceUnavailable as e:
                self._warn_persistence(e)
                return
        self._persistence_degraded = False

    def _wipe_store(self) -> None:
        try:
            self.store.clear()
        except PersistenceUnavailable as e:
            self._warn_persistence(e)

    # --- Rendering ---

    def snapshot(self) -> dict[str, Any]:
        """Returns the full state as JSON-compatible data, plus derived display fields."""
        session = self.state.session
        conversation = self.state.conversation
        data = self.state.model_dump(mode="json")
        name = session.display_name or email_local_part(session.email) or "there"
        heading, subtext = compose_greeting(self._now().hour, name)
        data["greeting"] = {"heading": heading, "subtext": subtext}
        data["plan_label"] = session.plan_label
        data["analyze_enabled"] = conversation.pending_upload is not None and not conversation.analysis.in_progress
        return data

    def _refresh(self) -> None:
        self.renderer.render(self.snapshot())

    # --- Lifecycle ---

    @trace
    def initialize(self) -> TransitionResult:
        """
        Hydrates the session and preferences from the store.

        A visitor who is not signed in sees the sign-in surface with the
        sign-up dialog open on top of it.
        """
        email = self._load(USER_EMAIL) or ""
        signed_in = read_flag(self._load(IS_LOGGED_IN), default=False)
        self.state.session = SessionState(
            signed_in=signed_in,
            display_name=self._load(USER_NAME) or email_local_part(email),
            email=email,
            plan=Plan.from_label(self._load(USER_PLAN)),
            remember_me=read_flag(self._load(REMEMBER_ME), default=False),
        )
        self.state.preferences = self._load_preferences()
        self.state.navigation.sign_in_visible = not signed_in
        logging.info(f"Session initialized (signed_in={signed_in}, plan={self.state.session.plan_label}).")

        if not signed_in:
            return self.open_dialog(DialogKind.SIGN_UP)
        self._refresh()
        return self._accept()

    def _load_preferences(self) -> Preferences:
        return Preferences(
            firm=self._load(USER_FIRM) or "",
            practice=self._load(USER_PRACTICE) or "",
            notifications=read_flag(self._load(NOTIFICATIONS), default=True),
            citations=read_flag(self._load(CITATIONS), default=True),
            auto_save=read_flag(self._load(AUTO_SAVE), default=True),
            language=self._load(LANGUAGE) or DEFAULT_LANGUAGE,
            date_format=self._load(DATE_FORMAT) or DEFAULT_DATE_FORMAT,
            theme=self._load(THEME) or DEFAULT_THEME,
        )

    # --- Navigation and dialogs ---

    @trace
    def set_view(self, view: View) -> TransitionResult:
        navigation = self.state.navigation
        navigation.active_view = View(view)
        navigation.sidebar_open = False
        log_event("VIEW_CHANGED", {"view": navigation.active_view.value})
        self._refresh()
        return self._accept()

    def _default_context(self, kind: DialogKind):
        if kind == DialogKind.TEMPLATE:
            raise ValueError("The template dialog must be opened with a TemplateContext naming the template.")
        if kind == DialogKind.SETTINGS:
            return self._settings_context()
        if kind == DialogKind.PROFILE:
            return self._profile_context()
        if kind == DialogKind.PRICING:
            return PricingContext(prices=dict(PLAN_PRICES))
        if kind == DialogKind.STUDENT_VERIFICATION:
            return StudentVerificationContext()
        return SignUpContext()

    @trace
    def open_dialog(self, kind: DialogKind, context=None) -> TransitionResult:
        """
        Opens a dialog, replacing whichever dialog was open.

        Args:
            kind: The dialog to show.
            context: Prefill for the dialog. Must match `kind`; when omitted a
                     fresh default context is built, so nothing from a previous
                     dialog carries over.
        """
        kind = DialogKind(kind)
        if context is None:
            context = self._default_context(kind)
        elif context.kind != kind:
            raise ValueError(f"Context of kind '{context.kind.value}' cannot open the '{kind.value}' dialog.")

        navigation = self.state.navigation
        previous = navigation.active_dialog
        navigation.active_dialog = kind
        navigation.dialog_context = context
        navigation.profile_dropdown_open = False
        log_event("DIALOG_OPENED", {"dialog": kind.value, "replaced": previous.value if previous else None})
        self._refresh()
        return self._accept()

    @trace
    def close_dialog(self) -> TransitionResult:
        navigation = self.state.navigation
        if navigation.active_dialog is None:
            return self._ignore("No dialog is open.")
        log_event("DIALOG_CLOSED", {"dialog": navigation.active_dialog.value})
        navigation.active_dialog = None
        navigation.dialog_context = None
        self._refresh()
        return self._accept()

    def _close_if_open(self, kind: DialogKind) -> None:
        if self.state.navigation.active_dialog == kind:
            self.close_dialog()

    @trace
    def backdrop_click(self, on_backdrop: bool) -> TransitionResult:
        """Closes the open dialog when the click landed on its backdrop, not its content."""
        if not on_backdrop:
            return self._ignore("Click landed inside the dialog.")
        return self.close_dialog()

    @trace
    def key_press(self, key: str) -> TransitionResult:
        if key != "Escape":
            return self._ignore(f"Key '{key}' has no binding.")
        return self.close_dialog()

    def open_template(self, template: TemplateKind) -> TransitionResult:
        return self.open_dialog(DialogKind.TEMPLATE, TemplateContext(template=TemplateKind(template)))

    def open_settings(self) -> TransitionResult:
        return self.open_dialog(DialogKind.SETTINGS)

    def open_profile(self) -> TransitionResult:
        return self.open_dialog(DialogKind.PROFILE)

    def open_pricing(self) -> TransitionResult:
        return self.open_dialog(DialogKind.PRICING)

    def show_sign_up(self) -> TransitionResult:
        return self.open_dialog(DialogKind.SIGN_UP)

    def view_plans(self) -> TransitionResult:
        return self.open_pricing()

    def upgrade_plan(self) -> TransitionResult:
        return self.open_pricing()

    @trace
    def submit_template_form(self, title: str, details: str) -> TransitionResult:
        navigation = self.state.navigation
        if navigation.active_dialog != DialogKind.TEMPLATE:
            return self._ignore("The template dialog is not open.")
        if not title.strip() or not details.strip():
            return self._reject(ErrorKind.MISSING_FIELD, "Please provide a document title and details.")

        template = navigation.dialog_context.template
        self.renderer.notify(f"Document generation initiated!\n\nTemplate: {template.value}\n\nDemo mode.")
        log_event("DOCUMENT_REQUESTED", {"template": template.value, "title": title.strip()})
        self.close_dialog()
        return self._accept(content={"template": template.value, "title": title.strip()})

    @trace
    def submit_search(self, query: str) -> TransitionResult:
        query = query.strip()
        if not query:
            return self._reject(ErrorKind.MISSING_FIELD, "Please enter a search query.")

        self._search_token += 1
        self.state.navigation.search = SearchState(query=query, in_progress=True)
        self.scheduler.call_later(SEARCH_DELAY_SECONDS, self._deliver_search, self._search_token, query)
        self._refresh()
        return self._accept()

    def _deliver_search(self, token: int, query: str) -> None:
        if token != self._search_token:
            log_event("STALE_SEARCH_DISCARDED", {"query": query})
            return
        search = self.state.navigation.search
        search.results = search_cases(query)
        search.in_progress = False
        self._refresh()

    def toggle_category(self, category: str) -> TransitionResult:
        collapsed = self.state.navigation.collapsed_categories
        if category in collapsed:
            collapsed.remove(category)
        else:
            collapsed.append(category)
        self._refresh()
        return self._accept()

    def toggle_sidebar(self) -> TransitionResult:
        navigation = self.state.navigation
        navigation.sidebar_open = not navigation.sidebar_open
        self._refresh()
        return self._accept()

    def toggle_profile_dropdown(self) -> TransitionResult:
        navigation = self.state.navigation
        navigation.profile_dropdown_open = not navigation.profile_dropdown_open
        self._refresh()
        return self._accept()

    # --- Confirmations ---

    def _request_confirmation(self, kind: ConfirmationKind, prompt: str, plan: Optional[Plan] = None) -> TransitionResult:
        self.state.navigation.pending_confirmation = PendingConfirmation(kind=kind, prompt=prompt, plan=plan)
        self.renderer.request_confirmation(prompt)
        self._refresh()
        return self._accept(message=prompt)

    @trace
    def respond_to_confirmation(self, accepted: bool) -> TransitionResult:
        """Resolves the pending yes/no question; declining leaves everything as it was."""
        navigation = self.state.navigation
        pending = navigation.pending_confirmation
        if pending is None:
            return self._ignore("No confirmation is pending.")
        navigation.pending_confirmation = None

        if not accepted:
            log_event("CONFIRMATION_DECLINED", {"kind": pending.kind.value})
            self._refresh()
            return TransitionResult(status="ignored", message="Confirmation declined.")

        if pending.kind == ConfirmationKind.SIGN_OUT:
            self._complete_sign_out()
        else:
            self._activate_plan(pending.plan)
        return self._accept()

    # --- Session and plans ---

    def _complete_sign_in(self, name: str, email: str, remember_me: Optional[bool] = None) -> None:
        session = self.state.session
        session.signed_in = True
        session.display_name = name
        session.email = email
        values = {USER_NAME: name, USER_EMAIL: email, IS_LOGGED_IN: "true"}
        if remember_me is not None:
            session.remember_me = remember_me
            values[REMEMBER_ME] = encode_flag(remember_me)
        self._persist(values)
        self.state.navigation.sign_in_visible = False
        logging.info(f"User '{email}' signed in.")
        log_event("SIGNED_IN", {"email": email})

    @trace
    def sign_in(self, email: str, password: str, remember_me: bool = False) -> TransitionResult:
        if not email or not password:
            return self._reject(ErrorKind.INVALID_CREDENTIALS, "Please enter valid credentials")
        self._complete_sign_in(email_local_part(email), email, remember_me)
        self.renderer.notify("Welcome back! You are now signed in.")
        self._refresh()
        return self._accept(content=self.state.session.model_dump(mode="json"))

    @trace
    def sign_in_with_google(self) -> TransitionResult:
        self.renderer.notify("Google Sign In will be implemented here (demo)")
        self._complete_sign_in("User", "user@gmail.com")
        self._refresh()
        return self._accept(content=self.state.session.model_dump(mode="json"))

    @trace
    def sign_up(self, name: str, email: str, password: str, confirm_password: str) -> TransitionResult:
        name, email = name.strip(), email.strip()
        if not name or not email or not password:
            return self._reject(ErrorKind.MISSING_FIELD, "Please fill all required fields.")
        if password != confirm_password:
            return self._reject(ErrorKind.PASSWORD_MISMATCH, "Passwords do not match.")

        self._complete_sign_in(name, email)
        self._close_if_open(DialogKind.SIGN_UP)
        self.renderer.notify("Account created and signed in (demo).")
        self._refresh()
        return self._accept(content=self.state.session.model_dump(mode="json"))

    @trace
    def sign_out(self) -> TransitionResult:
        return self._request_confirmation(ConfirmationKind.SIGN_OUT, "Are you sure you want to logout?")

    def _complete_sign_out(self) -> None:
        # Everything in the store goes, not just the session keys.
        self._wipe_store()
        self.state.session = SessionState()
        self.state.preferences = Preferences()
        navigation = self.state.navigation
        navigation.active_dialog = None
        navigation.dialog_context = None
        navigation.profile_dropdown_open = False
        navigation.sign_in_visible = True
        logging.info("User signed out; store cleared.")
        log_event("SIGNED_OUT")
        self._refresh()

    @trace
    def select_plan(self, plan: Plan) -> TransitionResult:
        """
        Starts the purchase of a plan.

        The student plan is never granted here: it routes to the verification
        dialog first. Enterprise goes to sales. Basic and Pro ask the user to
        confirm the price before anything changes.
        """
        plan = Plan(plan)
        if plan == Plan.STUDENT:
            return self.open_dialog(DialogKind.STUDENT_VERIFICATION)
        if plan == Plan.ENTERPRISE:
            return self.contact_sales()
        price = PLAN_PRICES[plan.value]
        return self._request_confirmation(
            ConfirmationKind.PAYMENT,
            f"Proceed to payment for {plan.label}?\n\nAmount: KES {price}/month",
            plan=plan,
        )

    @trace
    def contact_sales(self) -> TransitionResult:
        self.renderer.notify(
            "Thank you for your interest in our Enterprise plan!\n\n"
            "Our sales team will contact you shortly.\n\n"
            f"Email: {SALES_EMAIL}\nPhone: {SALES_PHONE}"
        )
        self._close_if_open(DialogKind.PRICING)
        return self._accept()

    def _activate_plan(self, plan: Plan) -> None:
        self.state.session.plan = plan
        self._persist({USER_PLAN: plan.label})
        self.renderer.notify(f"Payment successful! Welcome to {plan.label}")
        logging.info(f"Plan changed to {plan.label}.")
        log_event("PLAN_ACTIVATED", {"plan": plan.value})
        self._close_if_open(DialogKind.PRICING)
        self._refresh()

    @trace
    def verify_student(self, email: str, student_id: str, institution: str) -> TransitionResult:
        if self.state.navigation.active_dialog != DialogKind.STUDENT_VERIFICATION:
            return self._ignore("The student verification dialog is not open.")
        email, student_id, institution = email.strip(), student_id.strip(), institution.strip()
        if not email or not student_id or not institution:
            return self._reject(ErrorKind.MISSING_FIELD, "Please fill in all fields")
        if not any(domain in email.lower() for domain in EDU_DOMAINS):
            return self._reject(
                ErrorKind.INVALID_DOMAIN,
                "Please provide a valid educational institution email address (.ac.ke, .edu, etc.)",
            )

        self.renderer.notify(f"Student verification initiated for {email}")
        self._close_if_open(DialogKind.STUDENT_VERIFICATION)
        return self._request_confirmation(
            ConfirmationKind.PAYMENT,
            f"Proceed to payment for {Plan.STUDENT.label}? Amount: KES {PLAN_PRICES['student']}/month",
            plan=Plan.STUDENT,
        )

    # --- Settings and profile ---

    def _settings_context(self) -> SettingsContext:
        return SettingsContext(
            name=self._load(USER_NAME) or "",
            email=self._load(USER_EMAIL) or "",
            firm=self._load(USER_FIRM) or "",
            practice=self._load(USER_PRACTICE) or "",
            notifications=read_flag(self._load(NOTIFICATIONS), default=True),
            citations=read_flag(self._load(CITATIONS), default=True),
            auto_save=read_flag(self._load(AUTO_SAVE), default=True),
            language=self._load(LANGUAGE) or DEFAULT_LANGUAGE,
            date_format=self._load(DATE_FORMAT) or DEFAULT_DATE_FORMAT,
        )

    def _profile_context(self) -> ProfileContext:
        session = self.state.session
        defaults = ProfileContext()
        return ProfileContext(
            name=session.display_name or defaults.name,
            email=session.email or defaults.email,
            plan_label=session.plan_label,
        )

    @trace
    def save_settings(self, form: SettingsContext) -> TransitionResult:
        if self.state.navigation.active_dialog != DialogKind.SETTINGS:
            return self._ignore("The settings dialog is not open.")

        values = {}
        # A blank name keeps the current one.
        if form.name:
            values[USER_NAME] = form.name
            self.state.session.display_name = form.name
        language = form.language or DEFAULT_LANGUAGE
        date_format = form.date_format or DEFAULT_DATE_FORMAT
        values.update({
            USER_EMAIL: form.email,
            USER_FIRM: form.firm,
            USER_PRACTICE: form.practice,
            NOTIFICATIONS: encode_flag(form.notifications),
            CITATIONS: encode_flag(form.citations),
            AUTO_SAVE: encode_flag(form.auto_save),
            LANGUAGE: language,
            DATE_FORMAT: date_format,
        })
        self.state.session.email = form.email
        self.state.preferences = self.state.preferences.model_copy(update={
            "firm": form.firm,
            "practice": form.practice,
            "notifications": form.notifications,
            "citations": form.citations,
            "auto_save": form.auto_save,
            "language": language,
            "date_format": date_format,
        })
        self._persist(values)
        self.renderer.notify("Settings saved successfully!")
        self.close_dialog()
        return self._accept()

    @trace
    def toggle_theme(self) -> TransitionResult:
        preferences = self.state.preferences
        preferences.theme = "light" if preferences.theme == "dark" else "dark"
        self._persist({THEME: preferences.theme})
        self._refresh()
        return self._accept(content={"theme": preferences.theme})

    @trace
    def change_password(self, new_password: str) -> TransitionResult:
        if not new_password:
            return self._ignore("No new password entered.")
        self.renderer.notify("Password changed successfully!")
        return self._accept()

    # --- Conversation ---

    def _schedule_reply(self, delay: float, callback: Callable[..., None], *args: Any) -> None:
        self._call_seq += 1
        call_id = self._call_seq
        generation = self.state.conversation.reply_generation
        self._pending_calls[call_id] = self.scheduler.call_later(
            delay, self._deliver_if_current, call_id, generation, callback, *args
        )

    def _deliver_if_current(self, call_id: int, generation: int, callback: Callable[..., None], *args: Any) -> None:
        self._pending_calls.pop(call_id, None)
        if generation != self.state.conversation.reply_generation:
            logging.info(f"Discarding stale deferred reply from generation {generation}.")
            log_event("STALE_REPLY_DISCARDED", {"generation": generation})
            return
        callback(*args)

    def _invalidate_pending(self) -> None:
        self.state.conversation.reply_generation += 1
        for handle in self._pending_calls.values():
            handle.cancel()
        self._pending_calls.clear()

    def _cancel_analysis(self) -> None:
        # Only a new chat or a new upload makes a running analysis obsolete.
        self._analysis_token += 1
        if self._analysis_call is not None:
            self._analysis_call.cancel()
            self._analysis_call = None

    def _append_assistant(self, text: str) -> None:
        self.state.conversation.messages.append(ChatMessage(role="assistant", text=text))
        self.renderer.scroll_to_bottom()
        self._refresh()

    def _deliver_reply(self, user_text: str) -> None:
        self._append_assistant(generate_reply(user_text))

    def _deliver_file_ack(self, file_name: str) -> None:
        self._append_assistant(file_acknowledgement(file_name))

    @trace
    def send_message(self, text: str) -> TransitionResult:
        """
        Appends the user's message, records it in the recent chats list and
        schedules the assistant's reply. Blank input is ignored.
        """
        message = text.strip()
        if not message:
            return self._ignore("Empty message.")

        conversation = self.state.conversation
        conversation.messages.append(ChatMessage(role="user", text=message))
        conversation.recent_chats.insert(0, RecentChat(id=next_id(), preview=make_preview(message), created_at=self._clock()))
        del conversation.recent_chats[RECENT_CHATS_LIMIT:]
        self._schedule_reply(REPLY_DELAY_SECONDS, self._deliver_reply, message)

        self.renderer.scroll_to_bottom()
        self._refresh()
        return self._accept()

    def send_suggestion(self, suggestion: SuggestionKind) -> TransitionResult:
        return self.send_message(SUGGESTION_PROMPTS[SuggestionKind(suggestion)])

    @trace
    def start_new_chat(self) -> TransitionResult:
        """Empties the transcript and forgets the upload; the recent chats list is kept."""
        self._invalidate_pending()
        self._cancel_analysis()
        conversation = self.state.conversation
        conversation.messages = []
        conversation.pending_upload = None
        conversation.analysis = AnalysisState()
        log_event("NEW_CHAT", {"generation": conversation.reply_generation})
        self._refresh()
        return self._accept()

    @trace
    def open_recent_chat(self, chat_id: int) -> TransitionResult:
        if not any(chat.id == chat_id for chat in self.state.conversation.recent_chats):
            return self._ignore(f"No recent chat with id {chat_id}.")
        return self.start_new_chat()

    @trace
    def regenerate_last(self) -> TransitionResult:
        """Replaces the last assistant reply with a freshly computed one."""
        messages = self.state.conversation.messages
        if len(messages) < 2 or messages[-1].role != "assistant" or messages[-2].role != "user":
            return self._ignore("There is no assistant reply to regenerate.")

        user_text = messages[-2].text
        messages.pop()
        self._invalidate_pending()
        self._schedule_reply(REGENERATE_DELAY_SECONDS, self._deliver_reply, user_text)
        self._refresh()
        return self._accept()

    def _check_file(self, file: FileInfo, allowed: list[str], allow_images: bool, type_message: str) -> Optional[TransitionResult]:
        type_ok = file.mime_type in allowed or (allow_images and file.mime_type.startswith("image/"))
        if not type_ok:
            return self._reject(ErrorKind.UNSUPPORTED_TYPE, type_message)
        if file.size_bytes > MAX_UPLOAD_BYTES:
            return self._reject(ErrorKind.TOO_LARGE, "File size must be less than 10MB")
        return None

    def _set_upload(self, file: FileInfo) -> None:
        conversation = self.state.conversation
        conversation.pending_upload = file
        conversation.analysis = AnalysisState()
        self._cancel_analysis()
        log_event("FILE_UPLOADED", {"name": file.name, "size_bytes": file.size_bytes})

    @trace
    def attach_file(self, file: FileInfo) -> TransitionResult:
        """Attaches a file from the chat input and schedules the assistant's acknowledgement."""
        rejection = self._check_file(
            file,
            CHAT_ATTACHMENT_MIME_TYPES,
            allow_images=True,
            type_message="Unsupported file type. Supported: PDF, DOC, DOCX, TXT, images.",
        )
        if rejection:
            return rejection

        self._set_upload(file)
        self.state.conversation.messages.append(
            ChatMessage(role="user", text=f"Attached file: {file.name} ({file.size_kb})", attachment=file)
        )
        self._schedule_reply(FILE_ACK_DELAY_SECONDS, self._deliver_file_ack, file.name)
        self.renderer.scroll_to_bottom()
        self._refresh()
        return self._accept()

    @trace
    def upload_document(self, file: FileInfo) -> TransitionResult:
        """Accepts a document from the documents view upload zone; only PDF and Word files qualify."""
        rejection = self._check_file(
            file,
            DOCUMENT_MIME_TYPES,
            allow_images=False,
            type_message="Please upload a valid document (PDF, DOC, or DOCX)",
        )
        if rejection:
            return rejection

        self._set_upload(file)
        self._refresh()
        return self._accept(message="File Uploaded Successfully")

    @trace
    def analyze_document(self, kind: AnalysisKind) -> TransitionResult:
        kind = AnalysisKind(kind)
        conversation = self.state.conversation
        if conversation.pending_upload is None:
            return self._ignore("No document has been uploaded.")
        if conversation.analysis.in_progress:
            return self._ignore("An analysis is already running.")

        conversation.analysis = AnalysisState(in_progress=True)
        self._analysis_call = self.scheduler.call_later(
            ANALYSIS_DELAY_SECONDS, self._deliver_analysis, self._analysis_token, kind
        )
        self._refresh()
        return self._accept()

    def _deliver_analysis(self, token: int, kind: AnalysisKind) -> None:
        if token != self._analysis_token:
            log_event("STALE_ANALYSIS_DISCARDED", {"kind": kind.value})
            return
        self._analysis_call = None
        self.state.conversation.analysis = AnalysisState(result=analyze(kind))
        self._refresh()
