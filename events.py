"""
Handles all SocketIO event logic for the application.

This module translates UI events from the browser into Orchestrator requests.
Each connected client gets its own Orchestrator, backed by the key/value store
of its browser profile, a renderer bound to its socket, and the shared
deferred-callback scheduler. It is designed to be registered by app.py.
"""
import logging
from typing import Any, Callable, Optional

from flask import request
from flask_socketio import SocketIO

from audit_logger import audit_log, redact
from config import STORE_DIR
from data_models import FileInfo, SettingsContext
from orchestrator import Orchestrator
from renderer import SocketIORenderer
from scheduler import EventletScheduler, Scheduler
from store import JsonFileStore, MemoryStore, PersistenceUnavailable, profile_store_path
from tracer import global_tracer, trace

# --- Module-level state ---
# Orchestrators for all connected clients, keyed by Socket.IO session id.
client_sessions: dict[str, Orchestrator] = {}
# Profile id of each connected client, for the audit trail.
client_profiles: dict[str, str] = {}


@trace
def _open_store(store_dir: str, profile_id: str):
    """Opens the profile's JSON store, falling back to memory if the disk cannot be read."""
    try:
        return JsonFileStore(profile_store_path(store_dir, profile_id))
    except PersistenceUnavailable as e:
        logging.warning(f"Profile store for '{profile_id}' unavailable, using memory: {e}")
        return MemoryStore()


def _file_from_payload(data: dict) -> FileInfo:
    return FileInfo(name=data.get("name"), size_bytes=data.get("size"), mime_type=data.get("type") or "")


def _settings_from_payload(data: dict) -> SettingsContext:
    fields = {key: value for key, value in data.items() if key in SettingsContext.model_fields and key != "kind"}
    return SettingsContext.model_validate(fields)


@trace
def register_events(socketio: SocketIO, store_dir: str = STORE_DIR, scheduler: Optional[Scheduler] = None):
    """
    Registers all SocketIO event handlers with the main application.

    Args:
        socketio: The SocketIO server instance.
        store_dir: Directory holding one JSON store per browser profile.
        scheduler: Scheduler for simulated latency; eventlet green threads by default.
    """
    scheduler = scheduler or EventletScheduler()

    def dispatch(event: str, data: Optional[dict], action: Callable[[Orchestrator, dict], Any]):
        """Runs one orchestrator request for the calling client and returns its result as the ack."""
        client_id = request.sid
        data = data or {}
        orchestrator = client_sessions.get(client_id)
        navigation = orchestrator.state.navigation if orchestrator else None
        audit_log.log_event(
            event,
            client_id=client_id,
            profile=client_profiles.get(client_id),
            view=navigation.active_view.value if navigation else None,
            dialog=navigation.active_dialog.value if navigation and navigation.active_dialog else None,
            details=redact(data),
        )
        if not orchestrator:
            socketio.emit("notify", {"type": "error", "data": "No active session. Please refresh."}, to=client_id)
            return None
        try:
            result = action(orchestrator, data)
        except ValueError as e:
            logging.warning(f"Malformed '{event}' payload from {client_id}: {e}")
            socketio.emit("notify", {"type": "error", "data": f"Invalid request: {event}"}, to=client_id)
            return None
        except Exception as e:
            logging.exception(f"Error handling '{event}' for {client_id}: {e}")
            socketio.emit("notify", {"type": "error", "data": "Something went wrong. Please try again."}, to=client_id)
            return None
        return result.model_dump(mode="json") if result is not None else None

    def on(event: str, action: Callable[[Orchestrator, dict], Any]) -> None:
        def handler(data=None):
            return dispatch(event, data, action)

        handler.__name__ = handler.__qualname__ = f"handle_{event}"
        socketio.on_event(event, trace(handler))

    @socketio.on("connect")
    @trace
    def handle_connect(auth=None) -> None:
        """Creates an orchestrator for the new client and renders its initial state."""
        client_id = request.sid
        profile_id = (auth or {}).get("profile") or client_id
        logging.info(f"Client connected: {client_id} (profile {profile_id})")

        try:
            orchestrator = Orchestrator(
                store=_open_store(store_dir, profile_id),
                renderer=SocketIORenderer(socketio, client_id),
                scheduler=scheduler,
            )
            client_sessions[client_id] = orchestrator
            client_profiles[client_id] = profile_id
            orchestrator.initialize()
        except Exception as e:
            logging.exception(f"Could not create session for {client_id}: {e}")
            socketio.emit("notify", {"type": "error", "data": "Failed to initialize session."}, to=client_id)

    @socketio.on("disconnect")
    @trace
    def handle_disconnect(reason=None) -> None:
        """Drops the client's orchestrator; the profile store stays on disk."""
        client_id = request.sid
        client_sessions.pop(client_id, None)
        profile_id = client_profiles.pop(client_id, None)
        logging.info(f"Client disconnected: {client_id} (profile {profile_id})")

    # --- Navigation and dialogs ---
    on("navigate", lambda o, d: o.set_view(d.get("view")))
    on("open_template", lambda o, d: o.open_template(d.get("template")))
    on("submit_template", lambda o, d: o.submit_template_form(d.get("title", ""), d.get("details", "")))
    on("submit_search", lambda o, d: o.submit_search(d.get("query", "")))
    on("open_settings", lambda o, d: o.open_settings())
    on("save_settings", lambda o, d: o.save_settings(_settings_from_payload(d)))
    on("toggle_theme", lambda o, d: o.toggle_theme())
    on("open_profile", lambda o, d: o.open_profile())
    on("upgrade_plan", lambda o, d: o.upgrade_plan())
    on("change_password", lambda o, d: o.change_password(d.get("password", "")))
    on("open_pricing", lambda o, d: o.open_pricing())
    on("show_sign_up", lambda o, d: o.show_sign_up())
    on("view_plans", lambda o, d: o.view_plans())
    on("close_dialog", lambda o, d: o.close_dialog())
    on("backdrop_click", lambda o, d: o.backdrop_click(bool(d.get("on_backdrop"))))
    on("key_press", lambda o, d: o.key_press(d.get("key", "")))
    on("toggle_category", lambda o, d: o.toggle_category(d.get("category", "")))
    on("toggle_sidebar", lambda o, d: o.toggle_sidebar())
    on("toggle_profile_dropdown", lambda o, d: o.toggle_profile_dropdown())

    # --- Session and plans ---
    on("sign_in", lambda o, d: o.sign_in(d.get("email", ""), d.get("password", ""), bool(d.get("remember_me"))))
    on("sign_in_google", lambda o, d: o.sign_in_with_google())
    on(
        "sign_up",
        lambda o, d: o.sign_up(d.get("name", ""), d.get("email", ""), d.get("password", ""), d.get("confirm_password", "")),
    )
    on("sign_out", lambda o, d: o.sign_out())
    on("select_plan", lambda o, d: o.select_plan(d.get("plan")))
    on("contact_sales", lambda o, d: o.contact_sales())
    on(
        "verify_student",
        lambda o, d: o.verify_student(d.get("email", ""), d.get("student_id", ""), d.get("institution", "")),
    )
    on("user_confirmation", lambda o, d: o.respond_to_confirmation(d.get("response") == "yes"))

    # --- Conversation ---
    on("send_message", lambda o, d: o.send_message(d.get("text", "")))
    on("send_suggestion", lambda o, d: o.send_suggestion(d.get("suggestion")))
    on("new_chat", lambda o, d: o.start_new_chat())
    on("open_recent_chat", lambda o, d: o.open_recent_chat(int(d.get("id", 0))))
    on("regenerate", lambda o, d: o.regenerate_last())
    on("attach_file", lambda o, d: o.attach_file(_file_from_payload(d)))
    on("upload_document", lambda o, d: o.upload_document(_file_from_payload(d)))
    on("analyze_document", lambda o, d: o.analyze_document(d.get("kind", "summary")))

    # --- Diagnostics ---
    @socketio.on("log_audit_event")
    @trace
    def handle_audit_log(data: dict) -> None:
        """Receives an audit log event from the client."""
        client_id = request.sid
        audit_log.log_event(
            event=data.get("event"),
            client_id=client_id,
            profile=client_profiles.get(client_id),
            details=redact(data.get("details")),
        )

    @socketio.on("reset_tracer")
    def handle_reset_tracer(data=None):
        """Handles a request from the scenario runner to reset the global tracer."""
        logging.info("Received request to reset global tracer.")
        global_tracer.reset()

    @socketio.on("get_trace_log")
    def handle_get_trace_log(data=None):
        """Sends the trace log back to the requesting scenario runner."""
        logging.info("Received request to get trace log.")
        socketio.emit("trace_log_response", {"trace": global_tracer.get_trace()}, to=request.sid)
