"""
Pushes orchestrator output to a connected client.

The orchestrator never builds markup. After each transition it hands the
renderer a JSON snapshot of the whole application state, plus occasional
directives (a notification, a yes/no prompt, a request to scroll the chat).
The browser-side renderer turns these into DOM updates.
"""
import logging
from typing import Any, Protocol

from tracer import trace


class Renderer(Protocol):
    def render(self, snapshot: dict[str, Any]) -> None: ...

    def notify(self, message: str, level: str = "info") -> None: ...

    def request_confirmation(self, prompt: str) -> None: ...

    def scroll_to_bottom(self) -> None: ...


class SocketIORenderer:
    """Emits snapshots and directives to a single Socket.IO client."""

    @trace
    def __init__(self, socketio: Any, client_id: str):
        """
        Args:
            socketio: The SocketIO server instance.
            client_id: The Socket.IO session id of the client to render for.
        """
        self.socketio = socketio
        self.client_id = client_id

    def render(self, snapshot: dict[str, Any]) -> None:
        self.socketio.emit("state_snapshot", snapshot, to=self.client_id)

    @trace
    def notify(self, message: str, level: str = "info") -> None:
        """Shows a message to the user; empty or whitespace-only messages are dropped."""
        if message and message.strip():
            self.socketio.emit("notify", {"type": level, "data": message}, to=self.client_id)
        else:
            logging.debug(f"Suppressed empty {level} notification for {self.client_id}.")

    @trace
    def request_confirmation(self, prompt: str) -> None:
        self.socketio.emit("request_user_confirmation", {"prompt": prompt}, to=self.client_id)

    def scroll_to_bottom(self) -> None:
        self.socketio.emit("scroll_to_bottom", {}, to=self.client_id)
