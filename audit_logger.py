import csv
import json
import os
import threading
from datetime import datetime

# Payload fields that must never reach the trail or other clients.
SECRET_FIELDS = {"password", "confirm_password", "new_password"}


def redact(details):
    """Masks credential fields in an event payload, leaving everything else as sent."""
    if not isinstance(details, dict):
        return details
    return {key: ("[REDACTED]" if key in SECRET_FIELDS else value) for key, value in details.items()}


class AuditLogger:
    """Appends one CSV row per UI event received from a client."""

    HEADER = ["Timestamp", "Event", "ClientID", "Profile", "View", "Dialog", "Details"]

    def __init__(self, filename="audit_trail.csv"):
        self.filepath = os.path.join(os.path.dirname(os.path.abspath(__file__)), ".sandbox", filename)
        self.lock = threading.Lock()
        self.socketio = None
        self._initialized = False

    def register_socketio(self, sio):
        """Allows the main app to register the Socket.IO instance."""
        self.socketio = sio

    def _initialize_file(self):
        """Creates the CSV file and writes the header if it doesn't exist."""
        os.makedirs(os.path.dirname(self.filepath), exist_ok=True)
        needs_header = not os.path.exists(self.filepath) or os.path.getsize(self.filepath) == 0
        with open(self.filepath, "a", newline="", encoding="utf-8") as f:
            if needs_header:
                csv.writer(f).writerow(self.HEADER)
        self._initialized = True

    def log_event(self, event, client_id=None, profile=None, view=None, dialog=None, details=None):
        """
        Logs a new event to the CSV file and broadcasts it over Socket.IO.
        """
        details = redact(details)
        timestamp = datetime.now().isoformat()

        def serialize(value):
            if value is None:
                return "N/A"
            if isinstance(value, (dict, list)):
                return json.dumps(value)
            return str(value)

        row = [
            timestamp,
            serialize(event),
            serialize(client_id),
            serialize(profile),
            serialize(view),
            serialize(dialog),
            json.dumps(details) if details is not None else "",
        ]

        with self.lock:
            if not self._initialized:
                self._initialize_file()
            with open(self.filepath, "a", newline="", encoding="utf-8") as f:
                csv.writer(f, quoting=csv.QUOTE_ALL).writerow(row)

            if self.socketio:
                broadcast = {
                    "event": event,
                    "client_id": client_id,
                    "profile": profile,
                    "view": view,
                    "dialog": dialog,
                    "details": details,
                }
                self.socketio.start_background_task(self.socketio.emit, "new_audit_event", broadcast)


# Create a single, global instance to be used by the entire application
audit_log = AuditLogger()
