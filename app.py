"""
Main application bootstrap file.

This script initializes the Flask application and the SocketIO server,
registers the audit logger and the SocketIO event handlers, and serves the
browser front-end. The front-end renders the state snapshots the server
emits; all state transitions happen server-side in the orchestrator.
"""
import logging
import os

import debugpy
from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO

import events
from audit_logger import audit_log
from config import DEBUG_MODE, DEBUGPY_ADDRESS, SERVER_PORT
from tracer import trace

# --- CONFIGURATION ---
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
FRONTEND_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")

app = Flask(__name__)
CORS(app)
socketio = SocketIO(app, cors_allowed_origins="*", async_mode="eventlet")

audit_log.register_socketio(socketio)
events.register_events(socketio)


# --- SERVER ROUTES ---
@app.route("/")
@trace
def serve_index():
    """Serves the application shell."""
    return send_from_directory(FRONTEND_DIR, "index.html")


@app.route("/<path:filename>")
@trace
def serve_static_files(filename: str):
    """Serves the front-end's scripts, styles and images."""
    return send_from_directory(FRONTEND_DIR, filename)


# --- MAIN EXECUTION ---
if __name__ == "__main__":
    if DEBUG_MODE:
        debugpy.listen(DEBUGPY_ADDRESS)
        app.logger.info("Debugpy server listening. Waiting for debugger to attach...")
        debugpy.wait_for_client()
        app.logger.info("Debugger attached.")

    app.logger.info(f"Starting legal assistant server on http://127.0.0.1:{SERVER_PORT}")
    socketio.run(app, port=SERVER_PORT)
