import json
from unittest.mock import MagicMock

import pytest

import events
from audit_logger import AuditLogger


@pytest.fixture
def setup_server(mocker, tmp_path, scheduler):
    """
    Registers the event handlers against a mock SocketIO server and captures
    them by event name so tests can call them the way Flask-SocketIO would.
    """
    handlers = {}

    def on(event):
        def decorator(func):
            handlers[event] = func
            return func

        return decorator

    mock_socketio = MagicMock()
    mock_socketio.on.side_effect = on
    mock_socketio.on_event.side_effect = lambda event, handler: handlers.__setitem__(event, handler)

    mock_request = mocker.patch("events.request", new=MagicMock())
    mock_request.sid = "test_socket_id"
    mock_audit = mocker.patch("events.audit_log")
    mocker.patch.dict(events.client_sessions, clear=True)
    mocker.patch.dict(events.client_profiles, clear=True)

    events.register_events(mock_socketio, store_dir=str(tmp_path), scheduler=scheduler)

    return {
        "socketio": mock_socketio,
        "handlers": handlers,
        "audit": mock_audit,
        "store_dir": tmp_path,
    }


def emitted(mock_socketio, name):
    return [c.args[1] for c in mock_socketio.emit.call_args_list if c.args and c.args[0] == name]


def test_connect_renders_sign_up_for_new_profile(setup_server):
    # 1. ARRANGE
    server = setup_server

    # 2. ACT
    server["handlers"]["connect"]({"profile": "alice"})

    # 3. ASSERT
    assert "test_socket_id" in events.client_sessions
    snapshots = emitted(server["socketio"], "state_snapshot")
    assert snapshots[-1]["navigation"]["active_dialog"] == "signUp"
    assert snapshots[-1]["session"]["signed_in"] is False


def test_sign_up_event_persists_to_profile_file(setup_server):
    server = setup_server
    server["handlers"]["connect"]({"profile": "alice"})

    ack = server["handlers"]["sign_up"](
        {"name": "Alice Otieno", "email": "alice@firm.co.ke", "password": "pw", "confirm_password": "pw"}
    )

    assert ack["status"] == "success"
    saved = json.loads((server["store_dir"] / "alice.json").read_text(encoding="utf-8"))
    assert saved["isLoggedIn"] == "true"
    assert saved["userName"] == "Alice Otieno"
    server["audit"].log_event.assert_called()


def test_reconnecting_profile_is_still_signed_in(setup_server):
    server = setup_server
    handlers = server["handlers"]
    handlers["connect"]({"profile": "alice"})
    handlers["sign_in"]({"email": "alice@firm.co.ke", "password": "pw"})
    handlers["disconnect"]()

    handlers["connect"]({"profile": "alice"})

    session = events.client_sessions["test_socket_id"].state.session
    assert session.signed_in is True
    assert session.display_name == "alice"


def test_rejected_request_is_acknowledged_with_error(setup_server):
    server = setup_server
    server["handlers"]["connect"]({"profile": "alice"})

    ack = server["handlers"]["sign_up"]({"name": "A", "email": "a@b.c", "password": "x", "confirm_password": "y"})

    assert ack["status"] == "error"
    assert ack["error"] == "password_mismatch"
    assert {"type": "error", "data": "Passwords do not match."} in emitted(server["socketio"], "notify")


def test_malformed_payload_is_reported(setup_server):
    server = setup_server
    server["handlers"]["connect"]({"profile": "alice"})

    ack = server["handlers"]["navigate"]({"view": "billing"})

    assert ack is None
    assert {"type": "error", "data": "Invalid request: navigate"} in emitted(server["socketio"], "notify")


def test_event_without_session_asks_for_refresh(setup_server):
    ack = setup_server["handlers"]["send_message"]({"text": "hello"})

    assert ack is None
    assert {"type": "error", "data": "No active session. Please refresh."} in emitted(setup_server["socketio"], "notify")


def test_confirmation_response_maps_yes_and_no(setup_server):
    server = setup_server
    handlers = server["handlers"]
    handlers["connect"]({"profile": "alice"})
    handlers["sign_in"]({"email": "alice@firm.co.ke", "password": "pw"})

    handlers["sign_out"]({})
    assert emitted(server["socketio"], "request_user_confirmation")[-1] == {"prompt": "Are you sure you want to logout?"}
    handlers["user_confirmation"]({"response": "no"})
    assert events.client_sessions["test_socket_id"].state.session.signed_in is True

    handlers["sign_out"]({})
    handlers["user_confirmation"]({"response": "yes"})
    assert events.client_sessions["test_socket_id"].state.session.signed_in is False


def test_attach_file_payload(setup_server, scheduler):
    server = setup_server
    handlers = server["handlers"]
    handlers["connect"]({"profile": "alice"})

    ack = handlers["attach_file"]({"name": "lease.pdf", "size": 2048, "type": "application/pdf"})
    scheduler.run_pending()

    assert ack["status"] == "success"
    messages = events.client_sessions["test_socket_id"].state.conversation.messages
    assert messages[0].text == "Attached file: lease.pdf (2.00 KB)"
    assert messages[-1].role == "assistant"


def test_credentials_never_reach_the_audit_trail(setup_server, mocker, tmp_path):
    # 1. ARRANGE: a real audit logger writing to a temporary file
    server = setup_server
    trail = AuditLogger()
    trail.filepath = str(tmp_path / "audit_trail.csv")
    trail.register_socketio(server["socketio"])
    mocker.patch("events.audit_log", trail)
    server["handlers"]["connect"]({"profile": "alice"})

    # 2. ACT
    server["handlers"]["sign_in"]({"email": "a@b.c", "password": "hunter2"})
    server["handlers"]["sign_up"]({"name": "A", "email": "a@b.c", "password": "s3cret", "confirm_password": "s3cret"})
    server["handlers"]["change_password"]({"password": "n3w-pass"})

    # 3. ASSERT: neither the CSV nor the broadcast carries a password
    rows = (tmp_path / "audit_trail.csv").read_text(encoding="utf-8")
    broadcasts = [c.args[2] for c in server["socketio"].start_background_task.call_args_list]
    assert "a@b.c" in rows
    for secret in ("hunter2", "s3cret", "n3w-pass"):
        assert secret not in rows
        assert secret not in json.dumps(broadcasts)
    assert broadcasts[0]["details"] == {"email": "a@b.c", "password": "[REDACTED]"}
