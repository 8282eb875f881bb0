"""
Records a nested trace of orchestrator activity for debugging and scenario tests.

Functions decorated with @trace append an entry to the global tracer when they
are entered and annotate it with their return value (or exception) when they
leave, so the log mirrors the call stack. Named state transitions, such as a
dialog opening or a plan changing, are recorded with log_event inside whatever
call is currently executing.
"""
import functools
import inspect
import os
import re


def _sanitize_repr(value):
    """Strips memory addresses from a repr so traces compare equal across runs."""
    rep = repr(value)
    return re.sub(r"\s+at\s+0x[0-9a-fA-F]+", "", rep)


def _prune_empty_calls(log):
    """Recursively removes empty 'nested_calls' lists from a trace log."""
    if isinstance(log, list):
        return [entry for entry in (_prune_empty_calls(item) for item in log) if entry]
    if isinstance(log, dict) and "nested_calls" in log:
        log["nested_calls"] = _prune_empty_calls(log["nested_calls"])
        if not log["nested_calls"]:
            del log["nested_calls"]
    return log


class Tracer:
    """
    Keeps a hierarchical log of traced calls and transition events.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        """Clears the current trace log and resets the call stack."""
        self.trace_log = []
        self.call_stack = []

    def _attach(self, entry):
        if self.call_stack:
            self.call_stack[-1]["nested_calls"].append(entry)
        else:
            self.trace_log.append(entry)

    def start_trace(self, module, func_name):
        entry = {"function": f"{module}.{func_name}", "nested_calls": []}
        self._attach(entry)
        self.call_stack.append(entry)

    def end_trace(self, return_value, is_exception=False):
        if not self.call_stack:
            return
        entry = self.call_stack.pop()
        if not entry["nested_calls"]:
            del entry["nested_calls"]

        if is_exception:
            entry["exception"] = _sanitize_repr(return_value)
        elif return_value is not None:
            is_empty_container = isinstance(return_value, (list, dict, tuple, str)) and not return_value
            if not is_empty_container:
                entry["return_value"] = _sanitize_repr(return_value)

    def record_event(self, event_name, details):
        entry = {"type": "EVENT", "event_name": event_name}
        if details:
            entry["details"] = {key: _sanitize_repr(value) for key, value in details.items()}
        self._attach(entry)

    def events(self, name=None):
        """Returns every recorded transition event, optionally filtered by its short name."""
        found = []

        def walk(entries):
            for entry in entries:
                if entry.get("type") == "EVENT":
                    if name is None or entry["event_name"].rsplit(".", 1)[-1] == name:
                        found.append(entry)
                walk(entry.get("nested_calls", []))

        walk(self.trace_log)
        return found

    def get_trace(self):
        """Returns the completed trace log with empty call lists removed."""
        return _prune_empty_calls(self.trace_log)


global_tracer = Tracer()


def log_event(event_name: str, details: dict = None):
    """Records a named transition event against the calling module."""
    caller_frame = inspect.stack()[1]
    module_name = os.path.basename(caller_frame.filename).replace(".py", "")
    global_tracer.record_event(f"{module_name}.{event_name}", details)


def trace(func):
    """
    A decorator that logs the entry and exit of a function call
    to the global_tracer in a nested format.
    """
    if func.__module__ == "tracer":
        return func

    module_name = os.path.basename(inspect.getfile(func)).replace(".py", "")

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        global_tracer.start_trace(module_name, func.__qualname__)
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            global_tracer.end_trace(e, is_exception=True)
            raise
        global_tracer.end_trace(result)
        return result

    return wrapper
