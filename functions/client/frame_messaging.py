"""
Forwards uncaught client errors to the host frame when the app runs embedded.

`install(window)` attaches one listener for unhandled rejections and one for
uncaught errors, and returns a disposer. Each failure is turned into an
`ErrorReport` and posted to the parent frame as an `app_error` message.
Payment-required (402) failures from the BaaS billing layer are not reported.
"""

from __future__ import annotations

import logging
import re
import traceback
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

APP_ERROR_MESSAGE_TYPE = "app_error"
PAYMENT_REQUIRED_STATUS = 402

UNHANDLED_REJECTION = "unhandledrejection"
ERROR = "error"

_FUNCTION_NAME_RE = re.compile(r"at\s+(\w+)\s+\(eval")

Listener = Callable[[Any], None]


@dataclass(frozen=True)
class ErrorReport:
    title: str
    details: Optional[str] = None
    component_name: Optional[str] = None

    def to_message(self) -> dict:
        return {
            "type": APP_ERROR_MESSAGE_TYPE,
            "error": {
                "title": self.title,
                "details": self.details,
                "componentName": self.component_name,
            },
        }


@dataclass(frozen=True)
class RejectionEvent:
    reason: Any


@dataclass(frozen=True)
class ErrorEvent:
    error: Any


class FrameWindow(Protocol):
    is_embedded: bool

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        ...

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        ...

    def post_message_to_parent(self, message: dict, target_origin: str) -> None:
        ...


@dataclass
class EventTargetWindow:
    """In-process window: a listener table plus the messages sent to the parent."""

    is_embedded: bool = True
    listeners: Dict[str, List[Listener]] = field(default_factory=dict)
    parent_messages: List[tuple[dict, str]] = field(default_factory=list)

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        registered = self.listeners.setdefault(event_type, [])
        if listener not in registered:
            registered.append(listener)

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        registered = self.listeners.get(event_type, [])
        if listener in registered:
            registered.remove(listener)

    def post_message_to_parent(self, message: dict, target_origin: str) -> None:
        self.parent_messages.append((message, target_origin))

    def dispatch_event(self, event_type: str, event: Any) -> None:
        for listener in list(self.listeners.get(event_type, [])):
            listener(event)


def extract_function_name(stack: Optional[str]) -> Optional[str]:
    """
    Best-effort recovery of the failing function's name from a stack trace.

    Looks for the first frame of the form "at <name> (eval". Returns None when
    the stack is missing or no frame matches; the result is a hint only.
    """
    if not stack:
        return None
    match = _FUNCTION_NAME_RE.search(stack)
    return match.group(1) if match else None


def _stack_of(error: Any) -> Optional[str]:
    stack = getattr(error, "stack", None)
    if stack is None and isinstance(error, BaseException):
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return stack


def _describe(error: Any) -> str:
    if isinstance(error, BaseException):
        return "".join(traceback.format_exception_only(type(error), error)).strip()
    return str(error)


def _status_of(response: Any) -> Optional[int]:
    if isinstance(response, dict):
        return response.get("status", response.get("status_code"))
    status = getattr(response, "status", None)
    if status is None:
        status = getattr(response, "status_code", None)
    return status


def is_payment_required(error: Any) -> bool:
    if isinstance(error, dict):
        response = error.get("response")
    else:
        response = getattr(error, "response", None)
    return response is not None and _status_of(response) == PAYMENT_REQUIRED_STATUS


def report_error(window: FrameWindow, report: ErrorReport, original_error: Any) -> bool:
    """Posts the report to the parent frame; returns False when suppressed."""
    if is_payment_required(original_error):
        return False
    window.post_message_to_parent(report.to_message(), "*")
    return True


def handle_unhandled_rejection(window: FrameWindow, event: RejectionEvent) -> bool:
    reason = event.reason
    function_name = extract_function_name(_stack_of(reason))
    message = _describe(reason)
    title = f"Error in {function_name}: {message}" if function_name else message
    return report_error(
        window,
        ErrorReport(title=title, details=message, component_name=function_name),
        reason,
    )


def handle_window_error(window: FrameWindow, event: ErrorEvent) -> bool:
    error = event.error
    function_name = extract_function_name(_stack_of(error))
    # "eval" is the sandbox's own frame, not a caller.
    if function_name == "eval":
        function_name = None
    message = _describe(error)
    title = f"in {function_name}: {message}" if function_name else message
    return report_error(
        window,
        ErrorReport(title=title, details=message, component_name=function_name),
        error,
    )


@dataclass
class _ReporterState:
    installed: bool = False
    window: Optional[FrameWindow] = None
    listeners: Dict[str, Listener] = field(default_factory=dict)
    dispose: Optional[Callable[[], None]] = None


_state = _ReporterState()


def uninstall() -> None:
    """Detaches the installed listeners, if any."""
    if not _state.installed:
        return
    for event_type, listener in _state.listeners.items():
        _state.window.remove_event_listener(event_type, listener)
    _state.installed = False
    _state.window = None
    _state.listeners = {}
    _state.dispose = None


def _noop() -> None:
    return None


def _disposer_for(listeners: Dict[str, Listener]) -> Callable[[], None]:
    def dispose() -> None:
        if _state.installed and _state.listeners is listeners:
            uninstall()

    return dispose


def install(window: FrameWindow) -> Callable[[], None]:
    """
    Starts forwarding errors from `window` to its parent frame.

    Safe to call repeatedly: a second call on the same window keeps the
    existing listeners, and a call on another window moves them there.
    Does nothing when the window is not embedded in another frame.
    """
    if not window.is_embedded:
        return _noop

    if _state.installed:
        if _state.window is window:
            return _state.dispose
        uninstall()

    listeners = {
        UNHANDLED_REJECTION: partial(handle_unhandled_rejection, window),
        ERROR: partial(handle_window_error, window),
    }
    for event_type, listener in listeners.items():
        window.add_event_listener(event_type, listener)

    _state.installed = True
    _state.window = window
    _state.listeners = listeners
    _state.dispose = _disposer_for(listeners)
    logger.debug("Frame error reporting installed")
    return _state.dispose
