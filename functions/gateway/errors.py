"""
Errors raised by actions and the clients they call.

`ActionError` subclasses are expected outcomes that the pipeline maps to a
status code. Anything else reaching the pipeline becomes a generic 500.
"""

from __future__ import annotations

from typing import Any, Optional


class ActionError(Exception):
    """Base class for failures that carry their own HTTP status."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def as_body(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class Unauthenticated(ActionError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(ActionError):
    status_code = 403

    def __init__(self, message: str = "Forbidden - Admin access required"):
        super().__init__(message)


class InvalidInput(ActionError):
    status_code = 400


class NotFound(ActionError):
    status_code = 404


class ConfigurationMissing(ActionError):
    status_code = 500


class PushDeliveryError(ActionError):
    status_code = 500

    def __init__(self, details: Optional[Any] = None):
        super().__init__("Failed to send FCM notification", details=details)


class UpstreamError(Exception):
    """An external API answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
