"""
Push notification dispatch through the FCM legacy HTTP API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import requests

from gateway.errors import PushDeliveryError

REQUEST_TIMEOUT = 30  # seconds

FCM_SEND_URL = "https://fcm.googleapis.com/fcm/send"


class PushClient(Protocol):
    def send(
        self, *, device_token: str, title: str, body: str, data: Optional[dict] = None
    ) -> dict:
        ...


def build_message(
    device_token: str, title: str, body: str, data: Optional[dict] = None
) -> dict:
    return {
        "to": device_token,
        "notification": {
            "title": title,
            "body": body,
            "icon": "/icon.png",
            "badge": "/badge.png",
        },
        "data": data or {},
    }


@dataclass
class InMemoryPushClient:
    """Collects messages instead of sending them."""

    sent: List[dict] = field(default_factory=list)
    fail_with: Optional[dict] = None

    def send(
        self, *, device_token: str, title: str, body: str, data: Optional[dict] = None
    ) -> dict:
        if self.fail_with is not None:
            raise PushDeliveryError(details=self.fail_with)
        message = build_message(device_token, title, body, data)
        self.sent.append(message)
        return {"success": 1, "failure": 0, "results": [{"message_id": str(len(self.sent))}]}


@dataclass
class FcmPushClient:
    server_key: str
    endpoint: str = FCM_SEND_URL
    timeout: int = REQUEST_TIMEOUT

    def send(
        self, *, device_token: str, title: str, body: str, data: Optional[dict] = None
    ) -> dict:
        response = requests.post(
            self.endpoint,
            json=build_message(device_token, title, body, data),
            headers={"Authorization": f"key={self.server_key}"},
            timeout=self.timeout,
        )
        if not response.ok:
            raise PushDeliveryError(details=_error_details(response))
        return response.json()


def _error_details(response: requests.Response):
    try:
        return response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
