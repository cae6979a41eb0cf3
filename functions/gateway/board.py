"""
Social board (Pinterest v1) client and an in-memory double.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Protocol

import requests

from gateway.errors import UpstreamError

REQUEST_TIMEOUT = 30  # seconds

PIN_FIELDS = "id,image,url,description,created_at,board"


class BoardClient(Protocol):
    """Operations the actions need from the social board API."""

    def list_pins(self) -> List[dict]:
        ...

    def create_pin(self, *, board: str, note: str, image_url: str, link: str) -> dict:
        ...


def pin_url(pin_id: str) -> str:
    return f"https://pinterest.com/pin/{pin_id}/"


def pin_image_url(pin: dict) -> str | None:
    """Full-size image of a pin, falling back to the pin's own url."""
    image = (pin.get("image") or {}).get("original") or {}
    return image.get("url") or pin.get("url")


@dataclass
class InMemoryBoardClient:
    """Test double for board interactions."""

    pins: List[dict] = field(default_factory=list)
    created: List[dict] = field(default_factory=list)
    requests_made: int = 0

    def list_pins(self) -> List[dict]:
        self.requests_made += 1
        return [dict(pin) for pin in self.pins]

    def create_pin(self, *, board: str, note: str, image_url: str, link: str) -> dict:
        self.requests_made += 1
        pin = {
            "id": str(len(self.created) + 1),
            "board": board,
            "note": note,
            "image_url": image_url,
            "link": link,
        }
        self.created.append(pin)
        return {"id": pin["id"]}


@dataclass
class PinterestBoardClient:
    """
    Client for the Pinterest v1 REST API, authenticated with a server-held
    access token passed as a query parameter.
    """

    access_token: str
    api_base: str = "https://api.pinterest.com/v1"
    timeout: int = REQUEST_TIMEOUT

    def list_pins(self) -> List[dict]:
        response = requests.get(
            f"{self.api_base}/me/pins",
            params={"access_token": self.access_token, "fields": PIN_FIELDS},
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        if not response.ok:
            raise UpstreamError(
                f"Pinterest API error: {response.status_code}",
                status_code=response.status_code,
            )
        return response.json().get("data") or []

    def create_pin(self, *, board: str, note: str, image_url: str, link: str) -> dict:
        response = requests.post(
            f"{self.api_base}/pins",
            params={"access_token": self.access_token},
            json={"board": board, "note": note, "image_url": image_url, "link": link},
            timeout=self.timeout,
        )
        if not response.ok:
            raise UpstreamError(
                f"Pinterest API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        return response.json()
