"""
BaaS capability used by the actions, with an HTTP client and an in-memory
implementation for tests/local runs.

A client is always bound to one caller's credentials. Elevated ("service
role") operations use the server-held service token instead.
"""

from __future__ import annotations

import json
import time
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

import requests
from dacite import Config, from_dict

from gateway.errors import ConfigurationMissing, UpstreamError

REQUEST_TIMEOUT = 30  # seconds

ADMIN_ROLE = "admin"


@dataclass
class Principal:
    """The authenticated caller, as returned by the BaaS."""

    email: str
    role: str = "user"
    id: Optional[str] = None
    full_name: Optional[str] = None
    display_name: Optional[str] = None
    profile_picture: Optional[str] = None
    theme: Optional[str] = None
    notification_preferences: Optional[Any] = None
    fcm_token: Optional[str] = None

    @property
    def shown_name(self) -> str:
        return self.display_name or self.full_name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @classmethod
    def from_record(cls, record: dict) -> "Principal":
        return from_dict(data_class=cls, data=record, config=Config(check_types=False))


class BaasClient(Protocol):
    """Operations the actions need from the BaaS, bound to one caller."""

    def authenticate(self) -> Optional[Principal]:
        ...

    def update_me(self, patch: dict) -> dict:
        ...

    def create(self, kind: str, fields: dict) -> dict:
        ...

    def create_privileged(self, kind: str, fields: dict) -> dict:
        ...

    def list(self, kind: str) -> List[dict]:
        ...

    def filter(self, kind: str, query: dict) -> List[dict]:
        ...

    def list_privileged(self, kind: str) -> List[dict]:
        ...

    def filter_privileged(self, kind: str, query: dict) -> List[dict]:
        ...

    def invoke(self, name: str, payload: dict) -> Any:
        ...


class BaasProvider(Protocol):
    """Builds a request-scoped client from the caller's bearer token."""

    def for_token(self, token: Optional[str]) -> BaasClient:
        ...


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _matches(record: dict, query: dict) -> bool:
    """Equality match on every queried field, like the BaaS filter."""
    return all(record.get(key) == value for key, value in query.items())


# A registered function receives the calling client and the payload.
InvokedFunction = Callable[["InMemoryBaasClient", dict], Any]


class InMemoryBaasBackend:
    """Simple in-memory BaaS for development and tests."""

    def __init__(self):
        self.tokens: Dict[str, str] = {}
        self.entities: Dict[str, List[dict]] = defaultdict(list)
        self.functions: Dict[str, InvokedFunction] = {}
        self.invocations: List[tuple[str, dict]] = []

    def reset(self) -> None:
        self.tokens.clear()
        self.entities.clear()
        self.functions.clear()
        self.invocations.clear()

    def add_user(self, token: str, email: str, role: str = "user", **fields) -> dict:
        record = {"id": uuid.uuid4().hex, "email": email, "role": role, **fields}
        self.entities["User"].append(record)
        self.tokens[token] = record["id"]
        return record

    def register_function(self, name: str, fn: InvokedFunction) -> None:
        self.functions[name] = fn

    def user_for_token(self, token: Optional[str]) -> Optional[dict]:
        user_id = self.tokens.get(token) if token else None
        if user_id is None:
            return None
        for record in self.entities["User"]:
            if record["id"] == user_id:
                return record
        return None

    def for_token(self, token: Optional[str]) -> "InMemoryBaasClient":
        return InMemoryBaasClient(backend=self, token=token)


@dataclass
class InMemoryBaasClient:
    backend: InMemoryBaasBackend
    token: Optional[str] = None

    def _require_user(self) -> dict:
        user = self.backend.user_for_token(self.token)
        if user is None:
            raise UpstreamError("Not authenticated", status_code=401)
        return user

    def authenticate(self) -> Optional[Principal]:
        user = self.backend.user_for_token(self.token)
        return Principal.from_record(user) if user else None

    def update_me(self, patch: dict) -> dict:
        user = self._require_user()
        user.update(patch)
        return dict(user)

    def _insert(self, kind: str, fields: dict, created_by: str) -> dict:
        record = {
            "id": uuid.uuid4().hex,
            "created_date": _now_iso(),
            "created_by": created_by,
            **fields,
        }
        self.backend.entities[kind].append(record)
        return dict(record)

    def create(self, kind: str, fields: dict) -> dict:
        user = self._require_user()
        return self._insert(kind, fields, created_by=user["email"])

    def create_privileged(self, kind: str, fields: dict) -> dict:
        return self._insert(kind, fields, created_by="service")

    def _select(self, kind: str, query: Optional[dict] = None) -> List[dict]:
        return [
            dict(record)
            for record in self.backend.entities.get(kind, [])
            if _matches(record, query or {})
        ]

    def list(self, kind: str) -> List[dict]:
        self._require_user()
        return self._select(kind)

    def filter(self, kind: str, query: dict) -> List[dict]:
        self._require_user()
        return self._select(kind, query)

    def list_privileged(self, kind: str) -> List[dict]:
        return self._select(kind)

    def filter_privileged(self, kind: str, query: dict) -> List[dict]:
        return self._select(kind, query)

    def invoke(self, name: str, payload: dict) -> Any:
        fn = self.backend.functions.get(name)
        if fn is None:
            raise UpstreamError(f"Function {name} not found", status_code=404)
        self.backend.invocations.append((name, payload))
        return fn(self, payload)


@dataclass
class HttpBaasClient:
    """
    REST client for the BaaS, scoped to one app and one caller token.
    """

    server_url: str
    app_id: str
    token: Optional[str] = None
    service_token: Optional[str] = None
    functions_version: Optional[str] = None
    timeout: int = REQUEST_TIMEOUT

    def _url(self, path: str) -> str:
        return f"{self.server_url.rstrip('/')}/api/apps/{self.app_id}/{path}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str],
        json: Any = None,
        params: Optional[dict] = None,
    ) -> Any:
        headers = {"X-App-Id": self.app_id}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if self.functions_version:
            headers["Base44-Functions-Version"] = self.functions_version

        response = requests.request(
            method,
            self._url(path),
            headers=headers,
            json=json,
            params=params,
            timeout=self.timeout,
        )
        if not response.ok:
            raise UpstreamError(
                f"BaaS API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        return response.json()

    def _service_token(self) -> str:
        if not self.service_token:
            raise ConfigurationMissing("BaaS service token not configured")
        return self.service_token

    def authenticate(self) -> Optional[Principal]:
        if not self.token:
            return None
        try:
            record = self._request("GET", "entities/User/me", token=self.token)
        except UpstreamError as e:
            if e.status_code in (401, 403):
                return None
            raise
        return Principal.from_record(record) if record else None

    def update_me(self, patch: dict) -> dict:
        return self._request("PUT", "entities/User/me", token=self.token, json=patch)

    def create(self, kind: str, fields: dict) -> dict:
        return self._request("POST", f"entities/{kind}", token=self.token, json=fields)

    def create_privileged(self, kind: str, fields: dict) -> dict:
        return self._request(
            "POST", f"entities/{kind}", token=self._service_token(), json=fields
        )

    def _query(self, kind: str, token: Optional[str], query: Optional[dict]) -> List[dict]:
        params = {"q": json.dumps(query)} if query else None
        return self._request("GET", f"entities/{kind}", token=token, params=params) or []

    def list(self, kind: str) -> List[dict]:
        return self._query(kind, self.token, None)

    def filter(self, kind: str, query: dict) -> List[dict]:
        return self._query(kind, self.token, query)

    def list_privileged(self, kind: str) -> List[dict]:
        return self._query(kind, self._service_token(), None)

    def filter_privileged(self, kind: str, query: dict) -> List[dict]:
        return self._query(kind, self._service_token(), query)

    def invoke(self, name: str, payload: dict) -> Any:
        return self._request("POST", f"functions/{name}", token=self.token, json=payload)


@dataclass
class HttpBaasProvider:
    server_url: str
    app_id: str
    service_token: Optional[str] = None
    timeout: int = REQUEST_TIMEOUT

    def for_token(self, token: Optional[str]) -> HttpBaasClient:
        return HttpBaasClient(
            server_url=self.server_url,
            app_id=self.app_id,
            token=token,
            service_token=self.service_token,
            timeout=self.timeout,
        )
