"""
Shared request lifecycle for every action:

    authenticate -> authorize -> validate -> delegate -> respond

Each action only supplies the delegate step (its handler) plus a declaration
of its body schema, required fields and whether it is admin-only.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Type

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from gateway.baas import BaasClient, BaasProvider, InMemoryBaasClient, Principal
from gateway.board import BoardClient
from gateway.config import Settings
from gateway.errors import (
    ActionError,
    ConfigurationMissing,
    Forbidden,
    InvalidInput,
    Unauthenticated,
    UpstreamError,
)
from gateway.push import PushClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    """Process-wide collaborators handed to each request."""

    baas_provider: BaasProvider
    settings: Settings
    board: Optional[BoardClient] = None
    push: Optional[PushClient] = None


@dataclass
class ActionContext:
    principal: Principal
    payload: Optional[BaseModel]
    baas: BaasClient
    services: Services

    @property
    def settings(self) -> Settings:
        return self.services.settings

    def require_board(self) -> BoardClient:
        if self.services.board is None:
            raise ConfigurationMissing("Pinterest token not configured")
        return self.services.board

    def require_push(self) -> PushClient:
        if self.services.push is None:
            raise ConfigurationMissing("FCM_SERVER_KEY not configured")
        return self.services.push


@dataclass(frozen=True)
class Action:
    name: str
    handler: Callable[[ActionContext], dict]
    request_model: Optional[Type[BaseModel]] = None
    required_fields: tuple[str, ...] = ()
    admin_only: bool = False
    methods: tuple[str, ...] = ("POST",)


def required_message(fields: tuple[str, ...]) -> str:
    """'a is required', 'a and b are required', 'a, b, and c are required'."""
    if len(fields) == 1:
        return f"{fields[0]} is required"
    if len(fields) == 2:
        listed = f"{fields[0]} and {fields[1]}"
    else:
        listed = ", ".join(fields[:-1]) + f", and {fields[-1]}"
    return f"{listed} are required"


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg')}" if location else item.get("msg"))
    return "; ".join(parts)


def parse_payload(action: Action, body: bytes) -> Optional[BaseModel]:
    """Decode and validate the JSON body, raising InvalidInput on any problem."""
    if action.request_model is None:
        return None

    try:
        data = json.loads(body) if body and body.strip() else {}
    except ValueError:
        raise InvalidInput("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")

    try:
        payload = action.request_model.model_validate(data)
    except ValidationError as e:
        raise InvalidInput(_format_validation_error(e))

    missing = [
        name
        for name in action.required_fields
        if getattr(payload, name, None) in (None, "")
    ]
    if missing:
        raise InvalidInput(required_message(action.required_fields))
    return payload


def run_action(
    action: Action, token: Optional[str], body: bytes, services: Services
) -> JSONResponse:
    """
    Run one action end to end. Always returns a JSON response, either
    {"success": true, ...} or {"error": ...} with a non-2xx status.
    """
    try:
        baas = services.baas_provider.for_token(token)
        principal = baas.authenticate()
        if principal is None:
            raise Unauthenticated()
        if action.admin_only and not principal.is_admin:
            raise Forbidden()

        payload = parse_payload(action, body)
        context = ActionContext(
            principal=principal, payload=payload, baas=baas, services=services
        )
        result = action.handler(context)
    except ActionError as e:
        logger.info("%s rejected (%s): %s", action.name, e.status_code, e.message)
        return JSONResponse(e.as_body(), status_code=e.status_code)
    except Exception as e:
        logger.exception("Error in %s", action.name)
        return JSONResponse({"error": str(e)}, status_code=500)

    return JSONResponse({"success": True, **result})


def as_local_function(action: Action, services: Callable[[], Services]):
    """
    Adapts an action to an in-memory BaaS function, so invoking it by name
    runs the same pipeline with the invoking caller's credentials.

    Rejections surface as `UpstreamError`, the way the HTTP client reports a
    non-2xx function response.
    """

    def invoke(client: InMemoryBaasClient, payload: dict) -> dict:
        response = run_action(
            action, client.token, json.dumps(payload).encode(), services()
        )
        body = json.loads(response.body)
        if response.status_code >= 400:
            raise UpstreamError(
                f"Function {action.name} failed: {response.status_code} - {body.get('error')}",
                status_code=response.status_code,
            )
        return body

    return invoke
