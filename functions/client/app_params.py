"""
Resolves the client's session parameters (app id, server url, access token,
origin url, functions version).

Each parameter is looked up, in order, in the URL query string, the supplied
default, and persisted storage. Values found in the URL or taken from the
default are persisted under `base44_<snake_case name>` so later loads without
them still resolve.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from client.browser import BrowsingContext, MemoryStorage, Storage
from shared.string_utils import to_snake_case

STORAGE_PREFIX = "base44_"


class ParamSource(enum.Enum):
    URL = "url"
    DEFAULT = "default"
    STORAGE = "storage"
    NONE = "none"


@dataclass(frozen=True)
class ResolvedParam:
    name: str
    value: Optional[str]
    source: ParamSource


def storage_key(name: str) -> str:
    return f"{STORAGE_PREFIX}{to_snake_case(name)}"


def _query_value(context: BrowsingContext, name: str) -> Optional[str]:
    """First value of `name` in the query string, like URLSearchParams.get."""
    for key, value in parse_qsl(urlsplit(context.href).query, keep_blank_values=True):
        if key == name:
            return value
    return None


def _url_without_param(context: BrowsingContext, name: str) -> str:
    remaining = [
        (key, value)
        for key, value in parse_qsl(urlsplit(context.href).query, keep_blank_values=True)
        if key != name
    ]
    query = f"?{urlencode(remaining)}" if remaining else ""
    return f"{context.pathname}{query}{context.hash}"


class AppParamResolver:
    """
    Resolves parameters against one browsing context.

    Without a context (tests, build tooling) every lookup returns the supplied
    default and nothing is read from or written to the URL.
    """

    def __init__(self, context: Optional[BrowsingContext] = None):
        self.context = context
        self.storage: Storage = context.storage if context else MemoryStorage()

    def resolve_param(
        self,
        name: str,
        *,
        default_value: Optional[str] = None,
        remove_from_url: bool = False,
    ) -> ResolvedParam:
        if self.context is None:
            source = ParamSource.DEFAULT if default_value else ParamSource.NONE
            return ResolvedParam(name, default_value, source)

        key = storage_key(name)
        url_value = _query_value(self.context, name)
        # Stripped even when blank so credentials never linger in history.
        if remove_from_url and url_value is not None:
            self.context.replace_state(_url_without_param(self.context, name))

        if url_value:
            self.storage.set_item(key, url_value)
            return ResolvedParam(name, url_value, ParamSource.URL)

        if default_value:
            self.storage.set_item(key, default_value)
            return ResolvedParam(name, default_value, ParamSource.DEFAULT)

        stored_value = self.storage.get_item(key)
        if stored_value:
            return ResolvedParam(name, stored_value, ParamSource.STORAGE)
        return ResolvedParam(name, None, ParamSource.NONE)

    def resolve(
        self,
        name: str,
        *,
        default_value: Optional[str] = None,
        remove_from_url: bool = False,
    ) -> Optional[str]:
        return self.resolve_param(
            name, default_value=default_value, remove_from_url=remove_from_url
        ).value


class ClientSettings(BaseSettings):
    """Build-time defaults for the client."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    base44_app_id: Optional[str] = Field(default=None)
    base44_backend_url: Optional[str] = Field(default=None)


@dataclass(frozen=True)
class AppParams:
    app_id: Optional[str]
    server_url: Optional[str]
    token: Optional[str]
    from_url: Optional[str]
    functions_version: Optional[str]


def get_app_params(
    context: Optional[BrowsingContext] = None,
    settings: Optional[ClientSettings] = None,
) -> AppParams:
    """Resolves every session parameter once, at client boot."""
    settings = settings or ClientSettings()
    resolver = AppParamResolver(context)
    return AppParams(
        app_id=resolver.resolve("app_id", default_value=settings.base44_app_id),
        server_url=resolver.resolve(
            "server_url", default_value=settings.base44_backend_url
        ),
        token=resolver.resolve("access_token", remove_from_url=True),
        from_url=resolver.resolve(
            "from_url", default_value=context.href if context else None
        ),
        functions_version=resolver.resolve("functions_version"),
    )
