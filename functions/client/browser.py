"""
Minimal model of the browsing context the client runs in: the current URL,
key-value storage, and a history that can be rewritten without navigation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol
from urllib.parse import urljoin, urlsplit


class Storage(Protocol):
    """Synchronous string key-value storage (localStorage-like)."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


@dataclass
class MemoryStorage:
    """Dict-backed storage for tests and non-browser runs."""

    items: Dict[str, str] = field(default_factory=dict)

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


@dataclass
class BrowsingContext:
    href: str
    storage: Storage = field(default_factory=MemoryStorage)
    title: str = ""
    history: List[str] = field(default_factory=list)

    @property
    def pathname(self) -> str:
        return urlsplit(self.href).path or "/"

    @property
    def search(self) -> str:
        query = urlsplit(self.href).query
        return f"?{query}" if query else ""

    @property
    def hash(self) -> str:
        fragment = urlsplit(self.href).fragment
        return f"#{fragment}" if fragment else ""

    def replace_state(self, url: str) -> None:
        """Rewrites the visible URL in place; nothing is reloaded."""
        self.href = urljoin(self.href, url)
        self.history.append(url)
