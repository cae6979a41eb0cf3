"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from gateway.actions import SEND_FCM_NOTIFICATION
from gateway.baas import BaasProvider, HttpBaasProvider, InMemoryBaasBackend
from gateway.board import BoardClient, InMemoryBoardClient, PinterestBoardClient
from gateway.config import get_settings
from gateway.pipeline import Services, as_local_function
from gateway.push import FcmPushClient, InMemoryPushClient, PushClient

_baas_provider: BaasProvider | None = None
_board_client: BoardClient | None = None
_push_client: PushClient | None = None


def get_baas_provider() -> BaasProvider:
    """
    Return a singleton BaaS provider; request-scoped clients are built from it.
    """
    global _baas_provider
    if _baas_provider:
        return _baas_provider

    settings = get_settings()
    if (
        settings.use_in_memory_backends
        or not settings.base44_server_url
        or not settings.base44_app_id
    ):
        _baas_provider = _in_memory_backend()
    else:
        _baas_provider = HttpBaasProvider(
            server_url=settings.base44_server_url,
            app_id=settings.base44_app_id,
            service_token=settings.base44_service_token,
        )
    return _baas_provider


def get_board_client() -> Optional[BoardClient]:
    """None when no Pinterest token is configured."""
    global _board_client
    if _board_client:
        return _board_client

    settings = get_settings()
    if not settings.pinterest_access_token:
        return None
    if settings.use_in_memory_backends:
        _board_client = InMemoryBoardClient()
    else:
        _board_client = PinterestBoardClient(
            access_token=settings.pinterest_access_token,
            api_base=settings.pinterest_api_base,
        )
    return _board_client


def get_push_client() -> Optional[PushClient]:
    """None when no FCM server key is configured."""
    global _push_client
    if _push_client:
        return _push_client

    settings = get_settings()
    if not settings.fcm_server_key:
        return None
    if settings.use_in_memory_backends:
        _push_client = InMemoryPushClient()
    else:
        _push_client = FcmPushClient(server_key=settings.fcm_server_key)
    return _push_client


def _services() -> Services:
    return Services(
        baas_provider=get_baas_provider(),
        settings=get_settings(),
        board=get_board_client(),
        push=get_push_client(),
    )


def _in_memory_backend() -> InMemoryBaasBackend:
    """Local BaaS whose invocable functions are this gateway's own actions."""
    backend = InMemoryBaasBackend()
    backend.register_function(
        SEND_FCM_NOTIFICATION.name, as_local_function(SEND_FCM_NOTIFICATION, _services)
    )
    return backend
