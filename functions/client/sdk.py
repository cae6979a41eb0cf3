"""
Builds the app's BaaS client from the resolved session parameters.
"""

from __future__ import annotations

from typing import Optional

from client.app_params import AppParams, get_app_params
from client.browser import BrowsingContext
from gateway.baas import HttpBaasClient


def create_client(params: AppParams) -> HttpBaasClient:
    """
    Client for the caller identified by `params.token`. Authentication is not
    required to build it; an anonymous client simply fails `authenticate()`.
    """
    if not params.server_url or not params.app_id:
        raise ValueError("app_id and server_url must be resolved to create a client")
    return HttpBaasClient(
        server_url=params.server_url,
        app_id=params.app_id,
        token=params.token,
        functions_version=params.functions_version,
    )


def create_client_for_context(context: Optional[BrowsingContext] = None) -> HttpBaasClient:
    return create_client(get_app_params(context))
