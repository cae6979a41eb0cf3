"""
HTTP routes: one endpoint per action, plus a liveness check.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from gateway.actions import ACTIONS
from gateway.baas import BaasProvider
from gateway.board import BoardClient
from gateway.config import Settings, get_settings
from gateway.dependencies import get_baas_provider, get_board_client, get_push_client
from gateway.pipeline import Action, Services, bearer_token, run_action
from gateway.push import PushClient
from gateway.schemas import HealthResponse

router = APIRouter()
health_router = APIRouter()


def _action_endpoint(action: Action):
    async def endpoint(
        request: Request,
        baas_provider: BaasProvider = Depends(get_baas_provider),
        board: Optional[BoardClient] = Depends(get_board_client),
        push: Optional[PushClient] = Depends(get_push_client),
        settings: Settings = Depends(get_settings),
    ) -> JSONResponse:
        body = await request.body()
        services = Services(
            baas_provider=baas_provider, settings=settings, board=board, push=push
        )
        return await run_in_threadpool(
            run_action,
            action,
            bearer_token(request.headers.get("Authorization")),
            body,
            services,
        )

    endpoint.__name__ = action.name
    return endpoint


for _action in ACTIONS:
    router.add_api_route(
        f"/{_action.name}",
        _action_endpoint(_action),
        methods=list(_action.methods),
        name=_action.name,
    )


@health_router.get("/health", response_model=HealthResponse)
def health(settings: Settings = Depends(get_settings)):
    missing = settings.missing_secrets()
    if missing:
        return JSONResponse(
            HealthResponse(status="degraded", missing=missing).model_dump(),
            status_code=503,
        )
    return HealthResponse(status="ok")
