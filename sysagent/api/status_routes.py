"""Status endpoints.

  GET /status — aggregate report, 200 when everything is ok, else the failure code
  GET /ping   — liveness, always ``pong``
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

logger = logging.getLogger(__name__)

status_router = APIRouter()


@status_router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    settings = request.app.state.settings
    report = await request.app.state.status_service.report()
    code = settings.status_ok_code if report.overall_ok else settings.status_fail_code
    return JSONResponse(report.to_dict(), status_code=code)


@status_router.get("/ping")
def ping() -> PlainTextResponse:
    return PlainTextResponse("pong")
