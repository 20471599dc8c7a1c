from __future__ import annotations

import logging
import threading
from typing import Optional

from fastapi import APIRouter, HTTPException

from shotreview.errors import CompressionError, NotFoundError
from shotreview.schemas import (
    AcceptResponse,
    RunRequest,
    RunResponse,
    TestDescriptor,
    TestsResponse,
)
from shotreview.services.review_app import ReviewApp, ReviewAppDep

LOGGER = logging.getLogger("shotreview.api")

router = APIRouter(prefix="/api", tags=["api"])

_accept_lock = threading.Lock()
_run_lock = threading.Lock()


@router.get("/tests", response_model=TestsResponse)
async def get_tests(app: ReviewApp = ReviewAppDep) -> TestsResponse:
    return TestsResponse(state=app.state, suites=app.get_tests())


@router.post("/run", response_model=RunResponse, status_code=202)
async def run_tests(payload: Optional[RunRequest] = None, app: ReviewApp = ReviewAppDep) -> RunResponse:
    specific = payload.tests if payload else None
    with _run_lock:
        if app.is_running:
            raise HTTPException(status_code=409, detail="A run is already in progress")
        app.run_in_background(specific)
    return RunResponse(status="started", state=app.state)


@router.post("/accept", response_model=AcceptResponse)
def accept_reference(payload: TestDescriptor, app: ReviewApp = ReviewAppDep) -> AcceptResponse:
    with _accept_lock:
        try:
            url = app.update_reference_image(payload)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except (CompressionError, OSError) as exc:
            LOGGER.error("Failed to accept %s: %s", " ".join(payload.suite.path), exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc
    return AcceptResponse(reference_url=url)
