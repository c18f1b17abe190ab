"""
FastAPI routes: alert upload and feed/alert retrieval.

Provides endpoints to:
    GET  /cap/              — the canonical aggregated feed
    GET  /cap/{reference}   — a stored alert by file name
    POST /upload            — store an alert (multipart field ``uploadFile``)

Static passthrough of ``/feeds/`` and ``/alerts/`` is mounted by the app
factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field
from starlette.datastructures import UploadFile
from starlette.types import Message, Receive

from capship.app.core.config import Settings
from capship.app.core.errors import InvalidArgument, PayloadTooLarge
from capship.app.feeds.jobs import AggregationJob, JobStatus
from capship.app.storage.store import DocumentKind, DocumentStore

router = APIRouter(tags=["cap"])

UPLOAD_FIELD = "uploadFile"
XML_MEDIA_TYPE = "application/xml"


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------

class UploadResponse(BaseModel):
    """Result of a stored upload."""
    path: str = Field(..., examples=["/var/lib/capship/alerts/KAR0-0306112239-SW.xml"])
    bytes_written: int = Field(..., ge=0, examples=[2150])
    feed_updated: bool = Field(
        False, description="True if the feed was regenerated after the upload",
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def capped_receive(receive: Receive, max_size: int) -> Receive:
    """Wrap ``receive`` so the request body stops being read past ``max_size`` bytes."""
    consumed = 0

    async def _receive() -> Message:
        nonlocal consumed
        message = await receive()
        if message["type"] == "http.request":
            consumed += len(message.get("body", b""))
            if consumed > max_size:
                raise PayloadTooLarge(max_size)
        return message

    return _receive


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_job(request: Request) -> AggregationJob:
    return request.app.state.aggregation_job


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/cap/",
    summary="Current aggregated feed",
    response_class=Response,
    responses={200: {"content": {XML_MEDIA_TYPE: {}}}, 404: {"description": "No feed published yet"}},
)
async def get_feed(store: DocumentStore = Depends(get_store)) -> Response:
    return Response(content=store.retrieve_feed(), media_type=XML_MEDIA_TYPE)


@router.get(
    "/cap/{reference}",
    summary="Stored alert by file name",
    response_class=Response,
    responses={200: {"content": {XML_MEDIA_TYPE: {}}}, 404: {"description": "Alert not found"}},
)
async def get_alert(reference: str, store: DocumentStore = Depends(get_store)) -> Response:
    return Response(content=store.retrieve(DocumentKind.ALERTS, reference), media_type=XML_MEDIA_TYPE)


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload a CAP alert",
    description=(
        "Stores the multipart file field `uploadFile` under the alert "
        "directory, overwriting any file of the same name, then regenerates "
        "the feed. Bodies above the configured maximum are rejected with 413."
    ),
)
async def upload(
    request: Request,
    store: DocumentStore = Depends(get_store),
    job: AggregationJob = Depends(get_job),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    max_size = settings.MAX_UPLOAD_SIZE
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_size:
        raise PayloadTooLarge(max_size)

    bounded = Request(request.scope, receive=capped_receive(request.receive, max_size))
    form = await bounded.form()
    try:
        upload_file = form.get(UPLOAD_FIELD)
        if not isinstance(upload_file, UploadFile):
            raise InvalidArgument(f"missing file field {UPLOAD_FIELD!r}", argument=UPLOAD_FIELD)
        written = store.store_upload(upload_file.filename or "", upload_file.file, max_size)
        path = store.path_for(DocumentKind.ALERTS, upload_file.filename or "")
    finally:
        await form.close()

    run = await job.run_in_background()
    return {
        "path": str(path),
        "bytes_written": written,
        "feed_updated": run.status == JobStatus.COMPLETED,
    }
