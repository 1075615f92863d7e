from __future__ import annotations

"""
HTTP surface for vocalnotes.

Design intent:
- Keep routes thin: validate, delegate to the pipeline/store, map errors to status codes.
- Serve note and property changes as one SSE stream per client.
- Resolve services lazily from app.state so tests can inject their own.
"""

import logging
from typing import Any, Optional

from fastapi import Body, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from vocalnotes.internal_core.config import configure_logging, load_config
from vocalnotes.internal_core.contracts import Note, NoteStatus, Property
from vocalnotes.internal_core.errors import (
    CollaboratorError,
    InvalidStatusTransition,
    NoteNotFoundError,
    UploadValidationError,
)
from vocalnotes.internal_core.fanout import stream_subscription
from vocalnotes.pipeline.services import VocalNotesServices, build_services


class NoteStatusUpdateRequest(BaseModel):
    status: NoteStatus
    transcript: Optional[str] = None
    error: Optional[str] = Field(default=None, max_length=2000)


class NoteDeleteResponse(BaseModel):
    deleted: bool
    note_id: str


class ProviderStatus(BaseModel):
    provider: str
    available: bool
    reason: str = ""


class HealthResponse(BaseModel):
    status: str = "ok"
    transcriber: ProviderStatus
    extractor: ProviderStatus
    connections: int = 0
    active_runs: int = 0


class SseDebugResponse(BaseModel):
    connections: int


app = FastAPI(title="vocalnotes service")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_SSE_HEADERS = {
    "Cache-Control": "no-cache, no-store, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _get_services() -> VocalNotesServices:
    existing = getattr(app.state, "vocalnotes_services", None)
    if isinstance(existing, VocalNotesServices):
        return existing
    created = build_services()
    setattr(app.state, "vocalnotes_services", created)
    return created


@app.get("/healthz", response_model=HealthResponse)
async def healthz() -> HealthResponse:
    services = _get_services()
    transcriber = services.pipeline.transcriber
    extractor = services.pipeline.extractor
    transcriber_ok, transcriber_reason = transcriber.availability()
    extractor_ok, extractor_reason = extractor.availability()
    return HealthResponse(
        transcriber=ProviderStatus(provider=transcriber.name(), available=transcriber_ok, reason=transcriber_reason),
        extractor=ProviderStatus(provider=extractor.name(), available=extractor_ok, reason=extractor_reason),
        connections=services.hub.connection_count(),
        active_runs=services.pipeline.active_runs,
    )


@app.post("/notes", response_model=Note, response_model_exclude_none=True, status_code=201)
async def create_note(
    request: Request,
    title: str = Query(default="", max_length=200),
    duration: float = Query(default=0.0),
) -> Note:
    services = _get_services()
    payload = await request.body()
    mime_type = str(request.headers.get("content-type", "") or "")
    try:
        handle = services.pipeline.submit_note(payload, mime_type=mime_type, duration=duration, title=title)
    except UploadValidationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return handle.note


@app.get("/notes", response_model=list[Note], response_model_exclude_none=True)
async def list_notes() -> list[Note]:
    return _get_services().store.list_notes()


@app.get("/notes/events")
async def note_events(request: Request) -> StreamingResponse:
    services = _get_services()
    cfg = services.config
    subscription = services.hub.open_subscription(max_pending=cfg.VOCALNOTES_SSE_MAX_PENDING)
    return StreamingResponse(
        stream_subscription(
            services.hub,
            subscription,
            keepalive_sec=cfg.VOCALNOTES_SSE_KEEPALIVE_SEC,
            max_lifetime_sec=cfg.VOCALNOTES_SSE_MAX_LIFETIME_SEC,
            is_disconnected=request.is_disconnected,
        ),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


@app.patch("/notes/{note_id}", response_model=Note, response_model_exclude_none=True)
async def update_note_status(note_id: str, payload: NoteStatusUpdateRequest) -> Note:
    services = _get_services()
    try:
        return services.pipeline.update_note_status(
            note_id,
            payload.status,
            transcript=payload.transcript,
            error=payload.error,
        )
    except NoteNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.delete("/notes/{note_id}", response_model=NoteDeleteResponse)
async def delete_note(note_id: str) -> NoteDeleteResponse:
    services = _get_services()
    try:
        services.pipeline.delete_note(note_id)
    except NoteNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return NoteDeleteResponse(deleted=True, note_id=note_id)


@app.get("/property", response_model=Optional[Property], response_model_exclude_none=True)
async def get_property() -> Optional[Property]:
    return _get_services().store.get_property()


@app.post("/property/reset")
async def reset_property() -> dict[str, bool]:
    _get_services().pipeline.reset_property()
    return {"reset": True}


@app.post("/property/merge", response_model=Property, response_model_exclude_none=True)
async def merge_property_update(payload: dict[str, Any] = Body(...)) -> Property:
    services = _get_services()
    try:
        return services.pipeline.apply_manual_update(payload)
    except CollaboratorError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/debug/sse", response_model=SseDebugResponse)
async def debug_sse() -> SseDebugResponse:
    return SseDebugResponse(connections=_get_services().hub.connection_count())


def main() -> None:
    import uvicorn

    cfg = load_config()
    configure_logging(cfg.VOCALNOTES_LOG_LEVEL)
    setattr(app.state, "vocalnotes_services", build_services(cfg))
    uvicorn.run(app, host="0.0.0.0", port=8000, log_config=None)


if __name__ == "__main__":
    main()
