from __future__ import annotations

"""
Note pipeline: pending -> transcribing -> extracting -> success | error.

Design intent:
- Accepting an upload and finishing its pipeline are two separate, observable steps.
- Every transition is stored first, then broadcast as exactly one note_updated.
- Collaborator calls run in worker threads; store/merge/broadcast stay on the loop.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Set
from uuid import uuid4

from vocalnotes.extraction.base import ExtractionProvider
from vocalnotes.extraction.unknowns import parse_partial_property
from vocalnotes.internal_core.contracts import (
    Note,
    NoteAddedEvent,
    NoteDeletedEvent,
    NoteStatus,
    NoteUpdatedEvent,
    Property,
    PropertyUpdatedEvent,
)
from vocalnotes.internal_core.errors import (
    CollaboratorError,
    CollaboratorFailure,
    InvalidStatusTransition,
    NoteNotFoundError,
    UploadValidationError,
)
from vocalnotes.internal_core.fanout import FanoutHub
from vocalnotes.internal_core.record_store import InMemoryRecordStore
from vocalnotes.merge.engine import merge_property
from vocalnotes.transcription.base import TranscriptionProvider

logger = logging.getLogger(__name__)

_ALLOWED_MIME_PREFIXES = ("audio/", "video/webm", "video/mp4")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _normalize_mime(mime_type: str) -> str:
    return str(mime_type or "").split(";")[0].strip().lower()


def _audio_data_url(audio: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(audio).decode('ascii')}"


@dataclass(frozen=True)
class PipelineHandle:
    note: Note
    task: "asyncio.Task[Optional[Note]]"


class NotePipeline:
    def __init__(
        self,
        store: InMemoryRecordStore,
        hub: FanoutHub,
        transcriber: TranscriptionProvider,
        extractor: ExtractionProvider,
        *,
        max_upload_bytes: int = 25 * 1024 * 1024,
    ) -> None:
        self._store = store
        self._hub = hub
        self._transcriber = transcriber
        self._extractor = extractor
        self._max_upload_bytes = int(max_upload_bytes)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def transcriber(self) -> TranscriptionProvider:
        return self._transcriber

    @property
    def extractor(self) -> ExtractionProvider:
        return self._extractor

    @property
    def active_runs(self) -> int:
        return len(self._tasks)

    def _validate_upload(self, audio: bytes, mime_type: str, duration: float) -> str:
        if not audio:
            raise UploadValidationError("No audio provided.")
        if len(audio) > self._max_upload_bytes:
            raise UploadValidationError(
                f"Audio exceeds the {self._max_upload_bytes // (1024 * 1024)}MB limit.",
                status_code=413,
            )
        normalized_mime = _normalize_mime(mime_type)
        if not normalized_mime.startswith(_ALLOWED_MIME_PREFIXES):
            raise UploadValidationError(f"Unsupported audio content type: '{mime_type}'.")
        if duration is None or float(duration) < 0:
            raise UploadValidationError("duration must be a non-negative number of seconds.")
        return normalized_mime

    def create_note(self, audio: bytes, *, mime_type: str, duration: float, title: str = "") -> Note:
        """Store a pending note and announce it; does not start processing."""
        normalized_mime = self._validate_upload(audio, mime_type, duration)
        note = Note(
            id=f"note_{uuid4().hex[:12]}",
            audio_ref=_audio_data_url(audio, normalized_mime),
            duration=float(duration),
            created_at=_utc_now_iso(),
            title=str(title or "").strip(),
            status="pending",
        )
        stored = self._store.add_note(note)
        self._hub.broadcast(NoteAddedEvent(note=stored))
        logger.info("note=%s created bytes=%s mime=%s", stored.id, len(audio), normalized_mime)
        return stored

    def submit_note(self, audio: bytes, *, mime_type: str, duration: float, title: str = "") -> PipelineHandle:
        """Create a note and schedule its pipeline on the running loop."""
        note = self.create_note(audio, mime_type=mime_type, duration=duration, title=title)
        loop = asyncio.get_running_loop()
        task = loop.create_task(self.run(note.id, audio, _normalize_mime(mime_type)), name=f"pipeline-{note.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return PipelineHandle(note=note, task=task)

    async def drain(self) -> None:
        """Wait for every scheduled pipeline run to finish."""
        while self._tasks:
            await asyncio.wait(list(self._tasks))

    def _advance(self, note_id: str, status: NoteStatus, **changes: Optional[str]) -> Note:
        note = self._store.transition_note(note_id, status, **changes)
        self._hub.broadcast(NoteUpdatedEvent(note=note))
        logger.info("note=%s status=%s", note_id, status)
        return note

    def _fail(self, note_id: str, stage: str, exc: BaseException) -> Optional[Note]:
        code = getattr(exc, "code", type(exc).__name__)
        logger.warning("note=%s stage=%s failed code=%s error=%s", note_id, stage, code, exc)
        try:
            return self._advance(note_id, "error", error=f"{stage} failed: {exc}")
        except (NoteNotFoundError, InvalidStatusTransition) as advance_exc:
            logger.info("note=%s could not be marked as error: %s", note_id, advance_exc)
            return None

    async def _transcribe(self, audio: bytes, mime_type: str) -> str:
        self._transcriber.ensure_available()
        transcript = await asyncio.to_thread(self._transcriber.transcribe, audio, mime_type)
        transcript = str(transcript or "").strip()
        if not transcript:
            raise CollaboratorFailure("EMPTY_TRANSCRIPT", "Transcription returned no text.", self._transcriber.name())
        return transcript

    async def _extract(self, transcript: str):
        self._extractor.ensure_available()
        snapshot = self._store.get_property()
        raw = await asyncio.to_thread(
            self._extractor.extract,
            transcript,
            snapshot.to_payload() if snapshot is not None else None,
        )
        return parse_partial_property(raw, provider_name=self._extractor.name())

    async def run(self, note_id: str, audio: bytes, mime_type: str) -> Optional[Note]:
        """Drive one note to a terminal state. Never raises for pipeline failures."""
        try:
            self._advance(note_id, "transcribing")
            try:
                transcript = await self._transcribe(audio, mime_type)
            except CollaboratorError as exc:
                return self._fail(note_id, "transcription", exc)

            self._advance(note_id, "extracting", transcript=transcript)
            try:
                update = await self._extract(transcript)
            except CollaboratorError as exc:
                return self._fail(note_id, "extraction", exc)

            note, merged = self._store.complete_note(note_id, lambda current: merge_property(current, update))
            self._hub.broadcast(NoteUpdatedEvent(note=note))
            logger.info("note=%s status=%s", note_id, note.status)
            self._hub.broadcast(PropertyUpdatedEvent(listing=merged))
            return note
        except NoteNotFoundError:
            logger.info("note=%s was deleted while processing; pipeline stopped", note_id)
            return None
        except InvalidStatusTransition as exc:
            # Status was changed administratively while the run was in flight.
            logger.warning("note=%s pipeline stopped without merging: %s", note_id, exc)
            return None
        except Exception as exc:
            logger.exception("note=%s unexpected pipeline error", note_id)
            return self._fail(note_id, "pipeline", exc)

    # -------------------------------------------------------------------------
    # Administrative operations
    # -------------------------------------------------------------------------

    def update_note_status(
        self,
        note_id: str,
        status: NoteStatus,
        *,
        transcript: Optional[str] = None,
        error: Optional[str] = None,
    ) -> Note:
        """Manual status change; follows the same edge table as the pipeline."""
        return self._advance(note_id, status, transcript=transcript, error=error)

    def delete_note(self, note_id: str) -> Note:
        removed = self._store.delete_note(note_id)
        self._hub.broadcast(NoteDeletedEvent(note_id=note_id))
        logger.info("note=%s deleted status=%s", note_id, removed.status)
        return removed

    def reset_property(self) -> None:
        self._store.reset_property()
        self._hub.broadcast(PropertyUpdatedEvent(listing=None))
        logger.info("property reset")

    def apply_manual_update(self, raw: Any) -> Property:
        """Merge a hand-written extraction result as if it came from a note."""
        update = parse_partial_property(raw, provider_name="manual")
        merged = self._store.update_property(lambda current: merge_property(current, update))
        self._hub.broadcast(PropertyUpdatedEvent(listing=merged))
        return merged
