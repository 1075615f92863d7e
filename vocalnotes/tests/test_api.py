import time
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from vocalnotes.api.main import app
from vocalnotes.extraction import MockExtractionProvider
from vocalnotes.internal_core.config import load_config
from vocalnotes.pipeline import VocalNotesServices, build_services
from vocalnotes.transcription import MockTranscriptionProvider

AUDIO = b"\x1a\x45\xdf\xa3fake-webm"


@pytest.fixture
def services():
    config = replace(
        load_config(),
        VOCALNOTES_MAX_UPLOAD_BYTES=1024,
        VOCALNOTES_SSE_KEEPALIVE_SEC=0.05,
        VOCALNOTES_SSE_MAX_LIFETIME_SEC=0.3,
    )
    created = build_services(
        config,
        transcriber=MockTranscriptionProvider("Ninety square meters, two bedrooms."),
        extractor=MockExtractionProvider({"livingArea": 90, "totalBedrooms": 2}),
    )
    app.state.vocalnotes_services = created
    yield created
    delattr(app.state, "vocalnotes_services")


def _wait_for_status(client: TestClient, note_id: str, status: str, timeout_sec: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout_sec
    while time.monotonic() < deadline:
        for note in client.get("/notes").json():
            if note["id"] == note_id and note["status"] == status:
                return note
        time.sleep(0.02)
    raise AssertionError(f"note {note_id} never reached status {status}")


def test_healthz_reports_provider_configuration(services: VocalNotesServices) -> None:
    client = TestClient(app)
    response = client.get("/healthz")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["transcriber"] == {"provider": "mock", "available": True, "reason": ""}
    assert body["extractor"]["provider"] == "mock"


def test_upload_returns_pending_note_and_pipeline_completes(services: VocalNotesServices) -> None:
    with TestClient(app) as client:
        response = client.post(
            "/notes",
            params={"title": "Morning visit", "duration": 4.5},
            content=AUDIO,
            headers={"content-type": "audio/webm;codecs=opus"},
        )
        assert response.status_code == 201
        created = response.json()
        assert created["status"] == "pending"
        assert created["title"] == "Morning visit"
        assert created["duration"] == 4.5
        assert created["audioRef"].startswith("data:audio/webm;base64,")
        assert "createdAt" in created
        assert "transcript" not in created

        done = _wait_for_status(client, created["id"], "success")
        assert done["transcript"] == "Ninety square meters, two bedrooms."

        prop = client.get("/property")
        assert prop.status_code == 200
        assert prop.json() == {"livingArea": 90.0, "totalBedrooms": 2}


@pytest.mark.parametrize(
    ("content", "content_type", "status_code"),
    [
        (b"", "audio/webm", 400),
        (AUDIO, "application/json", 400),
        (b"x" * 2048, "audio/webm", 413),
    ],
)
def test_upload_validation_errors(services: VocalNotesServices, content: bytes, content_type: str, status_code: int) -> None:
    client = TestClient(app)
    response = client.post("/notes", params={"duration": 1}, content=content, headers={"content-type": content_type})

    assert response.status_code == status_code
    assert client.get("/notes").json() == []


def test_patch_unknown_note_returns_404(services: VocalNotesServices) -> None:
    client = TestClient(app)
    response = client.patch("/notes/note_missing", json={"status": "transcribing"})

    assert response.status_code == 404
    assert "note_missing" in response.json()["detail"]


def test_patch_follows_status_edges(services: VocalNotesServices) -> None:
    note = services.pipeline.create_note(AUDIO, mime_type="audio/webm", duration=1.0)
    client = TestClient(app)

    skipped = client.patch(f"/notes/{note.id}", json={"status": "success"})
    assert skipped.status_code == 409

    advanced = client.patch(f"/notes/{note.id}", json={"status": "transcribing"})
    assert advanced.status_code == 200
    assert advanced.json()["status"] == "transcribing"

    missing_transcript = client.patch(f"/notes/{note.id}", json={"status": "extracting"})
    assert missing_transcript.status_code == 400


def test_delete_note(services: VocalNotesServices) -> None:
    note = services.pipeline.create_note(AUDIO, mime_type="audio/webm", duration=1.0)
    client = TestClient(app)

    response = client.delete(f"/notes/{note.id}")
    assert response.status_code == 200
    assert response.json() == {"deleted": True, "note_id": note.id}
    assert client.get("/notes").json() == []
    assert client.delete(f"/notes/{note.id}").status_code == 404


def test_manual_merge_and_reset(services: VocalNotesServices) -> None:
    client = TestClient(app)
    assert client.get("/property").json() is None

    merged = client.post(
        "/property/merge",
        json={"livingArea": 70, "description": "UNKNOWN", "rooms": [{"type": "KITCHEN", "surface": 9}]},
    )
    assert merged.status_code == 200
    assert merged.json() == {"livingArea": 70.0, "rooms": [{"type": "KITCHEN", "surface": 9.0}]}

    again = client.post("/property/merge", json={"rooms": [{"type": "KITCHEN", "surface": 11}]})
    assert again.json()["rooms"] == [{"type": "KITCHEN", "surface": 11.0}]

    invalid = client.post("/property/merge", json={"propertyType": "CASTLE"})
    assert invalid.status_code == 400

    reset = client.post("/property/reset")
    assert reset.json() == {"reset": True}
    assert client.get("/property").json() is None


def test_event_stream_starts_with_connected_and_unregisters(services: VocalNotesServices) -> None:
    client = TestClient(app)
    response = client.get("/notes/events")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache, no-store, no-transform"
    assert response.text.startswith('data: {"type": "connected"}\n\n')
    assert client.get("/debug/sse").json() == {"connections": 0}
