"""
Note processing pipeline and service wiring for vocalnotes.

Design intent:
- Own the store, hub and collaborators explicitly so several instances can coexist.
- Return an awaitable task handle for each accepted note.
- Surface pipeline failures only as note state, never to the uploader.
"""

from .orchestrator import NotePipeline, PipelineHandle
from .services import VocalNotesServices, build_extractor, build_services, build_transcriber

__all__ = [
    "NotePipeline",
    "PipelineHandle",
    "VocalNotesServices",
    "build_extractor",
    "build_services",
    "build_transcriber",
]
