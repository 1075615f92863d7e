from __future__ import annotations


class VocalNotesError(Exception):
    """Base exception for vocalnotes errors."""


class UploadValidationError(VocalNotesError):
    """Raised when an uploaded note is missing or malformed."""

    def __init__(self, message: str, *, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class NoteNotFoundError(VocalNotesError, KeyError):
    """Raised for operations on an unknown note id."""

    def __init__(self, note_id: str):
        super().__init__(f"Unknown note_id: {note_id}")
        self.note_id = note_id

    def __str__(self) -> str:
        return f"Unknown note_id: {self.note_id}"


class InvalidStatusTransition(VocalNotesError):
    """Raised when a note status change is not an allowed edge."""

    def __init__(self, note_id: str, current: str, target: str):
        super().__init__(f"Note {note_id} cannot move from '{current}' to '{target}'.")
        self.note_id = note_id
        self.current = current
        self.target = target


class CollaboratorError(VocalNotesError):
    def __init__(self, code: str, message: str, provider_name: str):
        super().__init__(message)
        self.code = code
        self.message = message
        self.provider_name = provider_name


class CollaboratorUnavailable(CollaboratorError):
    """Raised before any call when a collaborator has no credential/config."""


class CollaboratorFailure(CollaboratorError):
    """Raised when a collaborator call fails or returns unusable data."""


class BroadcastDeliveryFailure(VocalNotesError):
    """Raised by a channel whose send failed; the hub prunes that channel."""
