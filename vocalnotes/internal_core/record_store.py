from __future__ import annotations

from threading import RLock
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from .contracts import Note, NoteStatus, Property
from .errors import InvalidStatusTransition, NoteNotFoundError

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"transcribing"}),
    "transcribing": frozenset({"extracting", "error"}),
    "extracting": frozenset({"success", "error"}),
    "success": frozenset(),
    "error": frozenset(),
}


def is_allowed_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class InMemoryRecordStore:
    """Notes (newest first) and the single canonical property record.

    All reads return copies; all writes happen under one re-entrant lock so a
    property read-merge-write can never interleave with another one.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._notes: List[Note] = []
        self._property: Optional[Property] = None

    def _index_of(self, note_id: str) -> int:
        for index, note in enumerate(self._notes):
            if note.id == note_id:
                return index
        raise NoteNotFoundError(note_id)

    def add_note(self, note: Note) -> Note:
        with self._lock:
            self._notes.insert(0, note.model_copy(deep=True))
            return note.model_copy(deep=True)

    def list_notes(self) -> List[Note]:
        with self._lock:
            return [note.model_copy(deep=True) for note in self._notes]

    def get_note(self, note_id: str) -> Note:
        with self._lock:
            return self._notes[self._index_of(note_id)].model_copy(deep=True)

    def has_note(self, note_id: str) -> bool:
        with self._lock:
            return any(note.id == note_id for note in self._notes)

    def transition_note(
        self,
        note_id: str,
        status: NoteStatus,
        *,
        transcript: Optional[str] = None,
        error: Optional[str] = None,
    ) -> Note:
        with self._lock:
            index = self._index_of(note_id)
            current = self._notes[index]
            if not is_allowed_transition(current.status, status):
                raise InvalidStatusTransition(note_id, current.status, status)

            changes: dict = {"status": status}
            if status == "extracting":
                if transcript is None:
                    raise ValueError("A transcript is required when a note enters 'extracting'.")
                changes["transcript"] = transcript
            elif transcript is not None:
                raise ValueError("The transcript is only set when a note enters 'extracting'.")
            if status == "error":
                changes["error"] = error

            updated = current.model_copy(update=changes, deep=True)
            self._notes[index] = updated
            return updated.model_copy(deep=True)

    def delete_note(self, note_id: str) -> Note:
        with self._lock:
            return self._notes.pop(self._index_of(note_id))

    def get_property(self) -> Optional[Property]:
        with self._lock:
            if self._property is None:
                return None
            return self._property.model_copy(deep=True)

    def update_property(self, mutate: Callable[[Optional[Property]], Property]) -> Property:
        """Atomically replace the property with ``mutate(current)``."""
        with self._lock:
            current = self._property.model_copy(deep=True) if self._property is not None else None
            updated = mutate(current)
            self._property = updated.model_copy(deep=True)
            return updated

    def complete_note(
        self,
        note_id: str,
        mutate: Callable[[Optional[Property]], Property],
    ) -> Tuple[Note, Property]:
        """Merge a note's result and mark it ``success`` in one locked step.

        Raises NoteNotFoundError or InvalidStatusTransition without touching
        the property when the note is gone or no longer ``extracting``.
        """
        with self._lock:
            index = self._index_of(note_id)
            current = self._notes[index]
            if not is_allowed_transition(current.status, "success"):
                raise InvalidStatusTransition(note_id, current.status, "success")
            merged = self.update_property(mutate)
            completed = current.model_copy(update={"status": "success"}, deep=True)
            self._notes[index] = completed
            return completed.model_copy(deep=True), merged

    def reset_property(self) -> None:
        with self._lock:
            self._property = None
