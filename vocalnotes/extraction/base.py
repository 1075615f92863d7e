from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

from vocalnotes.internal_core.errors import CollaboratorUnavailable


class ExtractionProvider(ABC):
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def availability(self) -> Tuple[bool, str]: ...

    @abstractmethod
    def extract(self, transcript: str, current_property: Optional[dict[str, Any]]) -> dict[str, Any]:
        """All-fields-present extraction result; null marks unknown.

        ``current_property`` is the camelCase snapshot of the canonical record
        so the result can be incremental.
        """

    def ensure_available(self) -> None:
        ok, reason = self.availability()
        if not ok:
            raise CollaboratorUnavailable("EXTRACTOR_UNAVAILABLE", reason, self.name())
