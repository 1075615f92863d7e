from __future__ import annotations

from typing import Any, Optional, Tuple

from .base import ExtractionProvider
from .unknowns import fill_template, unknown_template


class MockExtractionProvider(ExtractionProvider):
    """Returns the all-unknown template, optionally overlaid with fixed facts."""

    def __init__(self, facts: Optional[dict[str, Any]] = None) -> None:
        self._facts = dict(facts or {})
        self.calls: list[tuple[str, Optional[dict[str, Any]]]] = []

    def name(self) -> str:
        return "mock"

    def availability(self) -> Tuple[bool, str]:
        return True, ""

    def extract(self, transcript: str, current_property: Optional[dict[str, Any]]) -> dict[str, Any]:
        self.calls.append((transcript, current_property))
        return fill_template(unknown_template(), self._facts)
