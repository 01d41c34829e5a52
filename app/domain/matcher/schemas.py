"""Matcher schemas - request parsing and the normalized matcher input"""

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...shared.validators import sanitise_string_array

# Facet name -> request field name, in scoring order
FACETS = {
    "materials": "materials",
    "forms": "forms",
    "slots": "slots",
    "contexts": "contexts",
    "energy_levels": "energyLevels",
}

MAX_LIMIT = 100

EMPTY_FILTER_MESSAGE = "at least one filter is required (materials, forms, slots, contexts, or energyLevels)"


def normalize_tag(value: str) -> str:
    return value.strip().casefold()


class MatcherRequest(BaseModel):
    """
    POST /matcher body.

    Malformed facet values are dropped rather than rejected: a non-list
    facet is treated as empty and non-string items are skipped.
    """

    model_config = ConfigDict(extra="ignore")

    materials: list[str] = []
    forms: list[str] = []
    slots: list[str] = []
    contexts: list[str] = []
    energyLevels: list[str] = []
    limit: Optional[int] = None

    @field_validator("materials", "forms", "slots", "contexts", "energyLevels", mode="before")
    @classmethod
    def sanitise_facet(cls, v: Any) -> list[str]:
        return sanitise_string_array(v)

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, v: Any) -> Optional[int]:
        if isinstance(v, bool) or not isinstance(v, int):
            return None
        return max(1, min(v, MAX_LIMIT))

    def to_input(self) -> "MatcherInput":
        return MatcherInput(
            materials=list(self.materials),
            forms=list(self.forms),
            slots=list(self.slots),
            contexts=list(self.contexts),
            energy_levels=list(self.energyLevels),
        )


@dataclass
class MatcherInput:
    materials: list[str] = field(default_factory=list)
    forms: list[str] = field(default_factory=list)
    slots: list[str] = field(default_factory=list)
    contexts: list[str] = field(default_factory=list)
    energy_levels: list[str] = field(default_factory=list)

    def values(self, facet: str) -> list[str]:
        return getattr(self, facet)

    def requested(self, facet: str) -> set[str]:
        return {normalize_tag(v) for v in self.values(facet) if v.strip()}

    def populated_facets(self) -> list[str]:
        return [facet for facet in FACETS if self.requested(facet)]

    def is_empty(self) -> bool:
        return not self.populated_facets()
