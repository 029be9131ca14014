"""
Import pipeline data models

Provides immutable data transfer objects passed between the normalization,
canonicalization, sequencing and entity derivation stages.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


SessionKey = Tuple[str, str]  # (date, location)


@dataclass(frozen=True)
class NormalizedRecord:
    """One raw record coerced into typed scalar fields."""
    date: str
    location: str
    player: str
    opponent: str
    player_score: int
    opponent_score: int
    sequence_hint: Optional[int] = None
    index: int = 0


@dataclass(frozen=True)
class NormalizationResult:
    """Either a normalized record or the reason the raw record was rejected."""
    index: int
    record: Optional[NormalizedRecord] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None

    @property
    def diagnostic(self) -> str:
        return f"Record #{self.index}: {self.reason}"


@dataclass(frozen=True)
class CanonicalGame:
    """
    Perspective-independent form of a two-player result.

    p1 <= p2 always holds and s1/s2 are the scores of p1/p2. The sequence
    hint and originating index do not take part in equality.
    """
    date: str
    location: str
    p1: str
    p2: str
    s1: int
    s2: int
    sequence_hint: Optional[int] = field(default=None, compare=False)
    index: int = field(default=0, compare=False)

    @property
    def dedup_key(self) -> Tuple[str, str, str, str, int, int]:
        return (self.date, self.location, self.p1, self.p2, self.s1, self.s2)

    @property
    def session_key(self) -> SessionKey:
        return (self.date, self.location)

    @property
    def is_self_match(self) -> bool:
        return self.p1 == self.p2


@dataclass(frozen=True)
class PlannedGame:
    """A canonical game with the round number it will be stored under."""
    game: CanonicalGame
    round_number: int


@dataclass(frozen=True)
class DerivedEntities:
    """Everything the loader writes, in creation order."""
    player_names: List[str]
    session_keys: List[SessionKey]
    games: List[PlannedGame]
    warnings: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.games


@dataclass
class ImportResult:
    """Outcome of one import call, ready to be serialized for the caller."""
    body: dict
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return bool(self.body.get('ok'))

    def to_dict(self) -> dict:
        return dict(self.body)
