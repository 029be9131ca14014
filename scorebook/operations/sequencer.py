"""
Deduplicator & Sequencer

Removes exact duplicates from the canonical game set and puts the survivors
into one reproducible total order. Round numbers are assigned from this
order, so it must not depend on input order beyond first-occurrence dedup.
"""

from typing import Iterable, List, Tuple

from scorebook.constants import OrderingConstants
from scorebook.data_models.records import CanonicalGame
from scorebook.utils.logger import setup_logger

logger = setup_logger(__name__)


def deduplicate(games: Iterable[CanonicalGame]) -> List[CanonicalGame]:
    """Keep the first occurrence of each (date, location, p1, p2, s1, s2) key"""
    seen = set()
    unique = []
    for game in games:
        key = game.dedup_key
        if key in seen:
            logger.debug(f"Record #{game.index}: duplicate of an earlier record, dropped")
            continue
        seen.add(key)
        unique.append(game)
    return unique


def sort_key(game: CanonicalGame) -> Tuple:
    """date, location, sequence hint (unhinted last), then p1, p2, s1, s2"""
    hint = game.sequence_hint if game.sequence_hint is not None else OrderingConstants.UNHINTED_RANK
    return (game.date, game.location, hint, game.p1, game.p2, game.s1, game.s2)


def sequence(games: Iterable[CanonicalGame]) -> List[CanonicalGame]:
    """Return games in the deterministic import order"""
    return sorted(games, key=sort_key)


def deduplicate_and_sequence(games: Iterable[CanonicalGame]) -> List[CanonicalGame]:
    """Deduplicate, then sequence"""
    return sequence(deduplicate(games))
