"""
Entity Deriver

Computes the players, sessions and per-session round numbers implied by the
deduplicated, sequenced game list. Pure: nothing here touches storage.
"""

from collections import defaultdict
from typing import Dict, List, Sequence

from scorebook.data_models.records import CanonicalGame, DerivedEntities, PlannedGame, SessionKey
from scorebook.utils.logger import setup_logger

logger = setup_logger(__name__)


def assign_round_numbers(games: Sequence[CanonicalGame]) -> List[PlannedGame]:
    """
    Number games 1..N within each session, walking them in the given order.
    
    Args:
        games: Sequenced games without self-matches
        
    Returns:
        PlannedGame list in the same order
    """
    counters: Dict[SessionKey, int] = defaultdict(int)
    planned = []
    for game in games:
        counters[game.session_key] += 1
        planned.append(PlannedGame(game=game, round_number=counters[game.session_key]))
    return planned


def derive_entities(games: Sequence[CanonicalGame]) -> DerivedEntities:
    """
    Derive creation-ordered entity sets from sequenced canonical games.
    
    Self-matches are reported as warnings and take no part: they consume no
    round number and contribute no player or session.
    """
    warnings = []
    playable = []
    for game in games:
        if game.is_self_match:
            message = f"Record #{game.index}: self-match ({game.p1} vs {game.p2})"
            logger.warning(message)
            warnings.append(message)
            continue
        playable.append(game)
    
    player_names = sorted({name for game in playable for name in (game.p1, game.p2)})
    session_keys = sorted({game.session_key for game in playable})
    planned = assign_round_numbers(playable)
    
    logger.debug(
        f"Derived {len(player_names)} players, {len(session_keys)} sessions, "
        f"{len(planned)} rounds"
    )
    
    return DerivedEntities(
        player_names=player_names,
        session_keys=session_keys,
        games=planned,
        warnings=warnings,
    )
