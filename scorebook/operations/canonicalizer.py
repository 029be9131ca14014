"""
Canonicalizer

Maps a normalized record to its perspective-independent CanonicalGame, so the
same match reported by either participant produces identical field values.
"""

from scorebook.data_models.records import CanonicalGame, NormalizedRecord


def canonicalize(record: NormalizedRecord) -> CanonicalGame:
    """
    Order the two participants by name, carrying each score with its owner.
    
    Examples:
        bob 5 vs Alice 7 -> p1="Alice", s1=7, p2="bob", s2=5
        Alice 7 vs bob 5 -> p1="Alice", s1=7, p2="bob", s2=5
    
    Self-matches are passed through unchanged; they are filtered during
    entity derivation.
    """
    p1, s1 = record.player, record.player_score
    p2, s2 = record.opponent, record.opponent_score
    
    if p2 < p1:
        p1, s1, p2, s2 = p2, s2, p1, s1
    
    return CanonicalGame(
        date=record.date,
        location=record.location,
        p1=p1,
        p2=p2,
        s1=s1,
        s2=s2,
        sequence_hint=record.sequence_hint,
        index=record.index,
    )
