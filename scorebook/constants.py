"""
Import-wide constants for the Scorebook import engine.

This module contains the field aliases, ordering ranks and table names used
throughout the reconciliation pipeline.
"""

class FieldAliases:
    """Accepted spellings for each raw record field, in lookup priority order."""
    
    DATE = ('date', 'session_date')
    LOCATION = ('location',)
    PLAYER = ('player', 'player_name')
    OPPONENT = ('opponent', 'opponent_name')
    PLAYER_SCORE = ('my_score', 'player_score')
    OPPONENT_SCORE = ('opp_score', 'opponent_score')
    SEQUENCE_HINT = ('round', 'round_number', 'sequence', 'sequence_hint')

class OrderingConstants:
    """Constants for the deterministic record ordering."""
    
    # Records without a sequence hint sort after every hinted record
    UNHINTED_RANK = float('inf')

class TableConstants:
    """Constants for the destination store layout."""
    
    # Children before parents so foreign keys hold during the wipe
    WIPE_ORDER = ('games', 'rounds', 'sessions', 'players')

class ScoreConstants:
    """Bounds for integer fields written to the store."""
    
    # Signed 64-bit INTEGER range shared by SQLite and PostgreSQL BIGINT
    MIN_STORED_INTEGER = -2**63
    MAX_STORED_INTEGER = 2**63 - 1
