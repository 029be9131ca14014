"""
Import Operations Module

Business logic for the bulk import of two-player game results. Composes the
reconciliation stages (normalize -> canonicalize -> deduplicate/sequence ->
derive entities) and performs the full-replace load of players, sessions,
rounds and games as one atomic unit.

Key functionality:
- parse_import_payload(): Envelope validation for {"games": [...]}
- ImportOperations.prepare(): Pure reconciliation, no storage access
- ImportOperations.load(): Wipe and reload inside one transaction
- ImportOperations.import_games(): End-to-end import returning ImportResult

Failure policy:
- Per-record problems are dropped with a warning and never abort the import
- An empty reconciled set never wipes the store
- Any storage failure rolls the whole load back; nothing is retried
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from sqlalchemy import insert

from scorebook.data_models.records import (
    CanonicalGame, DerivedEntities, ImportResult, NormalizedRecord
)
from scorebook.database.models import Player, Session, Round, Game
from scorebook.operations.canonicalizer import canonicalize
from scorebook.operations.entity_deriver import derive_entities
from scorebook.operations.identity_resolver import IdentityResolver
from scorebook.operations.normalizer import normalize_record
from scorebook.operations.sequencer import deduplicate_and_sequence
from scorebook.utils.import_exceptions import (
    ImportException, ImportStorageError, MalformedPayloadError
)
from scorebook.utils.logger import setup_logger

logger = setup_logger(__name__)


def parse_import_payload(payload: Any) -> List[Any]:
    """
    Extract the raw game list from an import envelope.
    
    Args:
        payload: JSON text, bytes, or an already-decoded mapping
        
    Returns:
        The list under "games"
        
    Raises:
        MalformedPayloadError: If the JSON is invalid or "games" is not a list
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode('utf-8')
        except UnicodeDecodeError:
            raise MalformedPayloadError("Invalid JSON")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError:
            raise MalformedPayloadError("Invalid JSON")
    
    if not isinstance(payload, dict):
        raise MalformedPayloadError("Expected a JSON object with a 'games' array")
    games = payload.get('games')
    if not isinstance(games, list):
        raise MalformedPayloadError("'games' must be an array")
    return games


@dataclass
class ImportPlan:
    """Reconciled import, counted at each stage, ready for loading."""
    received: int
    normalized: List[NormalizedRecord]
    deduped: List[CanonicalGame]
    derived: DerivedEntities
    warnings: List[str] = field(default_factory=list)


class ImportOperations:
    """
    Full-replace import of game results into the store.
    
    Imports through one instance are serialized; the store itself must not
    be written by anything else while an import runs.
    """
    
    def __init__(self, database, resolver: IdentityResolver = None):
        """Initialize with database instance and optional identifier resolver"""
        self.db = database
        self.resolver = resolver
        self.logger = logger
        self._lock = asyncio.Lock()
    
    def prepare(self, raw_games: List[Any]) -> ImportPlan:
        """Run every reconciliation stage over the raw records"""
        warnings = []
        normalized = []
        for index, raw in enumerate(raw_games):
            result = normalize_record(raw, index)
            if result.ok:
                normalized.append(result.record)
            else:
                self.logger.warning(f"Skipping {result.diagnostic}")
                warnings.append(result.diagnostic)
        
        deduped = deduplicate_and_sequence(canonicalize(record) for record in normalized)
        derived = derive_entities(deduped)
        warnings.extend(derived.warnings)
        
        self.logger.info(
            f"Reconciled import: {len(raw_games)} received, {len(normalized)} normalized, "
            f"{len(deduped)} after dedup, {len(derived.games)} to load"
        )
        
        return ImportPlan(
            received=len(raw_games),
            normalized=normalized,
            deduped=deduped,
            derived=derived,
            warnings=warnings,
        )
    
    async def load(self, derived: DerivedEntities, warnings: List[str] = None) -> Dict[str, int]:
        """
        Replace the store's contents with the derived entities, atomically.
        
        Args:
            derived: Non-empty output of derive_entities()
            warnings: List that skipped-record diagnostics are appended to
            
        Returns:
            Inserted row counts by entity
            
        Raises:
            ImportException: On any storage failure; the store is left unchanged
        """
        if derived.is_empty:
            raise ValueError("Refusing to load an empty import")
        if warnings is None:
            warnings = []
        resolver = self.resolver or IdentityResolver.for_database(self.db)
        
        inserted = {'players': 0, 'sessions': 0, 'rounds': 0, 'games': 0}
        
        try:
            await self._replace_all(derived, resolver, inserted, warnings)
        except ImportException:
            raise
        except Exception as e:
            # Driver errors are not always wrapped by SQLAlchemy
            raise ImportStorageError("load", str(e)) from e
        
        self.logger.info(
            f"Import committed: {inserted['players']} players, {inserted['sessions']} sessions, "
            f"{inserted['rounds']} rounds, {inserted['games']} games"
        )
        return inserted
    
    async def _replace_all(self, derived, resolver, inserted, warnings):
        """Wipe and re-insert inside one transaction; any exception rolls everything back"""
        async with self.db.transaction() as session:
            await self.db.clear_all_tables(session)
            await self.db.reset_identifier_sequences(session)
            
            player_ids = {}
            for name in derived.player_names:
                player_ids[name] = await resolver.create_and_resolve(
                    session, Player, {'name': name}, {'name': name}
                )
                inserted['players'] += 1
            
            session_ids = {}
            for game_date, location in derived.session_keys:
                key = {'date': game_date, 'location': location}
                session_ids[(game_date, location)] = await resolver.create_and_resolve(
                    session, Session, key, key
                )
                inserted['sessions'] += 1
            
            for planned in derived.games:
                game = planned.game
                player1_id = player_ids[game.p1]
                player2_id = player_ids[game.p2]
                if player1_id == player2_id:
                    message = f"Record #{game.index}: self-match ({game.p1} vs {game.p2})"
                    self.logger.warning(message)
                    warnings.append(message)
                    continue
                
                round_key = {
                    'session_id': session_ids[game.session_key],
                    'round_number': planned.round_number,
                }
                round_id = await resolver.create_and_resolve(session, Round, round_key, round_key)
                inserted['rounds'] += 1
                
                await session.execute(
                    insert(Game).values(
                        round_id=round_id,
                        player1_id=player1_id,
                        player2_id=player2_id,
                        player1_score=game.s1,
                        player2_score=game.s2,
                    )
                )
                inserted['games'] += 1
    
    async def import_games(self, payload: Any) -> ImportResult:
        """
        Import a {"games": [...]} envelope as a full replace of the store.
        
        Args:
            payload: JSON text, bytes, or decoded mapping
            
        Returns:
            ImportResult with the response body and a status code (400 for a
            malformed envelope, 500 for a storage failure, 200 otherwise)
        """
        try:
            raw_games = parse_import_payload(payload)
        except MalformedPayloadError as e:
            self.logger.warning(str(e))
            return ImportResult(body={'ok': False, 'error': e.user_message}, status_code=e.status_code)
        
        plan = self.prepare(raw_games)
        
        if plan.derived.is_empty:
            message = "No valid games to import; existing data was left unchanged"
            self.logger.warning(message)
            return ImportResult(body={
                'ok': True,
                'received': plan.received,
                'normalized': len(plan.normalized),
                'wiped': False,
                'message': message,
                'warnings': plan.warnings,
            })
        
        async with self._lock:
            try:
                inserted = await self.load(plan.derived, plan.warnings)
            except ImportException as e:
                self.logger.error(f"Import failed and was rolled back: {e}")
                return ImportResult(body={'ok': False, 'error': str(e)}, status_code=e.status_code)
        
        return ImportResult(body={
            'ok': True,
            'received': plan.received,
            'normalized': len(plan.normalized),
            'deduped': len(plan.deduped),
            'inserted': inserted,
            'warnings': plan.warnings,
        })
