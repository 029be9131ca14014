#!/usr/bin/env python3
"""
Tests for the full-replace import against a real SQLite database.

Each test builds a fresh database file, runs one or more imports through
ImportOperations and inspects the stored players, sessions, rounds and games.
"""

import asyncio
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scorebook.database.database import Database
from scorebook.database.models import Round
from scorebook.operations.identity_resolver import IdentityResolver
from scorebook.operations.import_operations import ImportOperations


EXAMPLE_GAMES = [
    {"date": "2/12/2026", "player": "bob", "opponent": "Alice", "my_score": 5, "opp_score": 7},
    {"date": "2026-02-12", "player": "Alice", "opponent": "bob", "my_score": 7, "opp_score": 5},
]

SECOND_DATASET = [
    {"date": "2026-03-01", "location": "Club", "player": "Carol", "opponent": "Dave", "my_score": 3, "opp_score": 1},
    {"date": "2026-03-01", "location": "Club", "player": "Dave", "opponent": "Erin", "my_score": 2, "opp_score": 4},
]


class FailOnRoundResolver(IdentityResolver):
    """Lets players and sessions through, then fails the first round insert"""
    
    async def create_and_resolve(self, session, model, values, natural_key):
        if model is Round:
            raise SQLAlchemyError("simulated round insert failure")
        return await super().create_and_resolve(session, model, values, natural_key)


class LostIdResolver(IdentityResolver):
    """Inserts succeed but the natural-key lookup never finds the row"""
    
    async def lookup(self, session, model, natural_key):
        return None


def run_with_db(tmp_path, scenario):
    """Run an async scenario against a freshly initialized database"""
    async def runner():
        db = Database(f"sqlite:///{tmp_path / 'scorebook_test.db'}")
        await db.initialize()
        try:
            return await scenario(db)
        finally:
            await db.close()
    return asyncio.run(runner())


async def snapshot(db):
    """Capture every stored row as plain tuples"""
    players = [(p.id, p.name) for p in await db.get_all_players()]
    sessions = [(s.id, s.date, s.location) for s in await db.get_all_sessions()]
    games = [
        (g.id, g.round_id, g.player1_id, g.player2_id, g.player1_score, g.player2_score)
        for g in await db.get_all_games()
    ]
    return players, sessions, games, await db.count_rows()


def test_end_to_end_example(tmp_path):
    async def scenario(db):
        result = await ImportOperations(db).import_games({"games": EXAMPLE_GAMES})
        
        assert result.ok
        assert result.status_code == 200
        body = result.to_dict()
        assert body['received'] == 2
        assert body['normalized'] == 2
        assert body['deduped'] == 1
        assert body['inserted'] == {'players': 2, 'sessions': 1, 'rounds': 1, 'games': 1}
        
        players = await db.get_all_players()
        assert [p.name for p in players] == ["Alice", "bob"]
        ids = {p.name: p.id for p in players}
        
        sessions = await db.get_all_sessions()
        assert [(s.date, s.location) for s in sessions] == [("2026-02-12", "Unknown")]
        
        rounds = await db.get_rounds_for_session(sessions[0].id)
        assert [r.round_number for r in rounds] == [1]
        
        games = await db.get_all_games()
        assert len(games) == 1
        game = games[0]
        assert game.round_id == rounds[0].id
        assert (game.player1_id, game.player1_score) == (ids["Alice"], 7)
        assert (game.player2_id, game.player2_score) == (ids["bob"], 5)
    
    run_with_db(tmp_path, scenario)


def test_json_text_payload_is_accepted(tmp_path):
    async def scenario(db):
        result = await ImportOperations(db).import_games(json.dumps({"games": EXAMPLE_GAMES}))
        assert result.ok
        assert (await db.count_rows())['games'] == 1
    
    run_with_db(tmp_path, scenario)


def test_same_record_twice_stores_one_game(tmp_path):
    async def scenario(db):
        record = {"date": "2026-02-12", "location": "Hall", "player": "Alice",
                  "opponent": "bob", "my_score": 7, "opp_score": 5}
        result = await ImportOperations(db).import_games({"games": [record, dict(record)]})
        
        assert result.body['deduped'] == 1
        assert (await db.count_rows())['games'] == 1
    
    run_with_db(tmp_path, scenario)


def test_round_numbers_gap_free_per_session(tmp_path):
    async def scenario(db):
        games = [
            {"date": "2026-01-01", "player": "A", "opponent": "B", "my_score": 1, "opp_score": 0},
            {"date": "2026-01-01", "player": "A", "opponent": "C", "my_score": 1, "opp_score": 0},
            {"date": "2026-01-01", "player": "B", "opponent": "C", "my_score": 1, "opp_score": 0, "round": 1},
            {"date": "2026-01-02", "player": "C", "opponent": "A", "my_score": 2, "opp_score": 2},
            {"date": "2026-01-02", "player": "B", "opponent": "A", "my_score": 0, "opp_score": 3},
        ]
        result = await ImportOperations(db).import_games({"games": games})
        assert result.ok
        
        sessions = await db.get_all_sessions()
        numbers = {}
        for stored in sessions:
            rounds = await db.get_rounds_for_session(stored.id)
            numbers[stored.date] = [r.round_number for r in rounds]
        assert numbers == {"2026-01-01": [1, 2, 3], "2026-01-02": [1, 2]}
        
        # The hinted B-C game sorts first in its session
        players = {p.name: p.id for p in await db.get_all_players()}
        first_round = (await db.get_rounds_for_session(sessions[0].id))[0]
        first_game = [g for g in await db.get_all_games() if g.round_id == first_round.id][0]
        assert (first_game.player1_id, first_game.player2_id) == (players["B"], players["C"])
    
    run_with_db(tmp_path, scenario)


def test_self_match_is_never_stored(tmp_path):
    async def scenario(db):
        games = EXAMPLE_GAMES + [
            {"date": "2026-02-12", "player": "Alice", "opponent": " Alice ", "my_score": 1, "opp_score": 1},
        ]
        result = await ImportOperations(db).import_games({"games": games})
        
        assert result.ok
        assert result.body['inserted']['games'] == 1
        assert any("self-match" in warning for warning in result.body['warnings'])
        for game in await db.get_all_games():
            assert game.player1_id != game.player2_id
    
    run_with_db(tmp_path, scenario)


def test_empty_import_leaves_store_untouched(tmp_path):
    async def scenario(db):
        await ImportOperations(db).import_games({"games": EXAMPLE_GAMES})
        before = await snapshot(db)
        
        for payload in (
            {"games": []},
            {"games": [{"date": "2026-02-12", "player": "Alice", "opponent": "bob", "my_score": 3}]},
        ):
            result = await ImportOperations(db).import_games(payload)
            assert result.ok
            assert result.body['wiped'] is False
            assert result.body['normalized'] == 0
            assert await snapshot(db) == before
    
    run_with_db(tmp_path, scenario)


def test_placeholder_records_produce_warnings(tmp_path):
    async def scenario(db):
        games = EXAMPLE_GAMES + [
            {"date": "2026-02-12", "player": "Alice", "opponent": "bob"},
            {"player": "Alice", "opponent": "bob", "my_score": 1, "opp_score": 2},
        ]
        result = await ImportOperations(db).import_games({"games": games})
        
        assert result.ok
        assert result.body['received'] == 4
        assert result.body['normalized'] == 2
        assert result.body['warnings'] == ["Record #2: missing score", "Record #3: missing date"]
    
    run_with_db(tmp_path, scenario)


def test_malformed_envelope_is_client_fault(tmp_path):
    async def scenario(db):
        await ImportOperations(db).import_games({"games": EXAMPLE_GAMES})
        before = await snapshot(db)
        
        for payload in ("{not json", b"\xff\xfe", "[1, 2]", {"games": "nope"}, {}):
            result = await ImportOperations(db).import_games(payload)
            assert not result.ok
            assert result.status_code == 400
            assert result.body['error']
        
        assert await snapshot(db) == before
    
    run_with_db(tmp_path, scenario)


def test_failure_mid_load_restores_empty_store(tmp_path):
    async def scenario(db):
        operations = ImportOperations(db, resolver=FailOnRoundResolver(supports_returning=False))
        result = await operations.import_games({"games": EXAMPLE_GAMES})
        
        assert not result.ok
        assert result.status_code == 500
        assert "simulated round insert failure" in result.body['error']
        assert await db.count_rows() == {'games': 0, 'rounds': 0, 'sessions': 0, 'players': 0}
    
    run_with_db(tmp_path, scenario)


def test_failure_mid_load_keeps_previous_import(tmp_path):
    async def scenario(db):
        await ImportOperations(db).import_games({"games": EXAMPLE_GAMES})
        before = await snapshot(db)
        
        operations = ImportOperations(db, resolver=FailOnRoundResolver())
        result = await operations.import_games({"games": SECOND_DATASET})
        
        assert not result.ok
        assert await snapshot(db) == before
    
    run_with_db(tmp_path, scenario)


def test_unresolvable_identifier_aborts_import(tmp_path):
    async def scenario(db):
        operations = ImportOperations(db, resolver=LostIdResolver(supports_returning=False))
        result = await operations.import_games({"games": EXAMPLE_GAMES})
        
        assert not result.ok
        assert result.status_code == 500
        assert "Could not resolve id for players" in result.body['error']
        assert (await db.count_rows())['players'] == 0
    
    run_with_db(tmp_path, scenario)


def test_lookup_fallback_matches_direct_resolution(tmp_path):
    async def scenario(db):
        direct = await ImportOperations(db, resolver=IdentityResolver(supports_returning=True)).import_games(
            {"games": SECOND_DATASET}
        )
        direct_rows = await snapshot(db)
        
        fallback = await ImportOperations(db, resolver=IdentityResolver(supports_returning=False)).import_games(
            {"games": SECOND_DATASET}
        )
        
        assert direct.ok and fallback.ok
        assert await snapshot(db) == direct_rows
    
    run_with_db(tmp_path, scenario)


def test_reimport_replaces_previous_dataset(tmp_path):
    async def scenario(db):
        operations = ImportOperations(db)
        await operations.import_games({"games": EXAMPLE_GAMES})
        result = await operations.import_games({"games": SECOND_DATASET})
        
        assert result.ok
        players = await db.get_all_players()
        assert [p.name for p in players] == ["Carol", "Dave", "Erin"]
        assert players[0].id == 1
        assert await db.count_rows() == {'games': 2, 'rounds': 2, 'sessions': 1, 'players': 3}
    
    run_with_db(tmp_path, scenario)


class DriverErrorResolver(IdentityResolver):
    """Raises a plain driver-level error that SQLAlchemy does not wrap"""
    
    async def create_and_resolve(self, session, model, values, natural_key):
        if model is Round:
            raise OverflowError("Python int too large to convert to SQLite INTEGER")
        return await super().create_and_resolve(session, model, values, natural_key)


class SequenceResetFailsDatabase(Database):
    """Database whose identifier sequence restart always errors"""
    
    async def _restart_sequences(self, session, dialect):
        raise RuntimeError("sequence restart not permitted")


class RollbackFailsSession(AsyncSession):
    async def rollback(self):
        raise RuntimeError("rollback unavailable")


def test_out_of_range_score_becomes_warning(tmp_path):
    async def scenario(db):
        games = EXAMPLE_GAMES + [
            {"date": "2026-01-01", "player": "a", "opponent": "b", "my_score": 1e300, "opp_score": 1},
        ]
        result = await ImportOperations(db).import_games({"games": games})
        
        assert result.ok
        assert result.body['warnings'] == ["Record #2: invalid score"]
        assert (await db.count_rows())['games'] == 1
    
    run_with_db(tmp_path, scenario)


def test_non_storage_driver_error_returns_failure(tmp_path):
    async def scenario(db):
        await ImportOperations(db).import_games({"games": EXAMPLE_GAMES})
        before = await snapshot(db)
        
        result = await ImportOperations(db, resolver=DriverErrorResolver()).import_games(
            {"games": SECOND_DATASET}
        )
        
        assert not result.ok
        assert result.status_code == 500
        assert "too large" in result.body['error']
        assert await snapshot(db) == before
    
    run_with_db(tmp_path, scenario)


def test_sequence_reset_failure_does_not_abort_import(tmp_path):
    async def runner():
        db = SequenceResetFailsDatabase(f"sqlite:///{tmp_path / 'reset_fails.db'}")
        await db.initialize()
        try:
            operations = ImportOperations(db)
            await operations.import_games({"games": EXAMPLE_GAMES})
            result = await operations.import_games({"games": SECOND_DATASET})
            
            assert result.ok
            players = await db.get_all_players()
            assert [p.name for p in players] == ["Carol", "Dave", "Erin"]
            assert await db.count_rows() == {'games': 2, 'rounds': 2, 'sessions': 1, 'players': 3}
        finally:
            await db.close()
    
    asyncio.run(runner())


def test_failed_rollback_keeps_original_error(tmp_path):
    async def scenario(db):
        db.async_session = async_sessionmaker(db.engine, class_=RollbackFailsSession, expire_on_commit=False)
        
        with pytest.raises(ValueError, match="original failure"):
            async with db.transaction():
                raise ValueError("original failure")
        
        result = await ImportOperations(db, resolver=FailOnRoundResolver()).import_games(
            {"games": EXAMPLE_GAMES}
        )
        assert not result.ok
        assert "simulated round insert failure" in result.body['error']
        assert "rollback unavailable" not in result.body['error']
        assert await db.count_rows() == {'games': 0, 'rounds': 0, 'sessions': 0, 'players': 0}
    
    run_with_db(tmp_path, scenario)


def test_self_matches_only_leave_store_untouched(tmp_path):
    async def scenario(db):
        await ImportOperations(db).import_games({"games": EXAMPLE_GAMES})
        before = await snapshot(db)
        
        games = [
            {"date": "2026-03-01", "player": "Carol", "opponent": "Carol", "my_score": 2, "opp_score": 2},
            {"date": "2026-03-02", "player": "Dave", "opponent": " Dave", "my_score": 1, "opp_score": 0},
        ]
        result = await ImportOperations(db).import_games({"games": games})
        
        assert result.ok
        assert result.body['wiped'] is False
        assert result.body['normalized'] == 2
        assert len(result.body['warnings']) == 2
        assert all("self-match" in warning for warning in result.body['warnings'])
        assert await snapshot(db) == before
    
    run_with_db(tmp_path, scenario)
