#!/usr/bin/env python3
"""
Bulk game-result import

Standalone script that reads a {"games": [...]} JSON document and replaces the
store's players, sessions, rounds and games with its reconciled contents.

Usage:
    python import_games.py games.json
    python import_games.py games.json --dry-run
    python import_games.py games.json --database-url sqlite:///other.db
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from scorebook.config import Config
from scorebook.database.database import Database
from scorebook.operations.import_operations import ImportOperations, parse_import_payload
from scorebook.utils.import_exceptions import MalformedPayloadError
from scorebook.utils.logger import setup_logger


def setup_logging() -> logging.Logger:
    """Setup logging for the import script"""
    return setup_logger("import_games")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replace stored game results with a JSON import")
    parser.add_argument('path', help='JSON file containing {"games": [...]}')
    parser.add_argument('--dry-run', action='store_true',
                        help='Reconcile and report counts without touching the database')
    parser.add_argument('--database-url', default=None,
                        help='Override DATABASE_URL for this run')
    return parser.parse_args(argv)


def print_summary(title: str, body: dict) -> None:
    print("\n" + "="*50)
    print(title)
    print("="*50)
    for key, value in body.items():
        if key == 'warnings':
            continue
        print(f"{key}: {value}")
    warnings = body.get('warnings') or []
    if warnings:
        print(f"warnings ({len(warnings)}):")
        for warning in warnings:
            print(f"  - {warning}")
    print("="*50)


async def dry_run(payload: str) -> dict:
    """Reconcile without loading and return the planned counts"""
    operations = ImportOperations(database=None)
    plan = operations.prepare(parse_import_payload(payload))
    return {
        'ok': True,
        'received': plan.received,
        'normalized': len(plan.normalized),
        'deduped': len(plan.deduped),
        'planned': {
            'players': len(plan.derived.player_names),
            'sessions': len(plan.derived.session_keys),
            'rounds': len(plan.derived.games),
            'games': len(plan.derived.games),
        },
        'warnings': plan.warnings,
    }


async def run_import(payload: str, database_url: str = None) -> dict:
    """Run a full import against the configured database"""
    db = Database(database_url)
    await db.initialize()
    try:
        result = await ImportOperations(db).import_games(payload)
    finally:
        await db.close()
    return result.to_dict()


async def main(argv=None) -> int:
    """Main entry point for standalone script execution"""
    args = parse_args(argv)
    logger = setup_logging()
    
    try:
        Config.validate()
        payload = Path(args.path).read_text(encoding='utf-8')
        
        if args.dry_run:
            body = await dry_run(payload)
            print_summary("DRY RUN (database untouched)", body)
            return 0
        
        body = await run_import(payload, args.database_url)
    except (OSError, ValueError, MalformedPayloadError) as e:
        logger.error(f"Import failed: {e}")
        print(f"\nERROR: {e}")
        return 1
    
    if not body.get('ok'):
        print(f"\nERROR: {body.get('error')}")
        return 1
    
    print_summary("IMPORT COMPLETED", body)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
