"""
Operations Layer

This package provides the stages of the bulk import pipeline and the
transactional loader that composes them.

Architecture:
- Database layer: Pure data access, wipe and read helpers
- Operations layer: Reconciliation stages and the load workflow
- Script layer: Command line entry point (import_games.py)

Stages, in the order records flow through them:
- normalizer: Raw record -> typed NormalizedRecord (or rejection)
- canonicalizer: NormalizedRecord -> perspective-independent CanonicalGame
- sequencer: Exact-duplicate removal and deterministic total ordering
- entity_deriver: Players, sessions and round numbers implied by the ordering
- import_operations: Atomic wipe-and-reload of the store
"""
