"""Workout sync infrastructure for Logbook.

Modules:
    backfill — Idempotent, paginated Hevy → store synchronizer
    trigger  — Fire-and-forget background runs, hooked to cache misses
    dedup    — Dedup keys and store item builders
"""
