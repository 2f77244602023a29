"""
Taxonomy Browser — Keyset Pagination & Hierarchy Resolution
=============================================================
Hexagonal (Ports & Adapters) architecture.

Layer map
─────────────────────────────────────────────────────
  config/       All tuneable settings
  domain/       Pure business objects (models, exceptions, code grammars,
                cursor codec) — no I/O
  ports/        Abstract interfaces (Python Protocols)
  adapters/     Concrete implementations of each Port (Postgres)
  services/     Orchestration logic; depends only on Ports, never Adapters
  interfaces/   Delivery layer: CLI, (future) HTTP API
  tests/        Full test suite: unit / integration / e2e

Swapping the storage backend:
  1. Write a new adapter in adapters/ implementing TaxonomyStorePort
  2. Change the single wiring line in services/container.py
  3. Done — zero other files touched
"""
__version__ = "1.0.0"
