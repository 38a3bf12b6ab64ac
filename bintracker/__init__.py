"""
Bin Tracker — Application Package Initializer
==============================================

What: Metadata and photo tracker for physical storage bins.
Who:  Imported by uvicorn (`bintracker.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (Upsert, rendering)    │  ← Merge rules, page building
    ├─────────────────────────────────────┤
    │   Row Store / Blob Store adapters   │  ← SQLAlchemy rows, files on disk
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
