"""
Voice Memo Backend — Application Package Initializer
=====================================================

What: Marks the `voicememo` directory as a Python package.
Who:  Imported by uvicorn (`voicememo.main:app`), Alembic and pytest.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, status mapping
    ├─────────────────────────────────────┤
    │   Dependencies (Request Pipeline)   │  ← token → user → key resolution
    ├─────────────────────────────────────┤
    │   Services / Security (Core Logic)  │  ← memo + credential stores, gateway,
    │                                     │    cipher, token codec
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
