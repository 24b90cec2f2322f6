"""
Naksh Backend — Application Package
=====================================

What: The `naksh` package: an async FastAPI service for ephemeral posts,
      reactions, follows, chat, moderation and push tokens.
Who:  Imported by uvicorn (naksh.main:app), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │     Routes (API Layer, Boundary)    │  ← HTTP concerns, envelopes
    ├─────────────────────────────────────┤
    │      Services (Business Logic)      │  ← state transitions, checks
    ├─────────────────────────────────────┤
    │     Models & Schemas (Data)         │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │     Database / Providers            │  ← AsyncSession, identity, media
    └─────────────────────────────────────┘

    Errors travel up as APIError (naksh.exceptions); anything else is
    classified by naksh.errors before it reaches the terminal handler.
"""

__version__ = "1.0.0"
