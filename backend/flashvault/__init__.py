"""
FlashVault Backend — Application Package Initializer
=====================================================

What: Marks the `flashvault` directory as a Python package.
Who:  Imported by uvicorn (`flashvault.main:app`), Alembic, pytest and the
      import client script.

Architecture Note:
    The backend is split into layers, each with one concern:

    ┌─────────────────────────────────────┐
    │      Routes + Access Gate (API)     │  ← HTTP concerns, caller identity
    ├─────────────────────────────────────┤
    │   Services (compose/resolve/write)  │  ← Inventory rules, bulk import
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services never see a Request object, so the same code path serves the
    single-item routes, the bulk endpoint and the tests.
"""

__version__ = "1.0.0"
