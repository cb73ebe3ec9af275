"""
Magic Movers Backend — Application Package Initializer
========================================================

Layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← quest rules, capacity, CAS retry
    ├─────────────────────────────────────┤
    │      Repositories (Persistence)     │  ← SQL queries, conditional updates
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘

Services depend on the repository interfaces, so business rules are tested
against an in-memory implementation without a database.
"""

__version__ = "1.0.0"
