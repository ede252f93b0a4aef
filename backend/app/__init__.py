"""
MacroRelay Backend — Application Package Initializer
=====================================================

Relays authenticated macro invocations to an external trigger service.

    ┌─────────────────────────────────────┐
    │     Routes (auth, devices, health)  │  ← HTTP, cookies, status codes
    ├─────────────────────────────────────┤
    │   Services (auth, sessions, gate,   │  ← business rules, transactions
    │   devices, macros, trigger client)  │
    ├─────────────────────────────────────┤
    │   Models & Schemas                  │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database / Session cache          │  ← async SQLAlchemy, Redis
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
