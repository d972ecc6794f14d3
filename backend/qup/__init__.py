"""
Qup Backend - Application Package
===================================

Layered the same way throughout:

    ┌─────────────────────────────────────────┐
    │  routes/ (REST)     graphql/ (GraphQL)  │  ← transport concerns only
    ├─────────────────────────────────────────┤
    │           services/ (business rules)    │  ← permissions, invariants, events
    ├─────────────────────────────────────────┤
    │  core/ (pure rules)   models/ schemas/  │  ← validation, voting, ORM, API contracts
    ├─────────────────────────────────────────┤
    │           database.py (persistence)     │  ← async SQLAlchemy sessions
    └─────────────────────────────────────────┘

Both APIs call the same services, so a rule enforced once holds everywhere.
"""

__version__ = "1.0.0"
