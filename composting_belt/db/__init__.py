"""Database Declarative Base.

Invariants:
    - Every ORM model inherits from db.base.Base
    - Engines and sessions are owned by infrastructure/database.py
"""
