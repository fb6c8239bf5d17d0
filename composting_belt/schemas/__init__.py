"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate shape and ranges at the boundary
    - Domain types from core/ used for enum fields

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
