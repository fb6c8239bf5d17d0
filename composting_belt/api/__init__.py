"""API Layer — FastAPI routes, request dependencies and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All failures leave through the structured "success": false envelope

Design Decisions:
    - Thin routes delegate to services; no business rule lives here
"""
