"""Core Layer — belt domain logic: no database, no HTTP, no async.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Transition planning, decay and fingerprinting are deterministic functions
      of their inputs; time and logging enter only through OperationContext
"""
