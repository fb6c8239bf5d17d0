"""Infrastructure Layer — database session management and logging setup.

Invariants:
    - Infrastructure never imports domain logic beyond core/errors
    - Driver errors leave this layer as CompostingError subclasses
"""
