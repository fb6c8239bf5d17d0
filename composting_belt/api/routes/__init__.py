"""Route Modules — one file per resource.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Every handler builds its services from the request's session and OperationContext
"""
