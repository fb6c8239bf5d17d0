"""Request-scoped dependencies shared by the route modules."""

from fastapi import Request

from composting_belt.core.operation_context import OperationContext

REQUEST_ID_HEADER = "X-Request-ID"


def get_operation_context(request: Request) -> OperationContext:
    """Fresh context per request; honours an upstream request id when given."""
    request_id = request.headers.get(REQUEST_ID_HEADER)
    if request_id:
        return OperationContext(request_id=request_id)
    return OperationContext()
