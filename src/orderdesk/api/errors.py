"""Render OrderDesk errors as JSON responses.

Every failure carries a ``kind`` so API clients can tell the reasons apart
without parsing messages:

    400  InvalidTransition, MissingTrackingInfo, InvalidAmount,
         MissingReason, AmountExceedsRefundable, InvalidRequest
    404  OrderNotFound
    409  OrderBusy
    502  ProviderFailure
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidDataError, ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from orderdesk.domain import logger
from orderdesk.order.errors import OrderDeskError


async def order_desk_error_handler(request: Request, exc: OrderDeskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, kind=exc.kind, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def invalid_request_handler(request: Request, exc: ValidationError | InvalidDataError) -> JSONResponse:
    """Field-level failures from building a command, such as a value over its length limit."""
    return JSONResponse(
        status_code=400,
        content={"kind": "InvalidRequest", "message": "Request failed validation", "errors": exc.messages},
    )


async def order_not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"kind": "OrderNotFound", "message": str(exc), "errors": {"order": [str(exc)]}},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install protean's handlers, then the OrderDesk-specific ones on top."""
    register_exception_handlers(app)
    app.add_exception_handler(ValidationError, invalid_request_handler)
    app.add_exception_handler(InvalidDataError, invalid_request_handler)
    app.add_exception_handler(OrderDeskError, order_desk_error_handler)
    app.add_exception_handler(ObjectNotFoundError, order_not_found_handler)
