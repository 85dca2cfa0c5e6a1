"""
Single mapping from domain error codes to HTTP responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.exceptions import MembershipError
from app.core.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_CODE = {
    "InvalidStartDate": status.HTTP_400_BAD_REQUEST,
    "InvalidAmount": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "InsufficientBalance": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "RewardNotFound": status.HTTP_404_NOT_FOUND,
    "PlanNotFound": status.HTTP_404_NOT_FOUND,
    "SubscriptionNotFound": status.HTTP_404_NOT_FOUND,
    "ClassNotFound": status.HTTP_404_NOT_FOUND,
    "BookingNotFound": status.HTTP_404_NOT_FOUND,
    "DuplicateBooking": status.HTTP_409_CONFLICT,
    "InvalidTransition": status.HTTP_409_CONFLICT,
    "Unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def membership_error_handler(request: Request, exc: MembershipError) -> JSONResponse:
    status_code = STATUS_BY_CODE.get(exc.error_code, status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error("request_unavailable", error_code=exc.error_code, detail=exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error_code": exc.error_code, "context": exc.details},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MembershipError, membership_error_handler)
