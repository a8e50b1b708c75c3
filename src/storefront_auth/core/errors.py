"""
Errors raised by the install flow.

Every error carries a stable ``code``, the HTTP status it maps to and a short
public message. Clients only ever see the public code and message; the
specific code, the detail and the shop go to the log. Rejections that would
otherwise tell a caller which check failed (domain, signature, state) share
one public code.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("errors")

REQUEST_REJECTED = "REQUEST_REJECTED"
REJECTED_MESSAGE = "Request could not be verified"


class InstallFlowError(Exception):
    """Base class for install flow and credential errors."""

    code = "INSTALL_FLOW_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Request failed"
    public_code: str | None = None

    def __init__(self, detail: str = "", shop: str | None = None):
        super().__init__(detail or self.public_message)
        self.detail = detail
        self.shop = shop

    def to_dict(self) -> dict:
        """Convert to the API error body."""
        return {"error": {"code": self.public_code or self.code, "message": self.public_message}}


class InvalidShopDomain(InstallFlowError):
    code = "INVALID_SHOP_DOMAIN"
    status_code = status.HTTP_400_BAD_REQUEST
    public_code = REQUEST_REJECTED
    public_message = REJECTED_MESSAGE


class MissingParameters(InstallFlowError):
    code = "MISSING_PARAMETERS"
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Missing required parameters"


class AuthenticityFailure(InstallFlowError):
    code = "AUTHENTICITY_FAILURE"
    status_code = status.HTTP_400_BAD_REQUEST
    public_code = REQUEST_REJECTED
    public_message = REJECTED_MESSAGE


class InvalidWebhookSignature(AuthenticityFailure):
    status_code = status.HTTP_403_FORBIDDEN


class CsrfViolation(InstallFlowError):
    code = "CSRF_VIOLATION"
    status_code = status.HTTP_400_BAD_REQUEST
    public_code = REQUEST_REJECTED
    public_message = REJECTED_MESSAGE


class ExchangeFailure(InstallFlowError):
    code = "EXCHANGE_FAILURE"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "OAuth failed"


class StorageUnavailable(InstallFlowError):
    code = "STORAGE_UNAVAILABLE"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Service temporarily unavailable"


async def install_flow_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render an ``InstallFlowError`` without leaking its detail."""
    if not isinstance(exc, InstallFlowError):
        raise exc

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Install flow error: %s",
        exc.code,
        extra={
            "error_code": exc.code,
            "status_code": exc.status_code,
            "shop": exc.shop,
            "detail": exc.detail,
            "path": request.url.path,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
