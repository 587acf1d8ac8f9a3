# agency/api/errors.py
from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from agency.domain.errors import ConfirmationRequiredError, StoreError

# wszystko co serwisy rzucaja "celowo"
SERVICE_ERRORS = (ValueError, PermissionError, LookupError, StoreError, ConfirmationRequiredError)


def http_error(e: Exception) -> HTTPException:
    if isinstance(e, ConfirmationRequiredError):
        impact = e.impact
        return HTTPException(
            status_code=409,
            detail={
                "message": impact.message,
                "item_id": impact.item_id,
                "item_type": impact.item_type,
                "cascaded_item_ids": impact.cascaded_item_ids,
                "requires_confirmation": impact.requires_confirmation,
            },
        )
    if isinstance(e, PermissionError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, LookupError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, StoreError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # funkcje uprzywilejowane maja wlasny format bledu {error, details}
    if request.url.path.startswith("/functions/"):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
        )
    return await request_validation_exception_handler(request, exc)
