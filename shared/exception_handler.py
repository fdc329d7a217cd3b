import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from shared.core.exceptions import BillingValidationError, RecordNotFoundError
from shared.helpers.json_response_helper import failure_response
from shared.utils.app_status_code import AppStatusCode

logger = logging.getLogger(__name__)


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        wrapped = failure_response(
            str(exc.detail), str(exc.status_code or AppStatusCode.OPERATION_FAILED)).model_dump()
        return JSONResponse(content=wrapped, status_code=exc.status_code or 400)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        wrapped = failure_response(
            str(exc), AppStatusCode.REQUIRED_VALIDATION_ERROR).model_dump()
        return JSONResponse(content=wrapped, status_code=422)

    @app.exception_handler(BillingValidationError)
    async def billing_validation_handler(request: Request, exc: BillingValidationError):
        wrapped = failure_response(
            str(exc), AppStatusCode.INVALID_INPUT).model_dump()
        return JSONResponse(content=wrapped, status_code=400)

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError):
        wrapped = failure_response(
            str(exc), AppStatusCode.RECORD_NOT_FOUND).model_dump()
        return JSONResponse(content=wrapped, status_code=404)

    # Catch all unhandled exceptions
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s", request.url.path)
        wrapped = failure_response(
            str(exc), AppStatusCode.OPERATION_FAILED).model_dump()
        return JSONResponse(content=wrapped, status_code=500)
