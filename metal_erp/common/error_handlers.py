from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from metal_erp.core.config import settings
from metal_erp.logger_config import logger


def register_error_handlers(app: FastAPI):
    @app.exception_handler(HTTPException)
    def handle_http_exception(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "message": exc.detail,
                "status_code": exc.status_code,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    def handle_validation_error(request: Request, exc: RequestValidationError):
        # ctx may hold the raw exception object, which isn't serialisable
        errors = [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": "Validation failed",
                "errors": jsonable_encoder(errors),
                "status_code": 422,
            },
        )

    @app.exception_handler(Exception)
    def handle_exception(request: Request, exc: Exception):
        # Log the exception with traceback
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")

        content = {
            "success": False,
            "message": "Internal Server Error",
            "status_code": 500,
        }
        if settings.APP_ENV == "local":
            content["details"] = str(exc)
        return JSONResponse(status_code=500, content=content)
