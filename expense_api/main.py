import logging
import time
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from expense_api.config import CORS_ORIGINS, HOST, IS_DEVELOPMENT, LOG_LEVEL, PORT
from expense_api.database import init_db
from expense_api.errors import ApiException, AppError, ErrorKind, FieldError
from expense_api.responses import failure, internal_error
from expense_api.routes.auth_routes import router as auth_router
from expense_api.routes.expense_routes import router as expense_router
from expense_api.routes.health_routes import router as health_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

HTTP_ERROR_KINDS = {
    404: ErrorKind.NOT_FOUND,
    405: ErrorKind.METHOD_NOT_ALLOWED,
}


def _error_field(err: dict) -> str:
    # A JSON decode error ends its loc with the byte offset, not a field name
    loc = err.get("loc") or ()
    if not loc or isinstance(loc[-1], int):
        return "body"
    return str(loc[-1])


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiException)
    async def api_exception_handler(request: Request, exc: ApiException):
        return failure(exc.error)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Only reachable for bodies that are not valid JSON at all
        errors = [FieldError(_error_field(err), err.get("msg", "Invalid value")) for err in exc.errors()]
        return failure(AppError(ErrorKind.VALIDATION_FAILED, "Validation failed", errors))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        kind = HTTP_ERROR_KINDS.get(exc.status_code)
        if kind is not None:
            response = failure(AppError(kind, str(exc.detail)))
            if exc.headers:
                response.headers.update(exc.headers)
            return response
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "status": "fail" if exc.status_code < 500 else "error",
                "message": str(exc.detail),
                "code": f"HTTP_{exc.status_code}",
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return internal_error("".join(traceback.format_exception(exc)))


def create_app(init_database: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if init_database:
            init_db()
        yield

    app = FastAPI(title="Expense Tracker API", version="1.0.0", lifespan=lifespan)

    # Configure CORS for Mobile App Support
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
        if IS_DEVELOPMENT and request.query_params:
            logger.debug(f"Query params: {dict(request.query_params)}")
        return response

    _register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(expense_router)
    return app


app = create_app()


def run():
    import uvicorn
    uvicorn.run("expense_api.main:app", host=HOST, port=PORT, reload=IS_DEVELOPMENT)


if __name__ == "__main__":
    run()
