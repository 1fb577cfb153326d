"""Entry point for the bookmark server."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from server.config import SERVER_HOST, SERVER_PORT
from server.database import init_database
from server.exceptions import (
    MarkdException,
    InvalidSessionError,
    OwnerMismatchError,
    DuplicateBookmarkError,
    InvalidBookmarkError
)
from server.realtime.broker import ChannelBroker
from server.routes.bookmark_routes import router as bookmark_router
from server.routes.realtime_routes import router as realtime_router
from server.routes.session_routes import router as session_router
from server.schemas.common import ErrorResponse
from server.service_locator import get_channel_broker, set_channel_broker

logger = setup_logging('server')

app = FastAPI(
    title="Markd Sync Server",
    description="Owner-scoped bookmark store with a realtime change channel",
    version="1.0.0"
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize database and the realtime broker on application startup.
    """
    logger.info("Server starting up...")

    init_database()
    logger.info("Database initialized")

    set_channel_broker(ChannelBroker())
    logger.info("Realtime broker ready")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(
        f"Server shutting down [open_connections={get_channel_broker().connection_count()}]"
    )


def _error_response(request: Request, exc: Exception, status_code: int, code: str) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=str(exc), code=code).model_dump()
    )


@app.exception_handler(InvalidSessionError)
async def invalid_session_handler(request: Request, exc: InvalidSessionError):
    return _error_response(request, exc, status.HTTP_401_UNAUTHORIZED, "INVALID_SESSION")


@app.exception_handler(OwnerMismatchError)
async def owner_mismatch_handler(request: Request, exc: OwnerMismatchError):
    return _error_response(request, exc, status.HTTP_403_FORBIDDEN, "OWNER_MISMATCH")


@app.exception_handler(DuplicateBookmarkError)
async def duplicate_bookmark_handler(request: Request, exc: DuplicateBookmarkError):
    return _error_response(request, exc, status.HTTP_409_CONFLICT, "DUPLICATE_BOOKMARK")


@app.exception_handler(InvalidBookmarkError)
async def invalid_bookmark_handler(request: Request, exc: InvalidBookmarkError):
    return _error_response(request, exc, status.HTTP_422_UNPROCESSABLE_ENTITY, "INVALID_BOOKMARK")


@app.exception_handler(MarkdException)
async def markd_exception_handler(request: Request, exc: MarkdException):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Server exception: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(detail=str(exc), code="INTERNAL_ERROR").model_dump()
    )


app.include_router(session_router)
app.include_router(bookmark_router)
app.include_router(realtime_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "Markd Sync Server API", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "server"}


def main() -> None:
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)


if __name__ == "__main__":
    main()
