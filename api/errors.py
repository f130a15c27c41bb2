# api/errors.py
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.exceptions import StoryForgeError
from utils.logger import get_logger

log = get_logger(__name__)


def error_response(err: StoryForgeError, status_code: Optional[int] = None, **extra: Any) -> JSONResponse:
    """JSON body for a gateway error; ``extra`` adds keys such as ``chats=[]``."""
    body: Dict[str, Any] = err.to_dict()
    body.update(extra)
    return JSONResponse(body, status_code=status_code or err.status_code)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StoryForgeError)
    async def _story_forge_error(request: Request, exc: StoryForgeError):
        log.error("%s %s -> %s: %s", request.method, request.url.path, exc.__class__.__name__, exc.message)
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        msg = f"Invalid request: {loc} {first.get('msg', '')}".strip()
        return JSONResponse({"error": msg, "details": str(exc.errors())}, status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        log.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"error": "Internal server error", "details": str(exc)}, status_code=500)
