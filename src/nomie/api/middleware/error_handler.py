# api/middleware/error_handler.py
"""
Last-resort error handling: anything the routes did not turn into a
response becomes a 500 with an `{"error": ...}` body.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware:
    async def __call__(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(f"Unhandled {type(e).__name__} for {request.method} {request.url.path}: {e}")
            return JSONResponse(status_code=500, content={"error": str(e) or "LLM error"})
