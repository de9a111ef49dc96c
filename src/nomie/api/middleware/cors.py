# api/middleware/cors.py
"""
CORS headers for the mobile and web clients.

Allow-listed origins are echoed back; any other origin gets `*`. Preflight
requests are answered here with an empty 204 and never reach the routes.
"""
import logging
from typing import Iterable

from fastapi import Request
from fastapi.responses import Response

logger = logging.getLogger(__name__)

ALLOWED_METHODS = "POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization"


class OriginEchoCORSMiddleware:
    def __init__(self, allow_origins: Iterable[str] = (), max_age: int = 86400):
        self.allow_origins = frozenset(allow_origins)
        self.max_age = max_age

    def allow_origin_for(self, origin: str) -> str:
        return origin if origin in self.allow_origins else "*"

    def apply(self, request: Request, response: Response) -> Response:
        origin = request.headers.get("origin", "")
        response.headers["Access-Control-Allow-Origin"] = self.allow_origin_for(origin)
        response.headers["Vary"] = "Origin"
        response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
        response.headers["Access-Control-Max-Age"] = str(self.max_age)
        return response

    async def __call__(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return self.apply(request, Response(status_code=204))

        response = await call_next(request)
        return self.apply(request, response)
