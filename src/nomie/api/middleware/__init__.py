"""
HTTP middleware: CORS headers and last-resort error responses.
"""
from .cors import OriginEchoCORSMiddleware
from .error_handler import ErrorHandlerMiddleware

__all__ = ["OriginEchoCORSMiddleware", "ErrorHandlerMiddleware"]
