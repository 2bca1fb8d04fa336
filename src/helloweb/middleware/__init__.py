"""
Middleware that wraps the router: the pipeline machinery and the access log.
"""

from .base import (
    Middleware,
    MiddlewarePipeline,
    FunctionMiddleware,
    function_middleware,
    NextHandler,
)
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "function_middleware",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
