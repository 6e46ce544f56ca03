"""API package exports."""

from vidtube.api.middleware import CorrelationIdMiddleware
from vidtube.api.routes import router

__all__ = ["router", "CorrelationIdMiddleware"]
