"""Middleware package for FastAPI application."""

from vote_alignment.middleware.correlation import CorrelationMiddleware

__all__ = ["CorrelationMiddleware"]
