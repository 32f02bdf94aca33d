"""Starlette/FastAPI middleware for fastlypurge."""

from fastlypurge.adapters.starlette.middleware import SurrogateHeadersMiddleware

__all__ = ["SurrogateHeadersMiddleware"]
