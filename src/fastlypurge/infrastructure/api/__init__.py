"""Fastly API client."""

from fastlypurge.infrastructure.api.fastly_client import FastlyApiClient

__all__ = ["FastlyApiClient"]
