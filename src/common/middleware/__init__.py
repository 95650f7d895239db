"""Common middleware for Turnstile."""

from .observability import StructlogContextMiddleware

__all__ = ["StructlogContextMiddleware"]
