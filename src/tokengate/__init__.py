"""tokengate — stateless bearer-token authentication for FastAPI services.

Issues signed tokens on login, validates them on every request, and hands
the caller's identity to downstream handlers through a request-scoped
context.
"""

__version__ = "0.1.0"
