"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on services (business logic), not directly on repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Storage / Transport)
"""

from .gate_handler import GateHandler, to_http_exception

__all__ = [
    "GateHandler",
    "to_http_exception",
]
