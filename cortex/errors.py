"""
Error types raised by the service layer.

Hierarchy:
    CortexError            -> 500
    ├── ValidationError    -> 400  missing/malformed input, illegal status move
    ├── NotFoundError      -> 404  referenced row does not exist
    └── InternalError      -> 500  store failure or unexpected state

The HTTP layer renders all of them as {"error": message}.
"""
from __future__ import annotations


class CortexError(Exception):
    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(CortexError):
    status_code = 400


class NotFoundError(CortexError):
    status_code = 404


class InternalError(CortexError):
    status_code = 500
