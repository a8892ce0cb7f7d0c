"""
HTTP error taxonomy for the booking core.

Services raise these the same way they raise HTTPException; FastAPI renders
them as {"detail": ...} with the matching status code.
"""

from fastapi import HTTPException


class BadRequest(HTTPException):
    """Missing or invalid input. Nothing was written."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=400, detail=detail)


class Unauthorized(HTTPException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(status_code=401, detail=detail)


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=403, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)


class Conflict(HTTPException):
    """Slot taken at commit time, or a disallowed lifecycle transition"""

    def __init__(self, detail: str = "Conflict"):
        super().__init__(status_code=409, detail=detail)


class StoreFailure(HTTPException):
    """Relational store error, surfaced with the underlying message"""

    def __init__(self, detail: str = "Store failure"):
        super().__init__(status_code=500, detail=detail)
