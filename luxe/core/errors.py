"""Exceptions raised by the service layer.

Routers never build error responses themselves for these; ``luxe.main``
registers one handler that maps each class to its HTTP status.
"""


class StoreError(Exception):
    status_code = 500

    def __init__(self, detail: str = "Something went wrong"):
        super().__init__(detail)
        self.detail = detail


class InvalidInput(StoreError):
    status_code = 400


class NotAuthenticated(StoreError):
    status_code = 401


class Forbidden(StoreError):
    status_code = 403


class NotFound(StoreError):
    status_code = 404


class Conflict(StoreError):
    status_code = 409


class UpstreamError(StoreError):
    """A third-party API (payment gateway, LLM, postal lookup) failed."""

    status_code = 502
